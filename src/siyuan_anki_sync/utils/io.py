"""File I/O helpers for the sync state file."""

import json
import os
import tempfile
from collections.abc import Generator
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any

from siyuan_anki_sync.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def atomic_write(
    path: str | Path,
    mode: str = "w",
    encoding: str | None = "utf-8",
) -> Generator[Any, None, None]:
    """
    Context manager for atomic file writing.

    Writes to a temporary file in the target directory, then renames it over
    the target path once the block completes, so readers never see a partial
    file.

    Args:
        path: Target file path
        mode: File open mode (default: "w")
        encoding: File encoding (default: "utf-8")

    Yields:
        File object opened for writing
    """
    path = Path(path)
    parent = path.parent
    parent.mkdir(parents=True, exist_ok=True)

    try:
        # Same directory as the target so the rename stays on one filesystem
        temp_fd, temp_path = tempfile.mkstemp(
            dir=parent,
            prefix=f".tmp_{path.name}_",
            text="b" not in mode,
        )
        os.close(temp_fd)
        temp_path_obj = Path(temp_path)

        try:
            with open(temp_path, mode, encoding=encoding) as f:
                yield f
                f.flush()
                os.fsync(f.fileno())

            temp_path_obj.replace(path)

        except OSError:
            if temp_path_obj.exists():
                with suppress(OSError):
                    temp_path_obj.unlink()
            raise

    except Exception as e:
        logger.error(
            "atomic_write_failed",
            path=str(path),
            error=str(e),
        )
        raise


def read_json(path: str | Path) -> dict[str, Any] | None:
    """Read a JSON object from disk, returning None when the file is absent."""
    path = Path(path)
    if not path.exists():
        return None
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        logger.warning("json_file_not_an_object", path=str(path))
        return None
    return data


def write_json(path: str | Path, data: dict[str, Any]) -> None:
    """Write a JSON object to disk atomically."""
    with atomic_write(path) as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
