import json

import pytest

from siyuan_anki_sync.utils.io import atomic_write, read_json, write_json


def test_atomic_write_creates_file(tmp_path):
    """Test that atomic_write creates parent directories and the file."""
    target_file = tmp_path / "nested" / "state.json"

    with atomic_write(target_file) as f:
        f.write("{}")

    assert target_file.read_text(encoding="utf-8") == "{}"


def test_atomic_write_overwrites_file(tmp_path):
    target_file = tmp_path / "state.json"
    target_file.write_text("old", encoding="utf-8")

    with atomic_write(target_file) as f:
        f.write("new")

    assert target_file.read_text(encoding="utf-8") == "new"


def test_atomic_write_failure_leaves_target_unchanged(tmp_path):
    """Test that a failed write keeps the old file intact."""
    target_file = tmp_path / "state.json"
    target_file.write_text("original", encoding="utf-8")

    with pytest.raises(RuntimeError):
        with atomic_write(target_file) as f:
            f.write("partial")
            raise RuntimeError("Simulated failure")

    assert target_file.read_text(encoding="utf-8") == "original"


def test_atomic_write_not_visible_until_exit(tmp_path):
    target_file = tmp_path / "state.json"

    with atomic_write(target_file) as f:
        f.write("content")
        f.flush()
        assert not target_file.exists()

    assert target_file.exists()


def test_write_then_read_json(tmp_path):
    path = tmp_path / "state.json"

    write_json(path, {"last_summary": ["créé: 1"]})

    assert read_json(path) == {"last_summary": ["créé: 1"]}
    assert "créé" in path.read_text(encoding="utf-8")


def test_read_json_missing_file(tmp_path):
    assert read_json(tmp_path / "absent.json") is None


def test_read_json_non_object(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps([1, 2]), encoding="utf-8")

    assert read_json(path) is None
