"""Persist the time and summary of the last successful sync."""

import json
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from siyuan_anki_sync.utils.io import read_json, write_json
from siyuan_anki_sync.utils.logging import get_logger

logger = get_logger(__name__)


class SyncState(BaseModel):
    """Contents of the state file."""

    last_sync_at: datetime | None = None
    last_summary: list[str] = Field(default_factory=list)


class SyncStateStore:
    """JSON file holding the last-sync timestamp.

    A missing or unreadable file is treated as "never synced" so a corrupt
    state file cannot block syncing.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> SyncState:
        try:
            data = read_json(self.path)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("sync_state_unreadable", path=str(self.path), error=str(e))
            return SyncState()
        if data is None:
            return SyncState()
        try:
            return SyncState.model_validate(data)
        except ValidationError as e:
            logger.warning("sync_state_invalid", path=str(self.path), error=str(e))
            return SyncState()

    @property
    def last_sync_at(self) -> datetime | None:
        return self.load().last_sync_at

    def record_success(
        self, summary: list[str], when: datetime | None = None
    ) -> SyncState:
        state = SyncState(last_sync_at=when or datetime.now(UTC), last_summary=summary)
        write_json(self.path, state.model_dump(mode="json"))
        logger.debug("sync_state_saved", path=str(self.path))
        return state
