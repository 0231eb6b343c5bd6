"""Pytest configuration and fixtures for the test suite."""

import pytest

from siyuan_anki_sync.config import Config, reset_config
from siyuan_anki_sync.models import FlashcardRecord
from tests.fixtures import FakeAnkiClient, FakeSiyuanClient


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Keep tests independent of the developer's environment and config."""
    for var in ("SIYUAN_ANKI_CONFIG", "ANKI_PORT", "SIYUAN_PORT", "ROOT_DECK_NAME"):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config(tmp_path):
    """Provide a config with state and logs under a temp directory."""
    return Config(
        root_deck_name="Root",
        anki_model="siyuan",
        deep_link_scheme="app",
        data_dir=tmp_path,
        log_dir="",
        preserve_decks=["Default"],
    )


@pytest.fixture
def fake_anki():
    """Provide an empty in-memory Anki collection."""
    return FakeAnkiClient()


@pytest.fixture
def fake_siyuan():
    """Provide a SiYuan backend with one notebook named NB and no blocks."""
    return FakeSiyuanClient()


@pytest.fixture
def make_record():
    """Factory for flashcard records with sensible defaults."""

    def _make(record_id: str, **overrides) -> FlashcardRecord:
        data = {
            "id": record_id,
            "deck_path": "Root::NB::Topic",
            "front_content": f"front {record_id}",
            "back_content": f"back {record_id}",
            "updated_at": "20240101000000",
        }
        data.update(overrides)
        return FlashcardRecord(**data)

    return _make
