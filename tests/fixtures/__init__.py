"""Test fixtures package."""

from .fake_anki_client import FakeAnkiClient
from .fake_siyuan_client import FakeSiyuanClient, make_block

__all__ = [
    "FakeAnkiClient",
    "FakeSiyuanClient",
    "make_block",
]
