"""Interfaces for the two remote backends.

The sync pipeline only depends on these, so tests can substitute in-memory
fakes for the HTTP clients.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome of one sub-request inside a batched AnkiConnect call."""

    index: int
    result: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class IAnkiClient(ABC):
    """Interface for the AnkiConnect operations used by the sync pipeline."""

    @abstractmethod
    async def version(self) -> int:
        """Return the AnkiConnect API version."""

    @abstractmethod
    async def model_names(self) -> list[str]:
        """Return the names of all note types."""

    @abstractmethod
    async def create_model(
        self,
        model_name: str,
        fields: list[str],
        card_templates: list[dict[str, str]],
        css: str = "",
    ) -> dict[str, Any]:
        """Create a note type."""

    @abstractmethod
    async def find_cards(self, query: str) -> list[int]:
        """Return card ids matching an Anki search query."""

    @abstractmethod
    async def cards_info(self, card_ids: list[int]) -> list[dict[str, Any]]:
        """Return full card data (fields, note id, deck) for card ids."""

    @abstractmethod
    async def deck_names(self) -> list[str]:
        """Return all deck names."""

    @abstractmethod
    async def create_decks(self, deck_names: list[str]) -> list[BatchItemResult]:
        """Create decks in one batched request."""

    @abstractmethod
    async def delete_decks(self, deck_names: list[str], cards_too: bool = True) -> None:
        """Delete decks (and their cards)."""

    @abstractmethod
    async def change_decks(
        self, moves: dict[str, list[int]]
    ) -> list[BatchItemResult]:
        """Move cards to decks in one batched request (deck -> card ids)."""

    @abstractmethod
    async def add_notes(self, notes: list[dict[str, Any]]) -> list[int | None]:
        """Add notes; ids are returned positionally, None for failures."""

    @abstractmethod
    async def update_notes_fields(
        self, updates: list[tuple[int, dict[str, str]]]
    ) -> list[BatchItemResult]:
        """Update note fields in one batched request."""

    @abstractmethod
    async def delete_notes(self, note_ids: list[int]) -> None:
        """Delete notes by id."""

    @abstractmethod
    async def get_deck_stats(self, deck_names: list[str]) -> dict[str, dict[str, Any]]:
        """Return deck statistics keyed by deck id."""


class INotesClient(ABC):
    """Interface for the SiYuan kernel operations used by the sync pipeline."""

    @abstractmethod
    async def ls_notebooks(self) -> list[dict[str, Any]]:
        """Return all notebooks."""

    @abstractmethod
    async def sql(self, stmt: str) -> list[dict[str, Any]]:
        """Run a read-only SQL query against the block store."""

    @abstractmethod
    async def push_msg(self, msg: str, timeout: int = 7000) -> None:
        """Show a transient notification."""

    @abstractmethod
    async def push_err_msg(self, msg: str, timeout: int = 7000) -> None:
        """Show a transient error notification."""
