"""Diff the SiYuan record set against Anki and plan deck lifecycle.

Everything here is pure: the functions take record maps and deck names and
return plans, without talking to either backend.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from siyuan_anki_sync.anki.schema import is_deck_prefix, is_in_subtree
from siyuan_anki_sync.models import FlashcardRecord, RecordMap
from siyuan_anki_sync.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DiffResult:
    """Disjoint create/update/delete buckets covering both sides' ids."""

    create: list[FlashcardRecord] = field(default_factory=list)
    update: list[FlashcardRecord] = field(default_factory=list)
    delete: list[FlashcardRecord] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.create or self.update or self.delete)

    def counts(self) -> dict[str, int]:
        return {
            "create": len(self.create),
            "update": len(self.update),
            "delete": len(self.delete),
            "unchanged": len(self.unchanged),
        }


@dataclass(frozen=True)
class DeckPlan:
    """Deck lifecycle derived from the post-reconciliation record set.

    ``to_delete`` lists the decks expected to become empty. The executor's
    cleanup step re-checks real card counts before deleting anything.
    """

    used: frozenset[str]
    to_create: list[str]
    to_delete: list[str]


def is_stale(source: FlashcardRecord, dest: FlashcardRecord) -> bool:
    """Return True if the Anki copy of a record must be rewritten.

    Timestamps are SiYuan's fixed-width ``YYYYMMDDHHMMSS`` strings, so string
    order is chronological order.
    """
    return source.updated_at > dest.updated_at or source.deck_path != dest.deck_path


def reconcile(
    source: RecordMap, dest: RecordMap, force_update: bool = False
) -> DiffResult:
    """Compare SiYuan (source of truth) with Anki.

    Args:
        source: Records from SiYuan keyed by block id
        dest: Records from Anki keyed by block id
        force_update: Treat every record present on both sides as stale

    Returns:
        DiffResult whose buckets follow the insertion order of the inputs.
        Updated records are source records carrying the Anki note and card ids.
    """
    diff = DiffResult()

    for record_id, record in source.items():
        existing = dest.get(record_id)
        if existing is None:
            diff.create.append(record)
        elif force_update or is_stale(record, existing):
            diff.update.append(
                record.model_copy(
                    update={
                        "destination_note_id": existing.destination_note_id,
                        "destination_card_ids": list(existing.destination_card_ids),
                    }
                )
            )
        else:
            diff.unchanged.append(record_id)

    for record_id, record in dest.items():
        if record_id not in source:
            diff.delete.append(record)

    logger.info("reconcile_completed", **diff.counts())
    return diff


def _is_ancestor_of_any(deck: str, decks: Iterable[str]) -> bool:
    return any(is_deck_prefix(deck, other) for other in decks)


def plan_decks(
    diff: DiffResult,
    source: RecordMap,
    existing_decks: Iterable[str],
    root_deck: str,
    preserve: Iterable[str] = (),
) -> DeckPlan:
    """Work out which decks to create and which are expected to become empty.

    Args:
        diff: Result of ``reconcile``
        source: The full SiYuan record set (what Anki holds after the run)
        existing_decks: Deck names currently in Anki
        root_deck: Top-level deck of synced cards; only its subtree is managed
        preserve: Deck names that are never deleted

    Returns:
        DeckPlan with ``used`` covering every deck that holds a record after
        the run, including decks of unchanged records.
    """
    existing = list(existing_decks)
    existing_set = set(existing)
    preserved = set(preserve)
    used = frozenset(record.deck_path for record in source.values())

    to_create: list[str] = []
    for record in [*diff.create, *diff.update]:
        deck = record.deck_path
        if deck not in existing_set and deck not in to_create:
            to_create.append(deck)

    projected: dict[str, int] = {}
    for record in source.values():
        projected[record.deck_path] = projected.get(record.deck_path, 0) + 1

    to_delete = [
        deck
        for deck in existing
        if is_in_subtree(root_deck, deck)
        and deck not in preserved
        and projected.get(deck, 0) == 0
        and deck not in used
        and not _is_ancestor_of_any(deck, used)
        and not _is_ancestor_of_any(deck, preserved)
    ]

    logger.debug(
        "deck_plan_computed",
        used=len(used),
        to_create=to_create,
        to_delete=to_delete,
    )
    return DeckPlan(used=used, to_create=to_create, to_delete=to_delete)
