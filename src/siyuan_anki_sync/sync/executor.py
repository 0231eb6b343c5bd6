"""Apply a reconciliation result to Anki as an ordered series of batch calls."""

from dataclasses import dataclass, field
from typing import Any

from siyuan_anki_sync.anki.schema import (
    CARD_TEMPLATE,
    MODEL_CSS,
    MODEL_FIELDS,
    is_deck_prefix,
    is_in_subtree,
)
from siyuan_anki_sync.error_codes import ErrorCode
from siyuan_anki_sync.exceptions import AnkiConnectError, SchemaError
from siyuan_anki_sync.interfaces import BatchItemResult, IAnkiClient
from siyuan_anki_sync.markup import get_pygments_css
from siyuan_anki_sync.models import FlashcardRecord, RecordMap
from siyuan_anki_sync.utils.logging import get_logger

from .reconciler import DeckPlan, DiffResult

logger = get_logger(__name__)


@dataclass
class MutationPlan:
    """Typed, ordered description of every write one run performs."""

    decks_to_create: list[str] = field(default_factory=list)
    notes_to_create: list[FlashcardRecord] = field(default_factory=list)
    notes_to_update: list[FlashcardRecord] = field(default_factory=list)
    deck_moves: dict[str, list[int]] = field(default_factory=dict)
    notes_to_delete: list[int] = field(default_factory=list)
    # Expected empty decks; cleanup re-checks card counts before deleting
    planned_deck_deletions: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.decks_to_create
            or self.notes_to_create
            or self.notes_to_update
            or self.deck_moves
            or self.notes_to_delete
        )

    def describe(self) -> list[str]:
        """Human-readable lines for dry runs and logs."""
        moved = sum(len(cards) for cards in self.deck_moves.values())
        lines = [
            f"decks to create: {len(self.decks_to_create)}",
            f"notes to create: {len(self.notes_to_create)}",
            f"notes to update: {len(self.notes_to_update)}",
            f"cards to move: {moved}",
            f"notes to delete: {len(self.notes_to_delete)}",
            f"decks expected to become empty: {len(self.planned_deck_deletions)}",
        ]
        lines.extend(f"  + {deck}" for deck in self.decks_to_create)
        lines.extend(f"  - {deck}" for deck in self.planned_deck_deletions)
        return lines


def build_mutation_plan(
    diff: DiffResult, deck_plan: DeckPlan, dest: RecordMap
) -> MutationPlan:
    """Translate the diff and deck plan into concrete Anki operations."""
    deck_moves: dict[str, list[int]] = {}
    for record in diff.update:
        previous = dest.get(record.id)
        if previous is None or previous.deck_path == record.deck_path:
            continue
        if not record.destination_card_ids:
            logger.warning("deck_move_without_cards", record_id=record.id)
            continue
        deck_moves.setdefault(record.deck_path, []).extend(record.destination_card_ids)

    notes_to_delete = [
        record.destination_note_id
        for record in diff.delete
        if record.destination_note_id is not None
    ]

    return MutationPlan(
        decks_to_create=list(deck_plan.to_create),
        notes_to_create=list(diff.create),
        notes_to_update=list(diff.update),
        deck_moves=deck_moves,
        notes_to_delete=notes_to_delete,
        planned_deck_deletions=list(deck_plan.to_delete),
    )


@dataclass
class StepReport:
    """Outcome of one executor step."""

    step: str
    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def record_item(self, ok: bool, error: str | None = None) -> None:
        self.submitted += 1
        if ok:
            self.succeeded += 1
        else:
            self.failed += 1
            if error:
                self.errors.append(error)


@dataclass
class ExecutionReport:
    steps: list[StepReport] = field(default_factory=list)

    def get(self, step: str) -> StepReport | None:
        return next((s for s in self.steps if s.step == step), None)

    @property
    def failed_items(self) -> int:
        return sum(s.failed for s in self.steps)

    def succeeded(self, step: str) -> int:
        report = self.get(step)
        return report.succeeded if report else 0


class MutationExecutor:
    """Run the write steps against Anki in a fixed order.

    Transport failures and top-level AnkiConnect errors propagate and abort
    the run. Per-item errors inside batched calls are logged and counted;
    nothing already applied is rolled back.
    """

    def __init__(
        self,
        anki: IAnkiClient,
        model_name: str,
        root_deck: str,
        preserve_decks: list[str] | None = None,
    ):
        self.anki = anki
        self.model_name = model_name
        self.root_deck = root_deck
        self.preserve_decks = set(preserve_decks or [])

    async def model_exists(self) -> bool:
        return self.model_name in await self.anki.model_names()

    async def ensure_model(self) -> bool:
        """Create the note type if it is missing.

        Returns:
            True if the note type was created by this call

        Raises:
            SchemaError: If the note type is missing and cannot be created
        """
        if await self.model_exists():
            return False

        logger.info("anki_model_missing", model=self.model_name)
        try:
            await self.anki.create_model(
                self.model_name,
                list(MODEL_FIELDS),
                [dict(CARD_TEMPLATE)],
                css=MODEL_CSS + get_pygments_css(),
            )
        except AnkiConnectError as e:
            raise SchemaError(
                f"Could not create note type {self.model_name!r}: {e.message}",
                suggestion="Check that the note type name is not taken by another profile",
                error_code=ErrorCode.ANK_MODEL_CREATE_FAILED.value,
                context={"model": self.model_name},
            ) from e
        logger.info("anki_model_created", model=self.model_name)
        return True

    def _log_batch_failures(
        self, report: StepReport, results: list[BatchItemResult], labels: list[Any]
    ) -> None:
        for item in results:
            report.record_item(item.ok, item.error)
            if not item.ok:
                logger.warning(
                    "batch_item_failed",
                    step=report.step,
                    item=labels[item.index] if item.index < len(labels) else item.index,
                    error=item.error,
                    error_code=ErrorCode.ANK_PARTIAL_BATCH.value,
                )

    async def create_decks(self, plan: MutationPlan) -> StepReport:
        report = StepReport(step="create_decks")
        if plan.decks_to_create:
            results = await self.anki.create_decks(plan.decks_to_create)
            self._log_batch_failures(report, results, plan.decks_to_create)
        return report

    def _note_payload(self, record: FlashcardRecord) -> dict[str, Any]:
        return {
            "deckName": record.deck_path,
            "modelName": self.model_name,
            "fields": record.to_anki_fields(),
            # Block ids are the identity, equal fronts are legitimate
            "options": {"allowDuplicate": True},
            "tags": [],
        }

    async def add_notes(self, plan: MutationPlan) -> StepReport:
        report = StepReport(step="add_notes")
        if not plan.notes_to_create:
            return report

        payloads = [self._note_payload(record) for record in plan.notes_to_create]
        note_ids = await self.anki.add_notes(payloads)

        # addNotes answers positionally, one id (or null) per submitted note
        for record, note_id in zip(plan.notes_to_create, note_ids):
            if note_id is None:
                report.record_item(False, f"addNotes failed for block {record.id}")
                logger.warning(
                    "batch_item_failed",
                    step=report.step,
                    item=record.id,
                    error_code=ErrorCode.ANK_CREATE_FAILED.value,
                )
                continue
            record.destination_note_id = note_id
            report.record_item(True)
        return report

    async def update_notes(self, plan: MutationPlan) -> StepReport:
        report = StepReport(step="update_notes")
        updates: list[tuple[int, dict[str, str]]] = []
        labels: list[str] = []
        for record in plan.notes_to_update:
            if record.destination_note_id is None:
                logger.warning("update_without_note_id", record_id=record.id)
                continue
            updates.append((record.destination_note_id, record.to_anki_fields()))
            labels.append(record.id)

        if updates:
            results = await self.anki.update_notes_fields(updates)
            self._log_batch_failures(report, results, labels)
        return report

    async def move_cards(self, plan: MutationPlan) -> StepReport:
        report = StepReport(step="move_cards")
        if plan.deck_moves:
            results = await self.anki.change_decks(plan.deck_moves)
            self._log_batch_failures(report, results, list(plan.deck_moves))
        return report

    async def delete_notes(self, plan: MutationPlan) -> StepReport:
        report = StepReport(step="delete_notes")
        if plan.notes_to_delete:
            await self.anki.delete_notes(plan.notes_to_delete)
            report.submitted = report.succeeded = len(plan.notes_to_delete)
        return report

    async def execute(self, plan: MutationPlan) -> ExecutionReport:
        """Run the record and deck writes of a plan, in order."""
        report = ExecutionReport()
        for step in (
            self.create_decks,
            self.add_notes,
            self.update_notes,
            self.move_cards,
            self.delete_notes,
        ):
            step_report = await step(plan)
            report.steps.append(step_report)
            logger.debug(
                "executor_step_completed",
                step=step_report.step,
                submitted=step_report.submitted,
                failed=step_report.failed,
            )
        return report

    async def cleanup_empty_decks(self) -> StepReport:
        """Delete decks under the root deck that hold no cards.

        Card counts are re-read from Anki, so only decks that are really
        empty, not preserved, and not an ancestor of a non-empty deck go.
        """
        report = StepReport(step="cleanup_decks")
        managed = [d for d in await self.anki.deck_names() if is_in_subtree(self.root_deck, d)]
        if not managed:
            return report

        stats = await self.anki.get_deck_stats(managed)
        valid: set[str] = set()
        invalid: set[str] = set()
        for deck_stats in stats.values():
            name = deck_stats.get("name")
            if not name:
                continue
            if deck_stats.get("total_in_deck", 0) > 0:
                valid.add(name)
            else:
                invalid.add(name)

        # Deleting a deck deletes its subdecks, so ancestors of kept decks stay
        keep = valid | self.preserve_decks
        to_delete = [
            deck
            for deck in managed
            if deck in invalid
            and deck not in self.preserve_decks
            and not any(is_deck_prefix(deck, k) for k in keep)
        ]
        if to_delete:
            await self.anki.delete_decks(to_delete, cards_too=True)
            report.submitted = report.succeeded = len(to_delete)
            logger.info("empty_decks_deleted", decks=to_delete)
        return report
