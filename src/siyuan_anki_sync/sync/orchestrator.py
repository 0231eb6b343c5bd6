"""Top-level sync run: schema, extract, reconcile, transform, execute, notify."""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from siyuan_anki_sync.config_settings import Config
from siyuan_anki_sync.error_codes import ErrorCode
from siyuan_anki_sync.exceptions import SiyuanApiError, SiyuanAnkiSyncError, SyncError
from siyuan_anki_sync.interfaces import IAnkiClient, INotesClient
from siyuan_anki_sync.markup import MarkupTransformer
from siyuan_anki_sync.models import RecordMap
from siyuan_anki_sync.utils.logging import get_logger

from .executor import ExecutionReport, MutationExecutor, MutationPlan, build_mutation_plan
from .extractors import DestinationExtractor, SourceExtractor
from .reconciler import DeckPlan, DiffResult, plan_decks, reconcile
from .state import SyncStateStore

logger = get_logger(__name__)

Trigger = Literal["manual", "timer"]

NOTIFY_TITLE = "Anki sync finished"


class RunState(str, Enum):
    """Phases of one sync run."""

    IDLE = "idle"
    ENSURE_SCHEMA = "ensure_schema"
    EXTRACT = "extract"
    RECONCILE = "reconcile"
    TRANSFORM = "transform"
    EXECUTE = "execute"
    CLEANUP = "cleanup"
    NOTIFY = "notify"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class RunContext:
    """Everything one run works on; built fresh for every run."""

    config: Config
    siyuan: INotesClient
    anki: IAnkiClient
    transformer: MarkupTransformer
    executor: MutationExecutor
    trigger: Trigger = "manual"
    dry_run: bool = False
    state: RunState = RunState.IDLE
    summary: list[str] = field(default_factory=list)
    source: RecordMap = field(default_factory=dict)
    dest: RecordMap = field(default_factory=dict)
    diff: DiffResult | None = None
    deck_plan: DeckPlan | None = None
    plan: MutationPlan | None = None
    counts: dict[str, int] = field(default_factory=dict)
    started_at: float = field(default_factory=time.monotonic)

    def enter(self, state: RunState) -> None:
        logger.debug("sync_state_changed", state=state.value, previous=self.state.value)
        self.state = state


@dataclass
class RunResult:
    """What a run reports back to its trigger."""

    success: bool
    state: RunState
    summary: list[str] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    error: SiyuanAnkiSyncError | None = None
    trigger: Trigger = "manual"
    dry_run: bool = False

    @property
    def skipped(self) -> bool:
        return self.state == RunState.SKIPPED

    @property
    def message(self) -> str:
        return "\n".join(self.summary)


class SyncOrchestrator:
    """Drives sync runs against long-lived backend clients.

    Only one run executes at a time; a trigger that arrives while a run is in
    flight returns a ``SKIPPED`` result without touching either backend.
    """

    def __init__(
        self,
        config: Config,
        siyuan: INotesClient,
        anki: IAnkiClient,
        state_store: SyncStateStore | None = None,
    ):
        self.config = config
        self.siyuan = siyuan
        self.anki = anki
        self.state_store = state_store
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _new_context(self, trigger: Trigger, dry_run: bool) -> RunContext:
        config = self.config
        return RunContext(
            config=config,
            siyuan=self.siyuan,
            anki=self.anki,
            transformer=MarkupTransformer(config.siyuan_url, config.deep_link_scheme),
            executor=MutationExecutor(
                self.anki,
                model_name=config.anki_model,
                root_deck=config.root_deck_name,
                preserve_decks=config.preserve_decks,
            ),
            trigger=trigger,
            dry_run=dry_run,
        )

    async def run(self, trigger: Trigger = "manual", dry_run: bool = False) -> RunResult:
        """Run one sync.

        Args:
            trigger: "manual" for user-initiated runs, "timer" for scheduled ones
            dry_run: Compute and report the plan without writing to Anki

        Returns:
            RunResult; failures are reported in it, not raised
        """
        if self._lock.locked():
            logger.warning("sync_skipped_busy", trigger=trigger)
            return RunResult(
                success=False,
                state=RunState.SKIPPED,
                summary=["sync already in progress"],
                trigger=trigger,
                dry_run=dry_run,
            )

        async with self._lock:
            ctx = self._new_context(trigger, dry_run)
            logger.info("sync_started", trigger=trigger, dry_run=dry_run)
            try:
                return await self._run_pipeline(ctx)
            except SiyuanAnkiSyncError as e:
                return await self._fail(ctx, e)
            except Exception as e:
                logger.exception("sync_unexpected_error", trigger=trigger, error=str(e))
                wrapped = SyncError(
                    f"Unexpected error: {e}",
                    suggestion="See the log file for the traceback",
                    error_code=ErrorCode.SYN_UNEXPECTED.value,
                    context={"error_type": type(e).__name__},
                )
                return await self._fail(ctx, wrapped)

    async def _run_pipeline(self, ctx: RunContext) -> RunResult:
        ctx.enter(RunState.ENSURE_SCHEMA)
        if ctx.dry_run:
            model_ready = await ctx.executor.model_exists()
            if not model_ready:
                ctx.summary.append(f"note type {ctx.config.anki_model!r} would be created")
        elif await ctx.executor.ensure_model():
            ctx.summary.append(f"created note type {ctx.config.anki_model!r}")

        ctx.enter(RunState.EXTRACT)
        source_extractor = SourceExtractor(
            ctx.siyuan,
            root_deck=ctx.config.root_deck_name,
            attribute=ctx.config.flashcard_attribute,
            query_limit=ctx.config.query_limit,
            back_from_parent=ctx.config.back_from_parent,
        )
        ctx.source = await source_extractor.extract()
        if not ctx.source:
            return self._short_circuit(ctx, "no flashcard blocks found")

        dest_extractor = DestinationExtractor(ctx.anki, ctx.config.anki_model)
        ctx.dest = await dest_extractor.extract()
        existing_decks = await dest_extractor.existing_decks()

        ctx.enter(RunState.RECONCILE)
        ctx.diff = reconcile(ctx.source, ctx.dest, force_update=ctx.config.force_update)
        ctx.deck_plan = plan_decks(
            ctx.diff,
            ctx.source,
            existing_decks,
            root_deck=ctx.config.root_deck_name,
            preserve=ctx.config.preserve_decks,
        )
        ctx.plan = build_mutation_plan(ctx.diff, ctx.deck_plan, ctx.dest)
        logger.info(
            "sync_plan",
            create=len(ctx.plan.notes_to_create),
            update=len(ctx.plan.notes_to_update),
            delete=len(ctx.plan.notes_to_delete),
            decks_to_create=len(ctx.plan.decks_to_create),
            unchanged=len(ctx.diff.unchanged),
        )

        ctx.enter(RunState.TRANSFORM)
        self._transform(ctx)

        if ctx.dry_run:
            ctx.summary.extend(ctx.plan.describe())
            ctx.counts = ctx.diff.counts()
            return self._finish(ctx)

        ctx.enter(RunState.EXECUTE)
        report = await ctx.executor.execute(ctx.plan)

        ctx.enter(RunState.CLEANUP)
        cleanup = await ctx.executor.cleanup_empty_decks()
        report.steps.append(cleanup)

        ctx.counts = self._counts(ctx, report)
        ctx.summary.extend(self._summary_lines(ctx.counts))

        ctx.enter(RunState.NOTIFY)
        await self._notify(ctx)

        result = self._finish(ctx)
        if self.state_store is not None:
            self.state_store.record_success(result.summary)
        return result

    def _transform(self, ctx: RunContext) -> None:
        """Render the markup of every record that will be written."""
        assert ctx.plan is not None
        for record in [*ctx.plan.notes_to_create, *ctx.plan.notes_to_update]:
            record.front_content = ctx.transformer.transform(record.front_content)
            record.back_content = ctx.transformer.transform(record.back_content)
        logger.debug(
            "records_transformed",
            count=len(ctx.plan.notes_to_create) + len(ctx.plan.notes_to_update),
        )

    @staticmethod
    def _counts(ctx: RunContext, report: ExecutionReport) -> dict[str, int]:
        assert ctx.diff is not None
        return {
            "created": report.succeeded("add_notes"),
            "updated": report.succeeded("update_notes"),
            "deleted": report.succeeded("delete_notes"),
            "unchanged": len(ctx.diff.unchanged),
            "decks_created": report.succeeded("create_decks"),
            "decks_deleted": report.succeeded("cleanup_decks"),
            "failed_items": report.failed_items,
        }

    @staticmethod
    def _summary_lines(counts: dict[str, int]) -> list[str]:
        lines = [
            f"created: {counts['created']}",
            f"updated: {counts['updated']}",
            f"deleted: {counts['deleted']}",
            f"decks created: {counts['decks_created']}",
            f"decks removed: {counts['decks_deleted']}",
        ]
        if counts["failed_items"]:
            lines.append(f"failed items: {counts['failed_items']} (see log)")
        return lines

    async def _notify(self, ctx: RunContext) -> None:
        message = "\n".join([NOTIFY_TITLE, *ctx.summary])
        try:
            await ctx.siyuan.push_msg(message, timeout=ctx.config.notify_timeout_ms)
        except SiyuanApiError as e:
            logger.warning("notify_failed", error=str(e))

    def _short_circuit(self, ctx: RunContext, reason: str) -> RunResult:
        logger.info("sync_short_circuited", reason=reason, trigger=ctx.trigger)
        ctx.summary.append(f"nothing to sync: {reason}")
        return self._finish(ctx)

    def _finish(self, ctx: RunContext) -> RunResult:
        ctx.enter(RunState.DONE)
        duration = time.monotonic() - ctx.started_at
        logger.info(
            "sync_completed",
            trigger=ctx.trigger,
            dry_run=ctx.dry_run,
            created=ctx.counts.get("created", 0),
            updated=ctx.counts.get("updated", 0),
            deleted=ctx.counts.get("deleted", 0),
            duration_seconds=duration,
        )
        return RunResult(
            success=True,
            state=RunState.DONE,
            summary=list(ctx.summary),
            counts=dict(ctx.counts),
            trigger=ctx.trigger,
            dry_run=ctx.dry_run,
        )

    async def _fail(self, ctx: RunContext, error: SiyuanAnkiSyncError) -> RunResult:
        failed_in = ctx.state
        ctx.enter(RunState.FAILED)
        logger.error(
            "sync_failed",
            trigger=ctx.trigger,
            failed_in=failed_in.value,
            **error.to_dict(),
            error=error.message,
        )

        # Timer runs fail silently apart from the log
        if ctx.trigger == "manual" and not ctx.dry_run:
            try:
                await ctx.siyuan.push_err_msg(
                    f"Anki sync failed: {error.message}",
                    timeout=ctx.config.notify_timeout_ms,
                )
            except SiyuanApiError as notify_error:
                logger.warning("notify_failed", error=str(notify_error))

        return RunResult(
            success=False,
            state=RunState.FAILED,
            summary=[*ctx.summary, f"failed during {failed_in.value}: {error.message}"],
            counts=dict(ctx.counts),
            error=error,
            trigger=ctx.trigger,
            dry_run=ctx.dry_run,
        )
