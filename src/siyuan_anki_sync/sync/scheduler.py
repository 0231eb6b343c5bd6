"""Run the orchestrator on a fixed interval."""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

from siyuan_anki_sync.utils.logging import get_logger

from .orchestrator import RunResult, SyncOrchestrator
from .state import SyncStateStore

logger = get_logger(__name__)


class IntervalScheduler:
    """Trigger timer runs every ``interval_minutes``.

    The first run is due one interval after the last successful sync (or
    immediately when there is none); later runs follow one interval after
    the previous attempt, whether it succeeded or not.
    A run that raises is logged and the loop keeps going.
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        interval_minutes: int,
        state_store: SyncStateStore | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        if interval_minutes < 1:
            msg = f"interval_minutes must be at least 1, got {interval_minutes}"
            raise ValueError(msg)
        self.orchestrator = orchestrator
        self.interval_seconds = interval_minutes * 60
        self.state_store = state_store
        self._now = now or (lambda: datetime.now(UTC))
        self._stop = asyncio.Event()
        self.results: list[RunResult] = []

    def initial_delay(self) -> float:
        """Seconds until the first run is due."""
        last = self.state_store.last_sync_at if self.state_store else None
        if last is None:
            return 0.0
        elapsed = (self._now() - last).total_seconds()
        return max(0.0, self.interval_seconds - elapsed)

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def _sleep(self, seconds: float) -> bool:
        """Wait for ``seconds``; return False if stopped in the meantime."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except TimeoutError:
            return True
        return False

    async def run_forever(self, max_runs: int | None = None) -> list[RunResult]:
        """Loop until ``stop()`` is called or ``max_runs`` runs have happened."""
        logger.info(
            "scheduler_started", interval_minutes=self.interval_seconds // 60
        )
        delay = self.initial_delay()
        runs = 0
        try:
            while not self.stopped:
                if delay > 0 and not await self._sleep(delay):
                    break
                try:
                    result = await self.orchestrator.run(trigger="timer")
                except Exception as e:
                    logger.exception("scheduler_run_crashed", error=str(e))
                else:
                    self.results.append(result)
                runs += 1
                if max_runs is not None and runs >= max_runs:
                    break
                delay = self.interval_seconds
        finally:
            logger.info("scheduler_stopped", runs=runs)
        return self.results
