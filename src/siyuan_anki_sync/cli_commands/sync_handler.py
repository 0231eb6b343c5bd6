"""Sync and watch command implementation logic."""

import asyncio
from typing import Any

import typer
from rich.table import Table

from siyuan_anki_sync.anki.client import AnkiClient
from siyuan_anki_sync.config import Config
from siyuan_anki_sync.siyuan.client import SiyuanClient
from siyuan_anki_sync.sync.orchestrator import RunResult, SyncOrchestrator
from siyuan_anki_sync.sync.scheduler import IntervalScheduler
from siyuan_anki_sync.sync.state import SyncStateStore

from .shared import console


def _clients(config: Config) -> tuple[SiyuanClient, AnkiClient]:
    return (
        SiyuanClient(config.siyuan_url, timeout=config.request_timeout),
        AnkiClient(config.anki_url, timeout=config.request_timeout),
    )


async def _sync_once(config: Config, dry_run: bool) -> RunResult:
    siyuan, anki = _clients(config)
    async with siyuan, anki:
        orchestrator = SyncOrchestrator(
            config, siyuan, anki, state_store=SyncStateStore(config.state_path)
        )
        return await orchestrator.run(trigger="manual", dry_run=dry_run)


def print_result(result: RunResult) -> None:
    """Render a run result as a rich table."""
    title = "Sync Plan (dry run)" if result.dry_run else "Sync Result"
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Item", style="cyan")
    table.add_column("Value", style="green")
    for key, value in result.counts.items():
        table.add_row(key.replace("_", " "), str(value))
    if result.counts:
        console.print(table)

    for line in result.summary:
        console.print(f"  {line}")

    if result.success:
        console.print("\n[bold green]Sync finished[/bold green]")
    else:
        console.print(f"\n[bold red]Sync did not complete ({result.state.value})[/bold red]")
        if result.error and result.error.suggestion:
            console.print(f"  [dim]TIP: {result.error.suggestion}[/dim]")


def run_sync(config: Config, logger: Any, dry_run: bool = False) -> RunResult:
    """Execute one manual sync.

    Raises:
        typer.Exit: When the run fails
    """
    logger.debug("cli_sync_invoked", dry_run=dry_run)
    result = asyncio.run(_sync_once(config, dry_run))
    print_result(result)
    if not result.success:
        raise typer.Exit(code=1)
    return result


async def _watch(config: Config, interval_minutes: int) -> None:
    siyuan, anki = _clients(config)
    state_store = SyncStateStore(config.state_path)
    async with siyuan, anki:
        orchestrator = SyncOrchestrator(config, siyuan, anki, state_store=state_store)
        scheduler = IntervalScheduler(orchestrator, interval_minutes, state_store)
        try:
            await scheduler.run_forever()
        finally:
            scheduler.stop()


def run_watch(config: Config, logger: Any, interval_minutes: int | None = None) -> None:
    """Run timer-triggered syncs until interrupted."""
    interval = interval_minutes or config.sync_interval_minutes
    if config.sync_mode != "interval":
        logger.warning(
            "config_warning",
            message="sync_mode is not 'interval'; watching anyway",
            sync_mode=config.sync_mode,
        )

    console.print(
        f"[bold cyan]Syncing every {interval} minute(s). Press Ctrl+C to stop.[/bold cyan]"
    )
    try:
        asyncio.run(_watch(config, interval))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")
