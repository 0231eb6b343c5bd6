"""Check command implementation logic."""

import asyncio
from dataclasses import dataclass
from typing import Any

import typer
from rich.table import Table

from siyuan_anki_sync.anki.client import AnkiClient
from siyuan_anki_sync.config import Config
from siyuan_anki_sync.exceptions import BackendError
from siyuan_anki_sync.siyuan.client import SiyuanClient

from .shared import console


@dataclass
class CheckResult:
    name: str
    passed: bool
    message: str
    fix_suggestion: str | None = None


async def _check_siyuan(config: Config) -> list[CheckResult]:
    async with SiyuanClient(config.siyuan_url, timeout=config.request_timeout) as client:
        try:
            version = await client.version()
            notebooks = await client.ls_notebooks()
        except BackendError as e:
            return [CheckResult("SiYuan", False, e.message, e.suggestion)]
    return [
        CheckResult("SiYuan", True, f"kernel {version} at {config.siyuan_url}"),
        CheckResult("Notebooks", True, f"{len(notebooks)} notebook(s)"),
    ]


async def _check_anki(config: Config) -> list[CheckResult]:
    async with AnkiClient(config.anki_url, timeout=config.request_timeout) as client:
        try:
            version = await client.version()
            models = await client.model_names()
        except BackendError as e:
            return [CheckResult("AnkiConnect", False, e.message, e.suggestion)]

    results = [CheckResult("AnkiConnect", True, f"API v{version} at {config.anki_url}")]
    if config.anki_model in models:
        results.append(CheckResult("Note type", True, f"{config.anki_model!r} exists"))
    else:
        # Not a failure: the first sync creates it
        results.append(
            CheckResult("Note type", True, f"{config.anki_model!r} will be created")
        )
    return results


async def run_checks(config: Config) -> list[CheckResult]:
    return [*await _check_siyuan(config), *await _check_anki(config)]


def run_check(config: Config, logger: Any) -> list[CheckResult]:
    """Check connectivity to both backends.

    Raises:
        typer.Exit: If a backend is unreachable
    """
    logger.info("check_started")
    results = asyncio.run(run_checks(config))

    table = Table(title="Connectivity", show_header=True, header_style="bold magenta")
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Details")
    for result in results:
        status = "[green]PASS[/green]" if result.passed else "[red]FAIL[/red]"
        table.add_row(result.name, status, result.message)
    console.print(table)

    failed = [r for r in results if not r.passed]
    for result in failed:
        if result.fix_suggestion:
            console.print(f"  [dim]TIP: {result.fix_suggestion}[/dim]")

    if failed:
        logger.error("check_failed", failed=[r.name for r in failed])
        raise typer.Exit(code=1)
    return results
