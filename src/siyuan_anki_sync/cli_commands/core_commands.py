"""Core CLI commands: sync, watch, check."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Annotated

import typer

from siyuan_anki_sync.exceptions import ConfigurationError

from .check_handler import run_check
from .shared import console, get_config_and_logger
from .sync_handler import run_sync, run_watch


def _load(config_path: Path | None, log_level: str | None, verbose: bool):
    try:
        return get_config_and_logger(config_path, log_level, verbose=verbose)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e.message}")
        if e.suggestion:
            console.print(f"  [dim]TIP: {e.suggestion}[/dim]")
        raise typer.Exit(code=2) from e


def register(app: typer.Typer) -> None:
    """Register core commands on the given Typer app."""

    @app.command()
    def sync(
        dry_run: Annotated[
            bool,
            typer.Option("--dry-run", help="Preview changes without writing to Anki"),
        ] = False,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", help="Path to config.yaml", exists=True),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Log level (DEBUG, INFO, WARN, ERROR)"),
        ] = None,
        verbose: Annotated[
            bool,
            typer.Option(
                "--verbose", "-v", help="Show all log messages on terminal (for debugging)"
            ),
        ] = False,
    ) -> None:
        """Synchronize SiYuan flashcards to Anki once."""
        start_time = time.time()
        _config, logger = _load(config_path, log_level, verbose)

        logger.info("cli_command_started", command="sync", dry_run=dry_run)
        result = run_sync(_config, logger, dry_run=dry_run)
        logger.info(
            "cli_command_completed",
            command="sync",
            duration=round(time.time() - start_time, 2),
            success=result.success,
        )

    @app.command()
    def watch(
        interval: Annotated[
            int | None,
            typer.Option(
                "--interval",
                min=1,
                help="Minutes between runs (default: sync_interval_minutes)",
            ),
        ] = None,
        config_path: Annotated[
            Path | None,
            typer.Option("--config", help="Path to config.yaml", exists=True),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Log level (DEBUG, INFO, WARN, ERROR)"),
        ] = None,
        verbose: Annotated[
            bool,
            typer.Option(
                "--verbose", "-v", help="Show all log messages on terminal (for debugging)"
            ),
        ] = False,
    ) -> None:
        """Sync on a fixed interval until interrupted."""
        config, logger = _load(config_path, log_level, verbose)
        logger.info("cli_command_started", command="watch", interval=interval)
        run_watch(config, logger, interval_minutes=interval)

    @app.command()
    def check(
        config_path: Annotated[
            Path | None,
            typer.Option("--config", help="Path to config.yaml", exists=True),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Log level (DEBUG, INFO, WARN, ERROR)"),
        ] = None,
    ) -> None:
        """Check connectivity to SiYuan and AnkiConnect."""
        config, logger = _load(config_path, log_level, verbose=False)
        run_check(config, logger)
