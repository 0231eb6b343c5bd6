"""Logging configuration using structlog for structured JSON logging."""

import logging
import sys
from collections.abc import MutableMapping
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer
from structlog.stdlib import LoggerFactory, add_log_level, add_logger_name

# Standard library logging levels mapping
_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# User-facing event names that should appear on terminal (without --verbose)
# These are the only events shown to users by default, plus all ERROR/CRITICAL
USER_FACING_EVENTS: set[str] = {
    "sync_started",
    "sync_completed",
    "sync_failed",
    "sync_skipped_busy",
    "sync_short_circuited",
    "sync_plan",
    "batch_item_failed",
    "scheduler_started",
    "scheduler_stopped",
    "config_warning",
}


def _get_level_no(level_name: str) -> int:
    """Get numeric log level from name."""
    return _LOG_LEVELS.get(level_name.upper(), logging.INFO)


class UserFacingConsoleFilter(logging.Filter):
    """Logging filter that only passes user-facing events to console.

    Allows events in USER_FACING_EVENTS, all ERROR and CRITICAL records, and
    everything when verbose mode is enabled.
    """

    def __init__(self, verbose: bool = False) -> None:
        super().__init__()
        self.verbose = verbose

    def filter(self, record: logging.LogRecord) -> bool:
        if self.verbose:
            return True

        if record.levelno >= logging.ERROR:
            return True

        # structlog passes the event dict as the record message
        event = record.msg.get("event") if isinstance(record.msg, dict) else None
        if event is None:
            event = record.getMessage()
        return isinstance(event, str) and event in USER_FACING_EVENTS


class UserFriendlyConsoleRenderer:
    """Renders user-facing logs in a clean, readable format for terminal output."""

    def __init__(self) -> None:
        self._fallback = ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        event = event_dict.get("event", "")
        level = str(event_dict.get("level", "info")).upper()

        if event == "sync_started":
            trigger = event_dict.get("trigger", "manual")
            mode = " (dry-run)" if event_dict.get("dry_run") else ""
            return f"Starting {trigger} sync{mode}"

        elif event == "sync_completed":
            created = event_dict.get("created", 0)
            updated = event_dict.get("updated", 0)
            deleted = event_dict.get("deleted", 0)
            duration = event_dict.get("duration_seconds", 0)
            return (
                f"Sync completed in {duration:.1f}s: "
                f"{created} created, {updated} updated, {deleted} deleted"
            )

        elif event == "sync_plan":
            return (
                f"Plan: {event_dict.get('create', 0)} to create, "
                f"{event_dict.get('update', 0)} to update, "
                f"{event_dict.get('delete', 0)} to delete, "
                f"{event_dict.get('decks_to_create', 0)} new decks"
            )

        elif event == "sync_short_circuited":
            return f"Nothing to sync: {event_dict.get('reason', 'no records')}"

        elif event == "sync_skipped_busy":
            return "Sync already in progress, trigger ignored"

        elif event == "sync_failed":
            error = event_dict.get("error", "Unknown error")
            return f"Sync failed: {error}"

        elif level == "ERROR":
            error = event_dict.get("error", event)
            return f"ERROR: {error}"

        elif level == "WARNING" and event in USER_FACING_EVENTS:
            return f"WARNING: {event}"

        return str(self._fallback(logger, method_name, event_dict))


# Global state for handlers
_configured = False
_handlers: list[logging.Handler] = []


def _base_processors() -> list[structlog.typing.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _setup_structlog() -> None:
    """Route structlog through the standard library handlers."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    structlog.configure(
        processors=[
            *_base_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    verbose: bool = False,
) -> None:
    """Configure structlog logging with console and optional file output.

    Args:
        log_level: Minimum console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for JSON log files; console only when None
        verbose: If True, show all log messages on terminal (for debugging)
    """
    global _configured

    _setup_structlog()

    root_logger = logging.getLogger()
    for handler in _handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _handlers.clear()

    level = _get_level_no(log_level)

    # Console handler - human-readable with colors
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.addFilter(UserFacingConsoleFilter(verbose=verbose))

    if verbose:
        renderer: Any = ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )
    else:
        renderer = UserFriendlyConsoleRenderer()

    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=_base_processors(),
        )
    )
    root_logger.addHandler(console_handler)
    _handlers.append(console_handler)

    if log_dir is not None:
        log_dir.mkdir(exist_ok=True, parents=True)
        file_formatter = structlog.stdlib.ProcessorFormatter(
            processor=JSONRenderer(),
            foreign_pre_chain=_base_processors(),
        )

        # 10MB per file, keep 5 backups
        file_handler = RotatingFileHandler(
            filename=str(log_dir / "siyuan-anki-sync.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)
        _handlers.append(file_handler)

        error_handler = RotatingFileHandler(
            filename=str(log_dir / "errors.log"),
            maxBytes=5 * 1024 * 1024,
            backupCount=10,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(file_formatter)
        root_logger.addHandler(error_handler)
        _handlers.append(error_handler)

    _configured = True

    get_logger("siyuan_anki_sync.utils.logging").debug(
        "logging_configured",
        console_level=log_level,
        log_dir=str(log_dir) if log_dir else None,
        verbose=verbose,
    )


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to the given name.

    Configures console-only logging on first use if configure_logging()
    has not been called yet.
    """
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)
