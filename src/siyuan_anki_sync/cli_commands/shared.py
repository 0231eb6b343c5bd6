"""Shared utilities for CLI commands."""

from pathlib import Path
from typing import Any

from rich.console import Console

from siyuan_anki_sync.config import Config, load_config, set_config
from siyuan_anki_sync.utils.logging import configure_logging, get_logger

# Shared console for all commands
console = Console()

# Cached per process; each CLI invocation loads the config once
_config: Config | None = None
_logger: Any | None = None


def get_config_and_logger(
    config_path: Path | None = None,
    log_level: str | None = None,
    verbose: bool = False,
) -> tuple[Config, Any]:
    """Load configuration and configure logging.

    Args:
        config_path: Optional path to config file
        log_level: Console log level; the configured level when None
        verbose: Show all log messages on terminal (for debugging)

    Returns:
        Tuple of (Config, Logger)

    Raises:
        ConfigurationError: If the configuration cannot be loaded
    """
    global _config, _logger

    if _config is None:
        _config = load_config(config_path)
        set_config(_config)

        configure_logging(
            log_level or _config.log_level,
            log_dir=_config.get_log_dir(),
            verbose=verbose,
        )
        _logger = get_logger("cli")

    return _config, _logger


def reset_cli_state() -> None:
    """Forget the cached config and logger (for tests)."""
    global _config, _logger
    _config = None
    _logger = None
