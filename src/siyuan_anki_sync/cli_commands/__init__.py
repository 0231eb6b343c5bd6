"""CLI command modules for siyuan-anki-sync.

- shared.py: Common utilities (config/logger loading, console)
- sync_handler.py: sync and watch command implementation
- check_handler.py: check command implementation
- core_commands.py: Typer command registration
"""

from .check_handler import run_check
from .shared import console, get_config_and_logger
from .sync_handler import run_sync, run_watch

__all__ = [
    "console",
    "get_config_and_logger",
    "run_check",
    "run_sync",
    "run_watch",
]
