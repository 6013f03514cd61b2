"""Periodic backup scheduler core."""

from .cli import main as cli_main
from .config_loader import load_config
from .services import BackupScheduler, trigger_backup

__all__ = [
    "cli_main",
    "load_config",
    "BackupScheduler",
    "trigger_backup",
    "config",
    "notifiers",
    "rules",
    "services",
    "settings",
]
