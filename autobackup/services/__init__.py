"""Service orchestration helpers."""

from .manual_trigger import trigger_backup
from .scheduler import BackupScheduler, CycleOutcome

__all__ = ["BackupScheduler", "CycleOutcome", "trigger_backup"]
