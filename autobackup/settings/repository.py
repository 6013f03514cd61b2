"""Read and update the backup settings document through a store."""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Mapping

from .model import (
    FREQUENCY_KEY,
    LAST_BACKUP_KEY,
    BackupSettings,
    Frequency,
    format_timestamp,
)
from .store import SettingsStore

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_KEY = "settings"


class SettingsRepository:
    """Typed access to the settings document.

    Store failures (:class:`OSError`) are not handled here; callers decide
    whether a failed read or write is fatal.
    """

    def __init__(self, store: SettingsStore, key: str = DEFAULT_SETTINGS_KEY) -> None:
        self._store = store
        self._key = key
        self._write_lock = threading.Lock()

    @property
    def store(self) -> SettingsStore:
        return self._store

    def load(self) -> BackupSettings:
        return BackupSettings.from_document(self._store.get(self._key))

    def mark_completed(self, when: datetime) -> BackupSettings:
        """Record a finished backup at ``when`` and persist it."""

        stamp = format_timestamp(when)
        settings = self._update({LAST_BACKUP_KEY: stamp})
        logger.info("Recorded completed backup", extra={"last_backup_date": stamp})
        return settings

    def update_frequency(self, frequency: Frequency | str) -> BackupSettings:
        value = Frequency.parse(frequency)
        settings = self._update({FREQUENCY_KEY: value.value})
        logger.info("Backup frequency updated", extra={"frequency": value.value})
        return settings

    def _update(self, changes: Mapping[str, Any]) -> BackupSettings:
        with self._write_lock:
            current = self._store.get(self._key)
            document: Dict[str, Any] = dict(current) if isinstance(current, Mapping) else {}
            if FREQUENCY_KEY not in document:
                document[FREQUENCY_KEY] = BackupSettings.from_document(current).frequency.value
            document.update(changes)
            self._store.set(self._key, document)
            try:
                self._store.save()
            except OSError:
                # set() is already applied in memory; restore it.
                if isinstance(current, Mapping):
                    self._store.set(self._key, current)
                else:
                    self._store.delete(self._key)
                raise
        return BackupSettings.from_document(document)
