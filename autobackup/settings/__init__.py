"""Persisted backup settings: model, stores and repository."""

from .model import (
    BackupSettings,
    Frequency,
    InvalidTimestampError,
    SettingsError,
    format_timestamp,
    parse_timestamp,
    utc_now,
)
from .repository import DEFAULT_SETTINGS_KEY, SettingsRepository
from .store import JsonFileStore, MemoryStore, SettingsStore

__all__ = [
    "BackupSettings",
    "Frequency",
    "InvalidTimestampError",
    "SettingsError",
    "format_timestamp",
    "parse_timestamp",
    "utc_now",
    "DEFAULT_SETTINGS_KEY",
    "SettingsRepository",
    "JsonFileStore",
    "MemoryStore",
    "SettingsStore",
]
