"""Backup settings document and timestamp helpers."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

FREQUENCY_KEY = "frequency"
LAST_BACKUP_KEY = "lastBackupDate"

# Older documents used these names; they are read but never written.
_LEGACY_FREQUENCY_KEY = "backupFrequency"
_LEGACY_LAST_BACKUP_KEY = "last_backup_date"


class SettingsError(ValueError):
    """Raised when the persisted settings cannot be interpreted."""


class InvalidTimestampError(SettingsError):
    """Raised when ``lastBackupDate`` is not a valid RFC 3339 timestamp."""


class Frequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"

    @classmethod
    def parse(cls, value: Any) -> "Frequency":
        """Map a persisted value onto a frequency, falling back to daily."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        logger.warning("Unknown backup frequency %r, defaulting to daily", value)
        return cls.DAILY


@dataclass(slots=True, frozen=True)
class BackupSettings:
    """The two fields the scheduler cares about.

    ``last_backup_date`` stays the raw persisted string; it is parsed by the
    interval policy so a malformed value only affects the due check.
    """

    frequency: Frequency = Frequency.DAILY
    last_backup_date: Optional[str] = None

    @classmethod
    def from_document(cls, document: Any) -> "BackupSettings":
        if document is None:
            logger.info("No settings document found, using defaults")
            return cls()
        if not isinstance(document, Mapping):
            logger.error(
                "Settings document is not a mapping, using defaults",
                extra={"document_type": type(document).__name__},
            )
            return cls()

        if FREQUENCY_KEY in document:
            raw_frequency = document[FREQUENCY_KEY]
        else:
            raw_frequency = document.get(_LEGACY_FREQUENCY_KEY, Frequency.DAILY.value)

        if LAST_BACKUP_KEY in document:
            raw_last = document[LAST_BACKUP_KEY]
        else:
            raw_last = document.get(_LEGACY_LAST_BACKUP_KEY)
        if raw_last is not None and not isinstance(raw_last, str):
            raw_last = str(raw_last)
        if raw_last is not None and not raw_last.strip():
            raw_last = None

        return cls(frequency=Frequency.parse(raw_frequency), last_backup_date=raw_last)

    def to_document(self) -> Dict[str, Optional[str]]:
        return {
            FREQUENCY_KEY: self.frequency.value,
            LAST_BACKUP_KEY: self.last_backup_date,
        }


def parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 / ISO 8601 timestamp into an aware UTC datetime.

    A trailing ``Z`` is accepted and naive values are interpreted as UTC.
    """

    if not isinstance(text, str):
        raise InvalidTimestampError(f"timestamp must be a string, got {type(text).__name__}")
    candidate = text.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(candidate))
    except (ValueError, OverflowError) as exc:
        raise InvalidTimestampError(f"invalid timestamp: {text!r}") from exc


def format_timestamp(moment: datetime) -> str:
    """Format ``moment`` as UTC ISO 8601 with a ``Z`` suffix."""

    return ensure_utc(moment).isoformat().replace("+00:00", "Z")


def ensure_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
