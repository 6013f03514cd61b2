"""Decide whether a backup is due."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from autobackup.settings.model import (
    BackupSettings,
    Frequency,
    InvalidTimestampError,
    ensure_utc,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

_INTERVALS = {
    Frequency.DAILY: timedelta(days=1),
    Frequency.WEEKLY: timedelta(days=7),
}


def required_interval(frequency: Frequency | str) -> timedelta:
    """Return the minimum time between two backups for ``frequency``."""

    return _INTERVALS[Frequency.parse(frequency)]


def is_due(settings: BackupSettings, now: datetime) -> bool:
    """Return ``True`` once a full interval has elapsed since the last backup.

    The boundary is inclusive. A settings document that has never recorded a
    backup is always due. A malformed timestamp is logged and reported as not
    due so the next cycle can try again.
    """

    if settings.last_backup_date is None:
        logger.debug("No previous backup recorded, backup is due")
        return True

    try:
        last_backup = parse_timestamp(settings.last_backup_date)
    except InvalidTimestampError:
        logger.error(
            "Cannot parse last backup date, skipping this cycle",
            extra={"last_backup_date": settings.last_backup_date},
        )
        return False

    now = ensure_utc(now)
    elapsed = now - last_backup
    if elapsed < timedelta(0):
        logger.warning(
            "Last backup date is in the future",
            extra={"last_backup_date": settings.last_backup_date, "now": now.isoformat()},
        )
        return False

    interval = required_interval(settings.frequency)
    due = elapsed >= interval
    logger.debug(
        "Due check: elapsed=%ss required=%ss due=%s",
        int(elapsed.total_seconds()),
        int(interval.total_seconds()),
        due,
    )
    return due


def next_due(settings: BackupSettings, now: datetime) -> Optional[datetime]:
    """Return when the next backup becomes due, or ``None`` if unknown."""

    now = ensure_utc(now)
    if settings.last_backup_date is None:
        return now
    try:
        last_backup = parse_timestamp(settings.last_backup_date)
    except InvalidTimestampError:
        return None
    try:
        return last_backup + required_interval(settings.frequency)
    except OverflowError:
        logger.warning(
            "Next backup date is out of range",
            extra={"last_backup_date": settings.last_backup_date},
        )
        return None
