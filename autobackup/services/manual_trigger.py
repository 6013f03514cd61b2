"""User initiated "Backup Now" requests."""
from __future__ import annotations

import logging

from autobackup.notifiers.base import PERFORM_BACKUP, NotificationError, NotificationSink

logger = logging.getLogger(__name__)


def trigger_backup(sink: NotificationSink) -> bool:
    """Emit ``perform-backup`` right away, regardless of any scheduler state.

    The settings document is left untouched: whoever performs the backup
    reports completion through :meth:`SettingsRepository.mark_completed`.
    Returns ``False`` when the notification could not be delivered.
    """

    try:
        sink.notify(PERFORM_BACKUP)
    except NotificationError as exc:
        logger.error("Manual backup request not delivered", extra={"error": str(exc)})
        return False
    logger.info("Manual backup requested")
    return True
