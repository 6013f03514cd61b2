"""Notification backends."""

from .base import (
    PERFORM_BACKUP,
    CallbackSink,
    EventBus,
    NotificationError,
    NotificationSink,
)
from .webhook import WebhookSink

__all__ = [
    "PERFORM_BACKUP",
    "CallbackSink",
    "EventBus",
    "NotificationError",
    "NotificationSink",
    "WebhookSink",
]
