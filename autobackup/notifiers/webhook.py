"""Deliver scheduler events to an HTTP endpoint."""
from __future__ import annotations

import logging
from typing import Callable, Optional

import httpx

from autobackup.config import WebhookConfig
from autobackup.notifiers.base import NotificationError
from autobackup.settings.model import format_timestamp, utc_now

logger = logging.getLogger(__name__)


class WebhookSink:
    """POST ``{"event": ..., "sent_at": ...}`` to the configured URL.

    Any transport error or non-2xx status is reported as
    :class:`NotificationError`.
    """

    def __init__(
        self,
        config: WebhookConfig,
        client: Optional[httpx.Client] = None,
        clock: Callable = utc_now,
    ) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=config.timeout)
        self._clock = clock

    def notify(self, event: str) -> None:
        payload = {"event": event, "sent_at": format_timestamp(self._clock())}
        try:
            response = self._client.post(
                self._config.url,
                json=payload,
                headers=self._config.headers or None,
                timeout=self._config.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NotificationError(
                f"webhook rejected {event!r} with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise NotificationError(f"webhook delivery failed for {event!r}: {exc}") from exc
        logger.debug("Webhook delivered", extra={"event": event, "url": self._config.url})

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "WebhookSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
