"""Background backup scheduler."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from autobackup.config import SchedulerConfig
from autobackup.notifiers.base import PERFORM_BACKUP, NotificationSink
from autobackup.rules.interval_policy import is_due
from autobackup.services.manual_trigger import trigger_backup
from autobackup.settings.model import ensure_utc, format_timestamp, utc_now
from autobackup.settings.repository import SettingsRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(slots=True)
class CycleOutcome:
    """Result of a single evaluation cycle."""

    checked_at: datetime
    due: bool
    notified: bool = False
    persisted: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "checked_at": format_timestamp(self.checked_at),
            "due": self.due,
            "notified": self.notified,
            "persisted": self.persisted,
            "error": self.error,
        }


class BackupScheduler:
    """Wake periodically, and emit ``perform-backup`` whenever a backup is due.

    The loop runs on one daemon thread per :meth:`start`. It polls its stop
    signal every ``poll_interval`` and evaluates the settings every
    ``check_interval``. :meth:`stop` only requests the exit; an evaluation in
    progress is allowed to finish.
    """

    def __init__(
        self,
        repository: SettingsRepository,
        sink: NotificationSink,
        config: Optional[SchedulerConfig] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._repository = repository
        self._sink = sink
        self._config = config or SchedulerConfig()
        self._clock = clock
        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._running = False
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    def start(self) -> bool:
        """Spawn the loop unless it is already running. Never blocks."""

        with self._state_lock:
            if self._running:
                logger.debug("Scheduler already running")
                return False
            self._running = True
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                name="autobackup-scheduler",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()
        logger.info(
            "Scheduler started",
            extra={
                "poll_interval": self._config.poll_interval.total_seconds(),
                "check_interval": self._config.check_interval.total_seconds(),
            },
        )
        return True

    def stop(self) -> bool:
        """Ask the loop to exit at its next wake-up. Never blocks."""

        with self._state_lock:
            if not self._running:
                return False
            self._running = False
            if self._stop_event is not None:
                self._stop_event.set()
        logger.info("Scheduler stop requested")
        return True

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the most recent loop thread; ``True`` once it has exited."""

        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def backup_now(self) -> bool:
        return trigger_backup(self._sink)

    def run_cycle(self) -> CycleOutcome:
        """Evaluate once and notify if due.

        Failures are logged and reported in the returned outcome; nothing is
        raised. Cycles are serialized, even across a stop/start.
        """

        with self._cycle_lock:
            now = ensure_utc(self._clock())
            try:
                settings = self._repository.load()
            except OSError as exc:
                logger.error("Failed to read backup settings", extra={"error": str(exc)})
                return CycleOutcome(checked_at=now, due=False, error=f"read failed: {exc}")

            if not is_due(settings, now):
                return CycleOutcome(checked_at=now, due=False)

            logger.info(
                "Backup due, notifying",
                extra={
                    "frequency": settings.frequency.value,
                    "last_backup_date": settings.last_backup_date,
                },
            )
            try:
                self._sink.notify(PERFORM_BACKUP)
            except Exception as exc:
                logger.error("Backup notification not delivered", extra={"error": str(exc)})
                return CycleOutcome(
                    checked_at=now, due=True, error=f"notification failed: {exc}"
                )

            try:
                self._repository.mark_completed(now)
            except OSError as exc:
                # The next due check fires again.
                logger.error("Failed to record backup time", extra={"error": str(exc)})
                return CycleOutcome(
                    checked_at=now, due=True, notified=True, error=f"write failed: {exc}"
                )
            return CycleOutcome(checked_at=now, due=True, notified=True, persisted=True)

    def _run(self, stop_event: threading.Event) -> None:
        poll_seconds = self._config.poll_interval.total_seconds()
        check_seconds = self._config.check_interval.total_seconds()
        next_check = time.monotonic()
        if not self._config.run_immediately:
            next_check += check_seconds

        while not stop_event.is_set():
            remaining = next_check - time.monotonic()
            if remaining > 0:
                stop_event.wait(min(poll_seconds, remaining))
                continue
            try:
                self.run_cycle()
            except Exception:
                logger.exception("Unexpected error in scheduler cycle")
            next_check = time.monotonic() + check_seconds
        logger.info("Scheduler loop exited")
