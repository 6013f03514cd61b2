"""Command line entry point for the autobackup scheduler."""
from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
from pathlib import Path
from typing import Sequence

from .config import AutoBackupConfig
from .config_loader import load_config
from .logging_setup import configure_logging
from .notifiers import CallbackSink, NotificationSink, WebhookSink
from .rules import is_due, next_due
from .services import BackupScheduler, trigger_backup
from .settings import (
    Frequency,
    JsonFileStore,
    SettingsRepository,
    format_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the YAML configuration file",
    )
    common.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Path to the settings JSON document (overrides settings.path)",
    )

    parser = argparse.ArgumentParser(description="Periodic backup scheduler")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser(
        "run",
        parents=[common],
        help="Run the scheduler in the foreground until interrupted",
    )
    sub.add_parser(
        "check",
        parents=[common],
        help="Run a single evaluation cycle and print the outcome",
    )
    sub.add_parser(
        "status",
        parents=[common],
        help="Show the current settings and when the next backup is due",
    )
    sub.add_parser(
        "backup-now",
        parents=[common],
        help="Emit a perform-backup notification immediately",
    )
    sub.add_parser(
        "mark-complete",
        parents=[common],
        help="Record a completed backup at the current time",
    )
    frequency = sub.add_parser(
        "set-frequency",
        parents=[common],
        help="Change the backup frequency",
    )
    frequency.add_argument("frequency", choices=[member.value for member in Frequency])

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    if args.settings is not None:
        config.settings.path = args.settings
    configure_logging(config.log.level, json_format=config.log.json_format)

    handlers = {
        "run": _command_run,
        "check": _command_check,
        "status": _command_status,
        "backup-now": _command_backup_now,
        "mark-complete": _command_mark_complete,
        "set-frequency": _command_set_frequency,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.error("unknown command")
        return 1
    return handler(args, config)


def _build_repository(config: AutoBackupConfig) -> SettingsRepository:
    return SettingsRepository(JsonFileStore(config.settings.path), key=config.settings.key)


def _build_sink(config: AutoBackupConfig) -> NotificationSink:
    if config.webhook is not None:
        return WebhookSink(config.webhook)
    return CallbackSink(_log_event)


def _log_event(event: str) -> None:
    logger.warning("No webhook configured, event %s was only logged", event)


def _close_sink(sink: NotificationSink) -> None:
    if isinstance(sink, WebhookSink):
        sink.close()


def _command_run(args: argparse.Namespace, config: AutoBackupConfig) -> int:
    sink = _build_sink(config)
    scheduler = BackupScheduler(_build_repository(config), sink, config.scheduler)
    shutdown = threading.Event()

    def _request_shutdown(signum, frame) -> None:  # pragma: no cover - signal driven
        logger.info("Received signal %s, stopping scheduler", signum)
        shutdown.set()

    signal.signal(signal.SIGTERM, _request_shutdown)
    signal.signal(signal.SIGINT, _request_shutdown)

    scheduler.start()
    try:
        while not shutdown.wait(1.0):
            pass
    finally:
        scheduler.stop()
        scheduler.join(timeout=config.scheduler.poll_interval.total_seconds() + 5)
        _close_sink(sink)
    return 0


def _command_check(args: argparse.Namespace, config: AutoBackupConfig) -> int:
    sink = _build_sink(config)
    try:
        scheduler = BackupScheduler(_build_repository(config), sink, config.scheduler)
        outcome = scheduler.run_cycle()
    finally:
        _close_sink(sink)
    print(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))
    return 0


def _command_status(args: argparse.Namespace, config: AutoBackupConfig) -> int:
    settings = _build_repository(config).load()
    now = utc_now()
    upcoming = next_due(settings, now)
    output = {
        "settings_path": str(config.settings.path),
        "frequency": settings.frequency.value,
        "last_backup_date": settings.last_backup_date,
        "due": is_due(settings, now),
        "next_due": format_timestamp(upcoming) if upcoming is not None else None,
    }
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def _command_backup_now(args: argparse.Namespace, config: AutoBackupConfig) -> int:
    sink = _build_sink(config)
    try:
        delivered = trigger_backup(sink)
    finally:
        _close_sink(sink)
    return 0 if delivered else 1


def _command_mark_complete(args: argparse.Namespace, config: AutoBackupConfig) -> int:
    settings = _build_repository(config).mark_completed(utc_now())
    print(json.dumps(settings.to_document(), indent=2, ensure_ascii=False))
    return 0


def _command_set_frequency(args: argparse.Namespace, config: AutoBackupConfig) -> int:
    settings = _build_repository(config).update_frequency(args.frequency)
    print(json.dumps(settings.to_document(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
