"""Configuration schema for the autobackup scheduler.

This module defines dataclasses that describe how the scheduler is wired when
it runs inside a host application: where the settings document lives, how
often the loop wakes up, how logging is set up and, optionally, where the
``perform-backup`` notification should be delivered over HTTP.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional


@dataclass(slots=True)
class SettingsStoreConfig:
    """Location of the persisted settings document."""

    path: Path = field(default_factory=lambda: Path("./settings.json"))
    key: str = "settings"


@dataclass(slots=True)
class SchedulerConfig:
    """Timing knobs for the background scheduler."""

    poll_interval: timedelta = timedelta(seconds=1)
    check_interval: timedelta = timedelta(minutes=30)
    run_immediately: bool = True


@dataclass(slots=True)
class LogConfig:
    """Logging level and output format."""

    level: str = "INFO"
    format: str = "text"

    @property
    def json_format(self) -> bool:
        return self.format.lower() == "json"


@dataclass(slots=True)
class WebhookConfig:
    """Outgoing HTTP delivery of scheduler notifications."""

    url: str
    timeout: float = 5.0
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class AutoBackupConfig:
    """Top-level configuration bundle."""

    settings: SettingsStoreConfig = field(default_factory=SettingsStoreConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    log: LogConfig = field(default_factory=LogConfig)
    webhook: Optional[WebhookConfig] = None
