"""Utilities to load :mod:`autobackup.config` structures from YAML files."""
from __future__ import annotations

import datetime as _dt
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .config import (
    AutoBackupConfig,
    LogConfig,
    SchedulerConfig,
    SettingsStoreConfig,
    WebhookConfig,
)

_DURATION_UNITS = {
    "s": _dt.timedelta(seconds=1),
    "m": _dt.timedelta(minutes=1),
    "h": _dt.timedelta(hours=1),
    "d": _dt.timedelta(days=1),
}

_LOG_FORMATS = ("text", "json")


def load_config(path: Optional[Path]) -> AutoBackupConfig:
    """Load a configuration file into :class:`AutoBackupConfig`.

    The loader accepts human friendly values such as ``"30s"`` or ``"30m"`` for
    durations and converts them into :class:`datetime.timedelta` objects.  Fields
    omitted in the YAML file fall back to the defaults declared in
    :mod:`autobackup.config`.  Passing ``None`` returns the defaults.
    """

    if path is None:
        return AutoBackupConfig()

    raw = _load_yaml(path)

    settings_section = _section(raw, "settings")
    defaults = SettingsStoreConfig()
    settings = SettingsStoreConfig(
        path=Path(settings_section.get("path", defaults.path)),
        key=str(settings_section.get("key", defaults.key)),
    )

    scheduler_section = _section(raw, "scheduler")
    scheduler = SchedulerConfig(
        poll_interval=_parse_duration(scheduler_section.get("poll_interval", "1s")),
        check_interval=_parse_duration(scheduler_section.get("check_interval", "30m")),
        run_immediately=bool(scheduler_section.get("run_immediately", True)),
    )
    if scheduler.poll_interval <= _dt.timedelta(0):
        raise ValueError("scheduler.poll_interval must be positive")
    if scheduler.check_interval <= _dt.timedelta(0):
        raise ValueError("scheduler.check_interval must be positive")

    log_section = _section(raw, "log")
    log = LogConfig(
        level=str(log_section.get("level", "INFO")).upper(),
        format=str(log_section.get("format", "text")).lower(),
    )
    if log.format not in _LOG_FORMATS:
        raise ValueError(f"unsupported log format: {log.format}")

    webhook_cfg = None
    if raw.get("webhook"):
        webhook_section = _section(raw, "webhook")
        if not webhook_section.get("url"):
            raise ValueError("webhook.url is required when webhook is configured")
        webhook_cfg = WebhookConfig(
            url=str(webhook_section["url"]),
            timeout=float(webhook_section.get("timeout", 5.0)),
            headers={str(k): str(v) for k, v in (webhook_section.get("headers") or {}).items()},
        )

    return AutoBackupConfig(
        settings=settings,
        scheduler=scheduler,
        log=log,
        webhook=webhook_cfg,
    )


def _load_yaml(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError("configuration root must be a mapping")
    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        raise ValueError(f"configuration section {name!r} must be a mapping")
    return value


def _parse_duration(value: Any) -> _dt.timedelta:
    if isinstance(value, _dt.timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"unsupported duration value: {value!r}")
    if isinstance(value, (int, float)):
        return _dt.timedelta(seconds=float(value))
    if not isinstance(value, str):
        raise ValueError(f"unsupported duration value: {value!r}")
    value = value.strip()
    if value.isdigit():
        return _dt.timedelta(seconds=int(value))
    unit = value[-1:].lower()
    if unit not in _DURATION_UNITS:
        raise ValueError(f"unknown duration unit: {value}")
    try:
        amount = float(value[:-1])
    except ValueError as exc:
        raise ValueError(f"invalid duration: {value}") from exc
    base = _DURATION_UNITS[unit]
    return _dt.timedelta(seconds=base.total_seconds() * amount)
