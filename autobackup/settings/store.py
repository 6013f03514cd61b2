"""Key-value stores holding the persisted settings document."""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

_DELETED = object()


class SettingsStore(Protocol):
    """Persistence interface the scheduler consumes.

    ``get`` and ``save`` raise :class:`OSError` when the underlying storage
    cannot be read or written.
    """

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, document: Mapping[str, Any]) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def save(self) -> None:
        ...


class MemoryStore:
    """In-process store, mainly for embedding and tests."""

    def __init__(
        self,
        initial: Optional[Mapping[str, Any]] = None,
        *,
        fail_on_save: bool = False,
        fail_on_get: bool = False,
    ) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self._lock = threading.Lock()
        self.fail_on_save = fail_on_save
        self.fail_on_get = fail_on_get
        self.save_count = 0

    def get(self, key: str) -> Optional[Any]:
        if self.fail_on_get:
            raise OSError("settings store unavailable")
        with self._lock:
            return copy.deepcopy(self._data.get(key))

    def set(self, key: str, document: Mapping[str, Any]) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(dict(document))

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def save(self) -> None:
        if self.fail_on_save:
            raise OSError("settings store is read-only")
        with self._lock:
            self.save_count += 1


class JsonFileStore:
    """A single JSON object on disk whose top-level keys are documents.

    Every :meth:`get` reads the file, so edits made by other processes are
    seen immediately. :meth:`set` and :meth:`delete` are staged in memory and
    shadow the file until :meth:`save` merges them onto a fresh read and
    writes the result atomically. Staging a value equal to what is on disk
    drops the staged entry.

    A file that is not valid JSON (or not UTF-8) is logged and read as empty.
    Other read failures, such as permissions, raise :class:`OSError`.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._pending: Dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def has_pending_changes(self) -> bool:
        with self._lock:
            return bool(self._pending)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            if key in self._pending:
                value = self._pending[key]
            else:
                value = self._read().get(key)
            if value is _DELETED:
                return None
            return copy.deepcopy(value)

    def set(self, key: str, document: Mapping[str, Any]) -> None:
        with self._lock:
            self._stage(key, copy.deepcopy(dict(document)))

    def delete(self, key: str) -> None:
        with self._lock:
            self._stage(key, _DELETED)

    def save(self) -> None:
        with self._lock:
            data = self._read()
            for key, value in self._pending.items():
                if value is _DELETED:
                    data.pop(key, None)
                else:
                    data[key] = value
            payload = json.dumps(data, indent=2, ensure_ascii=False)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self._path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
            self._pending.clear()

    def _stage(self, key: str, value: Any) -> None:
        on_disk = self._read().get(key, _DELETED)
        if on_disk is value or (value is not _DELETED and on_disk == value):
            self._pending.pop(key, None)
        else:
            self._pending[key] = value

    def _read(self) -> Dict[str, Any]:
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error(
                "Settings file is not valid JSON, reading it as empty",
                extra={"path": str(self._path), "error": str(exc)},
            )
            return {}
        if not isinstance(data, dict):
            logger.error(
                "Settings file root is not an object, reading it as empty",
                extra={"path": str(self._path)},
            )
            return {}
        return data
