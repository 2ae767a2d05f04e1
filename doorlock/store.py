"""Key-value persistence backings for the door lock state."""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Protocol, cast

from .config import DEFAULT_CONFIG, DoorLockConfig

logger = logging.getLogger("doorlock.store")


class StoreError(Exception):
    """Raised when persisted state cannot be written."""


class PersistentStore(Protocol):
    """String key-value store consumed by the lock controller."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store; nothing outlives the interpreter."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def as_dict(self) -> Dict[str, str]:
        return dict(self._data)


class JsonFileStore:
    """Thread-safe store that writes every mutation through to a JSON file."""

    def __init__(self, config: DoorLockConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self.config.ensure_directories()
        self.path: Path = self.config.state_location
        self._lock = threading.RLock()
        self._cache: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, exc)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring state file %s; expected a JSON object", self.path)
            return
        for key, value in cast(Dict[str, object], data).items():
            # Only strings are valid values; anything else is treated as absent.
            if isinstance(value, str):
                self._cache[key] = value

    def reload(self) -> None:
        """Force a fresh read from disk."""
        with self._lock:
            self._cache.clear()
            self._load()

    def _persist(self) -> None:
        with self._lock:
            try:
                self.path.write_text(json.dumps(self._cache, indent=2, sort_keys=True))
            except OSError as exc:
                raise StoreError(f"Failed to write {self.path}: {exc}") from exc

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._cache.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._cache[key] = str(value)
            self._persist()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._cache.pop(key, None) is not None:
                self._persist()

    def as_dict(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._cache)
