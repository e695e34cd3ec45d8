"""Small TTL caches injected into the token provider and the shortcode resolver.

Both caches share the same surface: ``get(key)``, ``set(key, value, ttl)`` and
``invalidate(key=None)``. Entries past their expiry read as missing. The clock
is injectable so expiry can be exercised without sleeping.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class MemoryCache:
    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, float | None]] = {}

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        expires_at = self._clock() + ttl if ttl is not None else None
        self._entries[key] = (value, expires_at)

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)


class FileCache:
    """JSON file cache that survives process restarts.

    Values must be JSON serializable. An unreadable file is treated as empty.
    The file is read once per instance; later reads are served from memory
    and every write goes through to disk.
    """

    def __init__(self, path: str, clock: Clock = time.time) -> None:
        self.path = Path(path)
        self._clock = clock
        self._data: dict[str, Any] | None = None

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("[CACHE] ignoring unreadable cache file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            self._data = self._read()
        return self._data

    def _save(self, data: dict[str, Any]) -> None:
        self._data = data
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")

    def get(self, key: str) -> Any:
        entry = self._load().get(key)
        if not isinstance(entry, dict):
            return None
        expires_at = entry.get("expires_at")
        if expires_at is not None and self._clock() >= float(expires_at):
            self.invalidate(key)
            return None
        return entry.get("value")

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        data = self._load()
        data[key] = {"value": value, "expires_at": self._clock() + ttl if ttl is not None else None}
        self._save(data)

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._data = {}
            if self.path.exists():
                self.path.unlink()
            return
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)
