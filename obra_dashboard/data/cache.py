"""
Persistent key/value cache with per-entry TTL.

Entries expire when ``now - timestamp > ttl``. Expired entries are deleted
lazily on read; nothing sweeps the store. Storage failures are logged and
swallowed so the dashboard keeps working (slower) with caching disabled.
"""
from __future__ import annotations

import copy
import hashlib
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

import structlog

from obra_dashboard.config import config

logger = structlog.get_logger(__name__)


class CacheStorageError(Exception):
    """Raised by a storage backend when the medium cannot be read or written."""
    pass


@dataclass
class CacheEntry:
    """Cached payload with its creation time and TTL (both in seconds)."""
    data: Any
    timestamp: float
    expiry: float

    def age(self, now: float) -> float:
        return now - self.timestamp

    def is_expired(self, now: float) -> bool:
        return self.age(now) > self.expiry

    def to_record(self) -> Dict[str, Any]:
        return {"data": self.data, "timestamp": self.timestamp, "expiry": self.expiry}

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CacheEntry":
        return cls(
            data=record["data"],
            timestamp=float(record["timestamp"]),
            expiry=float(record["expiry"]),
        )


# =============================================================================
# STORAGE BACKENDS
# =============================================================================

class CacheStorage(Protocol):
    """Keyed record store. Implementations raise CacheStorageError on failure."""

    def read(self, key: str) -> Optional[Dict[str, Any]]: ...

    def write(self, key: str, record: Dict[str, Any]) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryCacheStorage:
    """Process-local storage. Records are copied in and out so callers never share them."""

    def __init__(self):
        self._records: Dict[str, Dict[str, Any]] = {}

    def read(self, key: str) -> Optional[Dict[str, Any]]:
        record = self._records.get(key)
        return copy.deepcopy(record) if record is not None else None

    def write(self, key: str, record: Dict[str, Any]) -> None:
        self._records[key] = copy.deepcopy(record)

    def delete(self, key: str) -> None:
        self._records.pop(key, None)

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class FileCacheStorage:
    """
    One JSON file per key under a directory, surviving across sessions.

    File names are a hash of the key; the key itself is stored in the file.
    Writes go through a temporary file and ``replace`` so a reader never
    sees a half-written record.
    """

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory is not None else config.cache_dir

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def read(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CacheStorageError(f"Could not read cache file {path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise CacheStorageError(f"Unexpected cache file layout in {path}")
        if payload.get("key") != key:
            return None
        record = payload.get("record")
        if not isinstance(record, dict):
            raise CacheStorageError(f"Unexpected cache record in {path}")
        return record

    def write(self, key: str, record: Dict[str, Any]) -> None:
        path = self._path(key)
        try:
            text = json.dumps({"key": key, "record": record}, ensure_ascii=False)
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(text, encoding="utf-8")
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            raise CacheStorageError(f"Could not write cache file {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise CacheStorageError(f"Could not delete cache entry {key}: {exc}") from exc

    def clear(self) -> None:
        if not self.directory.exists():
            return
        try:
            for path in self.directory.glob("*.json"):
                path.unlink(missing_ok=True)
        except OSError as exc:
            raise CacheStorageError(f"Could not clear cache directory {self.directory}: {exc}") from exc


# =============================================================================
# CACHE
# =============================================================================

class PersistentCache:
    """
    TTL cache over a storage backend.

    ``set``/``get``/``remove``/``clear`` never raise storage errors. ``entry``
    returns the raw entry (stale or not) and lets storage errors propagate,
    which is what the stale-while-revalidate wrapper needs.
    """

    def __init__(self,
                 storage: Optional[CacheStorage] = None,
                 default_ttl: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        self.storage = storage if storage is not None else FileCacheStorage()
        self.default_ttl = float(default_ttl if default_ttl is not None else config.cache_default_ttl_seconds)
        self.clock = clock

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        entry = CacheEntry(
            data=value,
            timestamp=self.clock(),
            expiry=float(ttl if ttl is not None else self.default_ttl),
        )
        try:
            self.storage.write(key, entry.to_record())
        except CacheStorageError as exc:
            logger.warning("cache_write_failed", key=key, error=str(exc))

    def entry(self, key: str) -> Optional[CacheEntry]:
        record = self.storage.read(key)
        if record is None:
            return None
        try:
            return CacheEntry.from_record(record)
        except (KeyError, TypeError, ValueError) as exc:
            raise CacheStorageError(f"Malformed cache record for {key}: {exc}") from exc

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired (expired entries are deleted)."""
        try:
            entry = self.entry(key)
        except CacheStorageError as exc:
            logger.warning("cache_read_failed", key=key, error=str(exc))
            return None

        if entry is None:
            return None

        if entry.is_expired(self.clock()):
            self.remove(key)
            return None

        return entry.data

    def remove(self, key: str) -> None:
        try:
            self.storage.delete(key)
        except CacheStorageError as exc:
            logger.warning("cache_delete_failed", key=key, error=str(exc))

    def clear(self) -> None:
        try:
            self.storage.clear()
        except CacheStorageError as exc:
            logger.warning("cache_clear_failed", error=str(exc))
