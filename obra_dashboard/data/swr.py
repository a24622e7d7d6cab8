"""
Stale-while-revalidate wrapper around any async fetch.

Tiers, by entry age:
- missing, or older than ``max_stale_seconds`` -> await the producer
- older than its own TTL -> return the stale value, refresh in the background
- otherwise -> return the cached value
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from obra_dashboard.config import config
from obra_dashboard.data.cache import CacheStorageError, PersistentCache

logger = structlog.get_logger(__name__)

Producer = Callable[[], Awaitable[Any]]


class StaleWhileRevalidate:
    """Cache-first fetches over a PersistentCache."""

    def __init__(self, cache: PersistentCache, max_stale_seconds: Optional[float] = None):
        self.cache = cache
        self.max_stale_seconds = float(
            max_stale_seconds if max_stale_seconds is not None else config.max_stale_seconds
        )
        self._refreshing: Dict[str, asyncio.Task] = {}

    async def get_with_swr(self, key: str, producer: Producer, ttl: Optional[float] = None) -> Any:
        try:
            entry = self.cache.entry(key)
        except CacheStorageError as exc:
            logger.warning("swr_cache_read_failed", key=key, error=str(exc))
            value = await producer()
            self.cache.set(key, value, ttl)
            return value

        now = self.cache.clock()

        if entry is None or entry.age(now) > self.max_stale_seconds:
            value = await producer()
            self.cache.set(key, value, ttl)
            return value

        if entry.is_expired(now):
            self._schedule_refresh(key, producer, ttl)

        return entry.data

    def _schedule_refresh(self, key: str, producer: Producer, ttl: Optional[float]) -> None:
        if key in self._refreshing:
            return
        task = asyncio.get_running_loop().create_task(self._refresh(key, producer, ttl))
        self._refreshing[key] = task
        task.add_done_callback(lambda _t: self._refreshing.pop(key, None))

    async def _refresh(self, key: str, producer: Producer, ttl: Optional[float]) -> None:
        try:
            value = await producer()
        except Exception:
            logger.exception("swr_background_refresh_failed", key=key)
            return
        self.cache.set(key, value, ttl)
        logger.info("swr_background_refresh_done", key=key)

    @property
    def pending_refreshes(self) -> int:
        return len(self._refreshing)

    async def drain(self) -> None:
        """Wait for in-flight background refreshes."""
        tasks = list(self._refreshing.values())
        if tasks:
            await asyncio.gather(*tasks)
