"""
Shared fixtures: a controllable clock and an in-memory cache stack.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from obra_dashboard.data.cache import MemoryCacheStorage, PersistentCache
from obra_dashboard.data.swr import StaleWhileRevalidate


class FakeClock:
    """Epoch seconds that only move when told to."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryCacheStorage()


@pytest.fixture
def cache(storage, clock):
    return PersistentCache(storage, default_ttl=100, clock=clock)


@pytest.fixture
def swr(cache):
    return StaleWhileRevalidate(cache, max_stale_seconds=7 * 24 * 60 * 60)
