"""Shared pytest fixtures for test modules."""

from __future__ import annotations

import uuid

import pytest

from namespaced_cache.cache.facade import Cache, create_cache
from namespaced_cache.cache.memory_store import MemoryKeyValueStore
from namespaced_cache.cache.serializer import WriteSerializer


class FakeClock:
    """Manually advanced clock returning epoch seconds, like ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def namespace() -> str:
    """A fresh namespace per test, so caches never observe each other's keys."""
    return str(uuid.uuid4())


@pytest.fixture
def cache(namespace: str, store: MemoryKeyValueStore, clock: FakeClock) -> Cache:
    """A cache on an in-memory store with the default five-minute TTL.

    Usage:
        async def test_something(cache: Cache, clock: FakeClock) -> None:
            await cache.set("k", "v")
            clock.advance(301)
            assert await cache.get("k") is None
    """
    return create_cache(namespace, store=store, serializer=WriteSerializer(), clock=clock)
