"""Public cache API: namespaced ``get``/``set``/``keys`` with TTLs.

Usage:
    cache = create_cache("likes", default_seconds_until_expiration=60)
    await cache.set("donuts", "glazed")
    await cache.get("donuts")  # "glazed"
    await cache.keys()  # ["donuts"]
    await cache.set("donuts", None)  # invalidate

Visibility is decided by the valid-key index alone: a value record that exists
in the store but is not in the index reads as a miss.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from namespaced_cache.cache.accessor import DEFAULT_PREFIX, RawStoreAccessor
from namespaced_cache.cache.index import ValidKeyIndex
from namespaced_cache.cache.serializer import default_serializer

if TYPE_CHECKING:
    from collections.abc import Callable

    from namespaced_cache.cache.protocol import KeyValueStore
    from namespaced_cache.cache.serializer import WriteSerializer

logger = logging.getLogger(__name__)

DEFAULT_SECONDS_UNTIL_EXPIRATION = 5 * 60


class _Default(Enum):
    DEFAULT = "default"


DEFAULT = _Default.DEFAULT
"""Marker for "use the cache's default TTL" in ``Cache.set``."""

type Ttl = float | None | _Default


@dataclass(frozen=True)
class CacheOptions:
    """Construction-time settings for one cache instance.

    Attributes:
        namespace: Scopes every key of the cache within the shared store.
        default_seconds_until_expiration: TTL applied when ``set`` is not given
            one. None means items never expire.
        prefix: Leading segment of every raw store key.
    """

    namespace: str
    default_seconds_until_expiration: float | None = DEFAULT_SECONDS_UNTIL_EXPIRATION
    prefix: str = DEFAULT_PREFIX


class Cache:
    def __init__(
        self,
        options: CacheOptions,
        store: KeyValueStore,
        serializer: WriteSerializer | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._options = options
        self._accessor = RawStoreAccessor(store, options.namespace, prefix=options.prefix, clock=clock)
        self._serializer = serializer if serializer is not None else default_serializer()
        self._index = ValidKeyIndex(self._accessor, clock=clock, serializer=self._serializer)

    @property
    def namespace(self) -> str:
        return self._options.namespace

    @property
    def options(self) -> CacheOptions:
        return self._options

    async def get(self, key: str) -> str | None:
        """Return the cached value, or None on miss, expiry or invalidation."""
        valid = await self._index.read_valid()
        if not any(entry.key == key for entry in valid):
            logger.debug("Miss for %r in %r", key, self.namespace)
            return None
        return await self._accessor.raw_get(key)

    async def set(self, key: str, value: str | None, *, seconds_until_expiration: Ttl = DEFAULT) -> None:
        """Cache ``value`` under ``key``; a None value invalidates the key.

        Args:
            key: The cache key.
            value: String to cache, or None to invalidate.
            seconds_until_expiration: Per-item TTL. Defaults to the cache's
                default; None means never expire.
        """
        ttl = (
            self._options.default_seconds_until_expiration
            if seconds_until_expiration is DEFAULT
            else seconds_until_expiration
        )
        await self._serializer.run_exclusive(lambda: self._write(key, value, ttl))

    async def _write(self, key: str, value: str | None, ttl: float | None) -> None:
        # same slot as background purges of this namespace
        entry = await self._accessor.raw_set(key, value, ttl)
        await self._index.write_entry(entry)

    async def invalidate(self, key: str) -> None:
        await self.set(key, None)

    async def keys(self) -> list[str]:
        """Return the currently valid keys in index order."""
        return [entry.key for entry in await self._index.read_valid()]

    async def aclose(self) -> None:
        """Wait for background purges of expired records to finish."""
        await self._index.wait_for_purges()


def create_cache(
    namespace: str,
    default_seconds_until_expiration: float | None = DEFAULT_SECONDS_UNTIL_EXPIRATION,
    *,
    store: KeyValueStore | None = None,
    serializer: WriteSerializer | None = None,
    clock: Callable[[], float] = time.time,
    prefix: str = DEFAULT_PREFIX,
) -> Cache:
    """Create a cache for ``namespace``.

    Without an explicit ``store`` the SQLite store named by the app config's
    ``cache.db_path`` is used.
    """
    if store is None:
        from namespaced_cache.cache.factory import create_store

        store = create_store()
    options = CacheOptions(
        namespace=namespace,
        default_seconds_until_expiration=default_seconds_until_expiration,
        prefix=prefix,
    )
    return Cache(options, store, serializer=serializer, clock=clock)
