"""Namespaced access to the three primitive store operations.

Raw keys have one of two shapes, which can never collide because namespace and
key are percent-escaped (``:`` included) before joining:

    {prefix}:{namespace}:item:{key}    value record for a caller key
    {prefix}:{namespace}:index         the namespace's valid-key index

Store calls run in a worker thread so that every read and write is a
suspension point for the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING
from urllib.parse import quote

from namespaced_cache.cache.record import KeyWithMetadata, Record, decode_record, encode_record, is_expired, now_mse

if TYPE_CHECKING:
    from collections.abc import Callable

    from namespaced_cache.cache.protocol import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "cache"

_ITEM_SEGMENT = "item"
_INDEX_SEGMENT = "index"


def _escape(part: str) -> str:
    return quote(part, safe="")


def namespaced_key(prefix: str, namespace: str, key: str) -> str:
    """Return the raw store key for a caller key within a namespace."""
    return ":".join((prefix, _escape(namespace), _ITEM_SEGMENT, _escape(key)))


def index_key(prefix: str, namespace: str) -> str:
    """Return the reserved raw store key holding a namespace's index."""
    return ":".join((prefix, _escape(namespace), _INDEX_SEGMENT))


class RawStoreAccessor:
    def __init__(
        self,
        store: KeyValueStore,
        namespace: str,
        prefix: str = DEFAULT_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._namespace = namespace
        self._prefix = prefix
        self._clock = clock

    @property
    def namespace(self) -> str:
        return self._namespace

    def raw_key(self, key: str, *, reserved: bool = False) -> str:
        if reserved:
            return index_key(self._prefix, self._namespace)
        return namespaced_key(self._prefix, self._namespace, key)

    async def raw_set(
        self,
        key: str,
        value: str | None,
        seconds_until_expiration: float | None,
        *,
        reserved: bool = False,
    ) -> KeyWithMetadata:
        """Write or delete the record for ``key``.

        A None value removes the record and returns an entry already expired
        (``expires_at_mse=0``), which drops the key from the index on its next
        write.
        """
        raw_key = self.raw_key(key, reserved=reserved)

        if value is None:
            await asyncio.to_thread(self._store.remove_item, raw_key)
            logger.debug("Removed %s", raw_key)
            return KeyWithMetadata(key=key, expires_at_mse=0)

        expires_at_mse = (
            None
            if seconds_until_expiration is None
            else now_mse(self._clock) + int(seconds_until_expiration * 1000)
        )
        await asyncio.to_thread(self._store.set_item, raw_key, encode_record(value, expires_at_mse))
        logger.debug("Wrote %s (expires_at_mse=%s)", raw_key, expires_at_mse)
        return KeyWithMetadata(key=key, expires_at_mse=expires_at_mse)

    async def raw_get(self, key: str, *, reserved: bool = False) -> str | None:
        """Return the stored value, or None if missing or expired.

        Expired records are left in place; only the index purges them.
        """
        record = await self.read_record(key, reserved=reserved)
        if record is None or is_expired(record.expires_at_mse, now_mse(self._clock)):
            return None
        return record.value

    async def read_record(self, key: str, *, reserved: bool = False) -> Record | None:
        """Return the decoded record regardless of expiry, or None if missing."""
        raw_key = self.raw_key(key, reserved=reserved)
        data = await asyncio.to_thread(self._store.get_item, raw_key)
        if data is None:
            return None
        return decode_record(data, raw_key)
