"""The valid-key index: the authoritative list of keys a namespace considers live.

The index is stored as an ordinary never-expiring record next to the values it
describes. The store offers no transactions, so ``write_entry`` is a plain
read-modify-write and must only run inside the WriteSerializer. Background
purges of lapsed records queue in the same slot as value writes. Within one
runtime that makes index updates lossless and keeps a purge from deleting a
freshly set value. Across runtimes a racing writer can drop another's key from
the index. A dropped key reads as a miss, exactly as if it had never been
cached, so the race is tolerated rather than prevented.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from namespaced_cache.cache.record import decode_entries, encode_entries, is_expired, now_mse
from namespaced_cache.cache.serializer import default_serializer

if TYPE_CHECKING:
    from collections.abc import Callable

    from namespaced_cache.cache.accessor import RawStoreAccessor
    from namespaced_cache.cache.record import KeyWithMetadata
    from namespaced_cache.cache.serializer import WriteSerializer

logger = logging.getLogger(__name__)

_INDEX_RECORD = "index"


class ValidKeyIndex:
    def __init__(
        self,
        accessor: RawStoreAccessor,
        clock: Callable[[], float] = time.time,
        serializer: WriteSerializer | None = None,
    ) -> None:
        self._accessor = accessor
        self._clock = clock
        self._serializer = serializer if serializer is not None else default_serializer()
        self._purges: set[asyncio.Task[None]] = set()

    async def read_valid(self) -> list[KeyWithMetadata]:
        """Return the unexpired entries in stored order.

        Each expired entry schedules a background deletion of its value record.
        The entry itself stays in the stored index until the next write.
        """
        raw_key = self._accessor.raw_key(_INDEX_RECORD, reserved=True)
        data = await self._accessor.raw_get(_INDEX_RECORD, reserved=True)
        entries = decode_entries(data, raw_key) if data is not None else []

        now = now_mse(self._clock)
        valid: list[KeyWithMetadata] = []
        for entry in entries:
            if is_expired(entry.expires_at_mse, now):
                self._schedule_purge(entry)
            else:
                valid.append(entry)
        return valid

    async def write_entry(self, entry: KeyWithMetadata) -> None:
        """Replace ``entry.key``'s entry; an expired entry only removes it.

        Must be called while holding the WriteSerializer's slot.
        """
        entries = [e for e in await self.read_valid() if e.key != entry.key]
        if not is_expired(entry.expires_at_mse, now_mse(self._clock)):
            entries.append(entry)
        await self._accessor.raw_set(_INDEX_RECORD, encode_entries(entries), None, reserved=True)
        logger.debug("Index for %r now holds %d keys", self._accessor.namespace, len(entries))

    async def wait_for_purges(self) -> None:
        """Wait until every scheduled purge has finished."""
        while self._purges:
            await asyncio.gather(*self._purges, return_exceptions=True)

    def _schedule_purge(self, lapsed: KeyWithMetadata) -> None:
        task = asyncio.create_task(self._serializer.run_exclusive(lambda: self._purge(lapsed)))
        self._purges.add(task)
        task.add_done_callback(self._on_purge_done)

    async def _purge(self, lapsed: KeyWithMetadata) -> None:
        """Delete the value record a lapsed entry described.

        Runs in the WriteSerializer slot, so no value write of this runtime can
        land between the read and the delete. A record rewritten after the
        entry lapsed carries a later deadline (or none) and is left alone.
        """
        record = await self._accessor.read_record(lapsed.key)
        if record is not None and _is_newer(record.expires_at_mse, lapsed.expires_at_mse):
            logger.debug("Skipping purge of rewritten key %r in %r", lapsed.key, self._accessor.namespace)
            return
        await self._accessor.raw_set(lapsed.key, None, None)
        logger.debug("Purged expired key %r from %r", lapsed.key, self._accessor.namespace)

    def _on_purge_done(self, task: asyncio.Task[None]) -> None:
        self._purges.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Failed to purge expired record in %r: %s", self._accessor.namespace, exc)


def _is_newer(record_deadline: int | None, lapsed_deadline: int | None) -> bool:
    if record_deadline is None:
        return lapsed_deadline is not None
    return lapsed_deadline is not None and record_deadline > lapsed_deadline
