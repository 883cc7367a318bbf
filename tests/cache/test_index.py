from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from namespaced_cache.cache.accessor import RawStoreAccessor
from namespaced_cache.cache.index import ValidKeyIndex
from namespaced_cache.cache.memory_store import MemoryKeyValueStore
from namespaced_cache.cache.record import KeyWithMetadata, encode_entries, encode_record
from namespaced_cache.exceptions import RecordParseError

if TYPE_CHECKING:
    from tests.conftest import FakeClock

INDEX_KEY = "cache:ns:index"


def _stored_index(store: MemoryKeyValueStore) -> list[dict[str, object]]:
    record = json.loads(store.get_item(INDEX_KEY) or "")
    return json.loads(record["value"])


class _FailingRemoveStore(MemoryKeyValueStore):
    def remove_item(self, key: str) -> None:
        raise OSError("access denied")


class TestValidKeyIndex:
    @pytest.fixture
    def accessor(self, store: MemoryKeyValueStore, clock: FakeClock) -> RawStoreAccessor:
        return RawStoreAccessor(store, "ns", clock=clock)

    @pytest.fixture
    def index(self, accessor: RawStoreAccessor, clock: FakeClock) -> ValidKeyIndex:
        return ValidKeyIndex(accessor, clock=clock)

    @pytest.mark.asyncio
    async def test_missing_index_reads_as_empty(self, index: ValidKeyIndex) -> None:
        assert await index.read_valid() == []

    @pytest.mark.asyncio
    async def test_write_appends_entry(self, index: ValidKeyIndex) -> None:
        await index.write_entry(KeyWithMetadata("a", None))
        await index.write_entry(KeyWithMetadata("b", None))
        assert [e.key for e in await index.read_valid()] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_rewriting_key_moves_it_to_end_without_duplicating(self, index: ValidKeyIndex) -> None:
        await index.write_entry(KeyWithMetadata("a", None))
        await index.write_entry(KeyWithMetadata("b", None))
        await index.write_entry(KeyWithMetadata("a", None))
        assert [e.key for e in await index.read_valid()] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_expired_entry_removes_key(self, index: ValidKeyIndex) -> None:
        await index.write_entry(KeyWithMetadata("a", None))
        await index.write_entry(KeyWithMetadata("b", None))
        await index.write_entry(KeyWithMetadata("a", 0))
        assert [e.key for e in await index.read_valid()] == ["b"]

    @pytest.mark.asyncio
    async def test_replacement_carries_new_deadline(self, index: ValidKeyIndex) -> None:
        await index.write_entry(KeyWithMetadata("a", None))
        far_future = 10**15
        await index.write_entry(KeyWithMetadata("a", far_future))
        assert await index.read_valid() == [KeyWithMetadata("a", far_future)]

    @pytest.mark.asyncio
    async def test_index_record_never_expires(self, index: ValidKeyIndex, store: MemoryKeyValueStore) -> None:
        await index.write_entry(KeyWithMetadata("a", None))
        assert json.loads(store.get_item(INDEX_KEY) or "")["expiresAtMse"] is None

    @pytest.mark.asyncio
    async def test_read_filters_expired_and_purges_their_records(
        self, index: ValidKeyIndex, accessor: RawStoreAccessor, store: MemoryKeyValueStore, clock: FakeClock
    ) -> None:
        short = await accessor.raw_set("short", "1", 5)
        long = await accessor.raw_set("long", "2", 60)
        await index.write_entry(short)
        await index.write_entry(long)

        clock.advance(10)
        assert [e.key for e in await index.read_valid()] == ["long"]

        await index.wait_for_purges()
        assert store.get_item("cache:ns:item:short") is None
        assert store.get_item("cache:ns:item:long") is not None

    @pytest.mark.asyncio
    async def test_read_leaves_stored_index_untouched(
        self, index: ValidKeyIndex, store: MemoryKeyValueStore, clock: FakeClock
    ) -> None:
        deadline = int(clock.now * 1000) + 1000
        await index.write_entry(KeyWithMetadata("a", deadline))
        clock.advance(2)
        await index.read_valid()
        await index.wait_for_purges()
        assert _stored_index(store) == [{"key": "a", "expiresAtMse": deadline}]

    @pytest.mark.asyncio
    async def test_next_write_drops_lapsed_entries(
        self, index: ValidKeyIndex, store: MemoryKeyValueStore, clock: FakeClock
    ) -> None:
        await index.write_entry(KeyWithMetadata("a", int(clock.now * 1000) + 1000))
        clock.advance(2)
        await index.write_entry(KeyWithMetadata("b", None))
        await index.wait_for_purges()
        assert _stored_index(store) == [{"key": "b", "expiresAtMse": None}]

    @pytest.mark.asyncio
    async def test_purge_evicts_lapsed_record_nobody_read(
        self, index: ValidKeyIndex, accessor: RawStoreAccessor, store: MemoryKeyValueStore, clock: FakeClock
    ) -> None:
        await index.write_entry(await accessor.raw_set("k", "v", 1))
        clock.advance(2)
        assert await index.read_valid() == []
        await index.wait_for_purges()
        assert store.get_item("cache:ns:item:k") is None

    @pytest.mark.asyncio
    async def test_purge_spares_record_rewritten_after_entry_lapsed(
        self, index: ValidKeyIndex, accessor: RawStoreAccessor, store: MemoryKeyValueStore, clock: FakeClock
    ) -> None:
        await index.write_entry(await accessor.raw_set("k", "old", 1))
        clock.advance(2)
        await accessor.raw_set("k", "new", 60)

        await index.read_valid()
        await index.wait_for_purges()

        assert await accessor.raw_get("k") == "new"

    @pytest.mark.asyncio
    async def test_purge_spares_record_rewritten_without_expiration(
        self, index: ValidKeyIndex, accessor: RawStoreAccessor, clock: FakeClock
    ) -> None:
        await index.write_entry(await accessor.raw_set("k", "old", 1))
        clock.advance(2)
        await accessor.raw_set("k", "forever", None)

        await index.read_valid()
        await index.wait_for_purges()

        assert await accessor.raw_get("k") == "forever"

    @pytest.mark.asyncio
    async def test_failed_purge_is_logged_not_raised(
        self, clock: FakeClock, caplog: pytest.LogCaptureFixture
    ) -> None:
        store = _FailingRemoveStore()
        index = ValidKeyIndex(RawStoreAccessor(store, "ns", clock=clock), clock=clock)
        store.set_item(INDEX_KEY, encode_record(encode_entries([KeyWithMetadata("a", 1)]), None))

        with caplog.at_level(logging.WARNING, logger="namespaced_cache.cache.index"):
            assert await index.read_valid() == []
            await index.wait_for_purges()

        assert "access denied" in caplog.text

    @pytest.mark.asyncio
    async def test_corrupt_index_raises(self, index: ValidKeyIndex, store: MemoryKeyValueStore) -> None:
        store.set_item(INDEX_KEY, encode_record("not a list", None))
        with pytest.raises(RecordParseError):
            await index.read_valid()
