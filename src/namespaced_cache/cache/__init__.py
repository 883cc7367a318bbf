from namespaced_cache.cache.facade import DEFAULT, Cache, CacheOptions, create_cache
from namespaced_cache.cache.memory_store import MemoryKeyValueStore
from namespaced_cache.cache.protocol import KeyValueStore
from namespaced_cache.cache.serializer import WriteSerializer
from namespaced_cache.cache.sqlite_store import SqliteKeyValueStore

__all__ = [
    "DEFAULT",
    "Cache",
    "CacheOptions",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
    "WriteSerializer",
    "create_cache",
]
