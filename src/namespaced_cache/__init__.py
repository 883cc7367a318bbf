from namespaced_cache.cache import DEFAULT, Cache, CacheOptions, KeyValueStore, create_cache
from namespaced_cache.exceptions import CacheError, RecordParseError

__all__ = [
    "DEFAULT",
    "Cache",
    "CacheError",
    "CacheOptions",
    "KeyValueStore",
    "RecordParseError",
    "create_cache",
]
