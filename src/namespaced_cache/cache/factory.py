from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from namespaced_cache.cache.facade import Cache
from namespaced_cache.cache.sqlite_store import SqliteKeyValueStore

if TYPE_CHECKING:
    from namespaced_cache.cache.protocol import KeyValueStore
    from namespaced_cache.config import AppConfig


def create_store(config: AppConfig | None = None) -> SqliteKeyValueStore:
    """Build a SqliteKeyValueStore from the app config's ``cache.db_path``."""
    if config is None:
        from namespaced_cache.config import create_config

        config = create_config()
    db_path = Path(str(config["cache.db_path"])).expanduser()
    return SqliteKeyValueStore(db_path)


def create_configured_cache(
    namespace: str,
    config: AppConfig | None = None,
    store: KeyValueStore | None = None,
) -> Cache:
    """Build a Cache whose TTL default, key prefix and store all come from the app config."""
    from namespaced_cache.config import create_config, load_cache_options

    if config is None:
        config = create_config()
    if store is None:
        store = create_store(config)
    return Cache(load_cache_options(namespace, config), store)
