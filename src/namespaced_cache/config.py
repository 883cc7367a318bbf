from __future__ import annotations

from typing import Protocol

from config import ConfigurationSet, config_from_dict, config_from_env, config_from_yaml

from namespaced_cache.cache.facade import CacheOptions


class AppConfig(Protocol):
    def __getitem__(self, key: str) -> object: ...


_DEFAULTS: dict[str, object] = {
    "cache": {
        "db_path": "~/.config/nscache/cache.db",
        "prefix": "cache",
        "default_seconds_until_expiration": 300,
    },
}

_NEVER_EXPIRE = {"", "none", "null", "never"}


def create_config(
    yaml_path: str = "config.yaml",
    env_prefix: str = "NSCACHE",
    defaults: dict[str, object] | None = None,
    *,
    db_path: str | None = None,
) -> ConfigurationSet:
    """Create a layered configuration.

    Priority (highest to lowest): explicit overrides > env vars > YAML file > defaults dict.

    Args:
        yaml_path: Path to the YAML config file.
        env_prefix: Prefix for environment variables (``NSCACHE__CACHE__DB_PATH``).
        defaults: Default configuration values.
        db_path: Override the store's database path.
    """
    if defaults is None:
        defaults = _DEFAULTS

    layers = [
        config_from_env(env_prefix, separator="__", lowercase_keys=True),
        config_from_yaml(yaml_path, read_from_file=True, ignore_missing_paths=True),
        config_from_dict(defaults),
    ]
    if db_path is not None:
        layers.insert(0, config_from_dict({"cache": {"db_path": db_path}}))

    return ConfigurationSet(*layers)


def parse_seconds_until_expiration(raw: object) -> float | None:
    """Parse a configured TTL; None-like values mean never expire.

    Env vars arrive as strings, so numeric strings are accepted.
    """
    if raw is None:
        return None
    if isinstance(raw, int | float) and not isinstance(raw, bool):
        return raw
    text = str(raw).strip()
    if text.lower() in _NEVER_EXPIRE:
        return None
    try:
        return float(text) if "." in text else int(text)
    except ValueError:
        raise ValueError(f"invalid cache.default_seconds_until_expiration: {raw!r}") from None


def load_cache_options(namespace: str, cfg: AppConfig | None = None) -> CacheOptions:
    if cfg is None:
        cfg = create_config()
    return CacheOptions(
        namespace=namespace,
        default_seconds_until_expiration=parse_seconds_until_expiration(cfg["cache.default_seconds_until_expiration"]),
        prefix=str(cfg["cache.prefix"]),
    )
