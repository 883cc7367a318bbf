"""Cache wrapper for async functions that produce strings.

Usage:
    cache = create_cache("geocode", default_seconds_until_expiration=3600)

    @cached(cache)
    async def lookup(address: str) -> str:
        return await geocoder.resolve(address)

    await lookup("1 Main St")  # calls the geocoder
    await lookup("1 Main St")  # served from the cache
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

from namespaced_cache.cache.facade import DEFAULT

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from namespaced_cache.cache.facade import Cache, Ttl

logger = logging.getLogger(__name__)


def default_key(fn: Callable[..., object], args: tuple[object, ...], kwargs: dict[str, object]) -> str:
    """Return ``"{qualname}({args})"`` built from the arguments' reprs."""
    parts = [repr(a) for a in args]
    parts.extend(f"{name}={value!r}" for name, value in sorted(kwargs.items()))
    return f"{fn.__qualname__}({', '.join(parts)})"


def cached[**P](
    cache: Cache,
    key_fn: Callable[P, str] | None = None,
    seconds_until_expiration: Ttl = DEFAULT,
) -> Callable[[Callable[P, Awaitable[str]]], Callable[P, Awaitable[str]]]:
    """Wrap an async function so its results are stored in ``cache``.

    Args:
        cache: The cache to read and populate.
        key_fn: Builds the cache key from the call's arguments. Defaults to
            the function's qualified name plus the arguments' reprs.
        seconds_until_expiration: TTL for stored results; defaults to the
            cache's default.

    Returns:
        A decorator. Exceptions from the wrapped function propagate and
        nothing is cached for that call.
    """

    def decorator(fn: Callable[P, Awaitable[str]]) -> Callable[P, Awaitable[str]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> str:
            key = key_fn(*args, **kwargs) if key_fn is not None else default_key(fn, args, kwargs)

            hit = await cache.get(key)
            if hit is not None:
                logger.debug("Cache hit for %s", key)
                return hit

            value = await fn(*args, **kwargs)
            await cache.set(key, value, seconds_until_expiration=seconds_until_expiration)
            logger.debug("Cached %s", key)
            return value

        return wrapper

    return decorator
