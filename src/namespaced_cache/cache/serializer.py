"""In-process serialization of index writes.

``WriteSerializer.run_exclusive`` runs one task at a time per event loop, in
submission order. It coordinates nothing outside the current process.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import weakref
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WriteSerializer:
    """Single-slot FIFO task queue.

    asyncio.Lock hands off to waiters in arrival order and does not let a new
    caller overtake queued ones, which gives the FIFO guarantee. Locks are bound
    to the loop that first uses them, so one lock is kept per running loop.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock] = weakref.WeakKeyDictionary()
        self._guard = threading.Lock()

    def _lock_for_running_loop(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        with self._guard:
            lock = self._locks.get(loop)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[loop] = lock
            return lock

    async def run_exclusive(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run ``task`` once every previously submitted task has finished.

        Exceptions raised by ``task`` propagate to this caller only.
        """
        lock = self._lock_for_running_loop()
        if lock.locked():
            logger.debug("Write slot busy; queueing task")
        async with lock:
            return await task()


_default_serializer = WriteSerializer()


def default_serializer() -> WriteSerializer:
    """Return the process-wide serializer shared by caches that don't bring their own."""
    return _default_serializer
