"""Per-key asyncio locks used to serialize read-modify-write sections."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable


class KeyedLocks:
    """Hand out one :class:`asyncio.Lock` per key.

    Locks live for the lifetime of the registry; the key space is bounded by
    the customers and tenants present on the device.
    """

    def __init__(self) -> None:
        self._locks: defaultdict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""

        async with self._locks[key]:
            yield
