"""Per-key mutation serialization.

One asyncio.Lock per key (an access id or request id) so that two
administrative actions on the same grant cannot interleave, while actions
on different grants run freely. Single-process only.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager


class KeyedLock:
    """Lazily created asyncio.Lock per key, dropped once nobody holds or awaits it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: defaultdict[str, int] = defaultdict(int)

    def __len__(self) -> int:
        return len(self._locks)

    def locked(self, key: str) -> bool:
        return key in self._locks and self._locks[key].locked()

    @asynccontextmanager
    async def acquire(self, *keys: str) -> AsyncIterator[None]:
        """Hold the locks for every key in *keys*.

        Keys are deduplicated and taken in sorted order, so concurrent
        multi-key callers cannot deadlock.
        """
        ordered = sorted(set(keys))
        for key in ordered:
            self._users[key] += 1
            self._locks.setdefault(key, asyncio.Lock())
        try:
            async with AsyncExitStack() as stack:
                for key in ordered:
                    await stack.enter_async_context(self._locks[key])
                yield
        finally:
            for key in ordered:
                self._users[key] -= 1
                if not self._users[key]:
                    del self._users[key]
                    del self._locks[key]
