"""Tests for per-key lock serialization."""

from __future__ import annotations

import asyncio

import pytest

from access_governance.services.locks import KeyedLock


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_key_serializes(self) -> None:
        """A second holder of the same key waits for the first."""
        locks = KeyedLock()
        order: list[str] = []

        async def worker(name: str, delay: float) -> None:
            async with locks.acquire("access-001"):
                order.append(f"{name}-start")
                await asyncio.sleep(delay)
                order.append(f"{name}-end")

        await asyncio.gather(worker("a", 0.02), worker("b", 0))
        assert order == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self) -> None:
        locks = KeyedLock()
        inside = asyncio.Event()

        async def holder() -> None:
            async with locks.acquire("access-001"):
                await asyncio.wait_for(inside.wait(), timeout=1)

        async def other() -> None:
            async with locks.acquire("access-002"):
                inside.set()

        await asyncio.gather(holder(), other())
        assert inside.is_set()

    @pytest.mark.asyncio
    async def test_multi_key_and_duplicates(self) -> None:
        locks = KeyedLock()
        async with locks.acquire("b", "a", "b"):
            assert locks.locked("a")
            assert locks.locked("b")
        assert not locks.locked("a")
        assert not locks.locked("unknown")

    @pytest.mark.asyncio
    async def test_released_keys_are_dropped(self) -> None:
        locks = KeyedLock()
        for n in range(100):
            async with locks.acquire(f"access-{n:03d}", "req-001"):
                assert len(locks) == 2
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_kept_while_another_caller_waits(self) -> None:
        """The first holder's release must not evict the lock a waiter is queued on."""
        locks = KeyedLock()
        order: list[str] = []

        async def worker(name: str, delay: float) -> None:
            async with locks.acquire("access-001"):
                order.append(f"{name}-start")
                await asyncio.sleep(delay)
                order.append(f"{name}-end")

        first = asyncio.create_task(worker("a", 0.02))
        await asyncio.sleep(0)
        second = asyncio.create_task(worker("b", 0))
        third = asyncio.create_task(worker("c", 0))
        await asyncio.sleep(0)
        assert len(locks) == 1

        await asyncio.gather(first, second, third)
        assert order == ["a-start", "a-end", "b-start", "b-end", "c-start", "c-end"]
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_cancelled_waiter_releases_key(self) -> None:
        locks = KeyedLock()
        holding = asyncio.Event()
        release = asyncio.Event()

        async def holder() -> None:
            async with locks.acquire("access-001"):
                holding.set()
                await release.wait()

        async def waiter() -> None:
            async with locks.acquire("access-001"):
                pass

        held = asyncio.create_task(holder())
        await holding.wait()
        waiting = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        waiting.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiting

        release.set()
        await held
        assert len(locks) == 0
