"""Tests for rp_common.locks: per-record serialization."""

import asyncio

from src.rp_common.locks import KeyedLocks


class TestKeyedLocks:
    async def test_entry_exists_only_while_held(self) -> None:
        locks = KeyedLocks()
        assert len(locks) == 0
        async with locks.hold("a", "b"):
            assert len(locks) == 2
            assert locks.is_locked("a") and locks.is_locked("b")
        assert len(locks) == 0
        assert not locks.is_locked("a")

    async def test_registry_does_not_grow_with_distinct_ids(self) -> None:
        locks = KeyedLocks()
        for i in range(10_000):
            async with locks.hold(f"listing-{i}"):
                pass
        assert len(locks) == 0

    async def test_same_key_is_serialized(self) -> None:
        locks = KeyedLocks()
        trace: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("listing-1"):
                trace.append(f"{name}-in")
                await asyncio.sleep(0.01)
                trace.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert trace in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
        assert len(locks) == 0

    async def test_waiter_keeps_entry_alive_after_first_holder_leaves(self) -> None:
        locks = KeyedLocks()
        inside = asyncio.Event()
        trace: list[str] = []

        async def first() -> None:
            async with locks.hold("k"):
                inside.set()
                await asyncio.sleep(0.01)
                trace.append("first")

        async def second() -> None:
            await inside.wait()
            async with locks.hold("k"):
                trace.append("second")
                assert len(locks) == 1

        await asyncio.gather(first(), second())
        assert trace == ["first", "second"]
        assert len(locks) == 0

    async def test_different_keys_do_not_block(self) -> None:
        locks = KeyedLocks()
        async with locks.hold("x"):
            async with asyncio.timeout(0.5):
                async with locks.hold("y"):
                    assert locks.is_locked("y")

    async def test_multi_key_hold_in_opposite_orders_does_not_deadlock(self) -> None:
        locks = KeyedLocks()

        async def transfer(a: str, b: str) -> None:
            async with locks.hold(a, b):
                await asyncio.sleep(0.01)

        async with asyncio.timeout(2):
            await asyncio.gather(transfer("p", "q"), transfer("q", "p"))
        assert not locks.is_locked("p")
        assert len(locks) == 0

    async def test_duplicate_keys_acquire_once(self) -> None:
        locks = KeyedLocks()
        async with asyncio.timeout(0.5):
            async with locks.hold("a", "a"):
                assert locks.is_locked("a")
        assert len(locks) == 0

    async def test_cancelled_waiter_releases_its_entry(self) -> None:
        locks = KeyedLocks()
        async with locks.hold("k"):
            waiter = asyncio.create_task(_enter(locks, "k"))
            await asyncio.sleep(0)
            waiter.cancel()
            await asyncio.gather(waiter, return_exceptions=True)
            assert len(locks) == 1
        assert len(locks) == 0


async def _enter(locks: KeyedLocks, key: str) -> None:
    async with locks.hold(key):
        pass
