import asyncio

import pytest

from app.exceptions import ConcurrencyConflict
from app.locks import KeyedLock


@pytest.mark.anyio
async def test_overlapping_holders_run_one_at_a_time():
    locks = KeyedLock()
    events = []

    async def worker(name, keys):
        async with locks.hold(keys, timeout=1):
            events.append(f"{name}:start")
            await asyncio.sleep(0.01)
            events.append(f"{name}:end")

    await asyncio.gather(worker("one", ["a", "b"]), worker("two", ["b", "c"]))

    assert events in (
        ["one:start", "one:end", "two:start", "two:end"],
        ["two:start", "two:end", "one:start", "one:end"],
    )


@pytest.mark.anyio
async def test_disjoint_holders_do_not_block():
    locks = KeyedLock()
    async with locks.hold(["a"], timeout=1):
        async with locks.hold(["b"], timeout=0.05):
            assert locks.locked("a") and locks.locked("b")


@pytest.mark.anyio
async def test_opposite_key_order_does_not_deadlock():
    locks = KeyedLock()
    done = []

    async def worker(keys):
        async with locks.hold(keys, timeout=1):
            await asyncio.sleep(0.01)
            done.append(keys)

    await asyncio.gather(worker(["x", "y"]), worker(["y", "x"]))
    assert len(done) == 2


@pytest.mark.anyio
async def test_timeout_raises_conflict_and_releases_partial_holds():
    locks = KeyedLock()
    async with locks.hold(["b"], timeout=1):
        with pytest.raises(ConcurrencyConflict) as exc:
            async with locks.hold(["a", "b"], timeout=0.05):
                pass
        assert "'b'" in exc.value.detail
        assert not locks.locked("a")

    assert not locks.locked("b")
    assert locks._locks == {}


@pytest.mark.anyio
async def test_empty_keys_are_ignored():
    locks = KeyedLock()
    async with locks.hold(["", None, "a", "a"], timeout=1):
        assert list(locks._locks) == ["a"]
