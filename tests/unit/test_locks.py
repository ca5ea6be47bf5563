"""Tests for per-key asyncio locks."""

import asyncio

import pytest

from taskdesk.utils.locks import KeyedLock, get_project_locks


@pytest.mark.asyncio
async def test_same_key_is_serialised():
    locks = KeyedLock()
    order = []
    inside = asyncio.Event()

    async def first():
        async with locks.hold("p1"):
            order.append("first-in")
            inside.set()
            await asyncio.sleep(0.01)
            order.append("first-out")

    async def second():
        await inside.wait()
        async with locks.hold("p1"):
            order.append("second-in")

    await asyncio.gather(first(), second())

    assert order == ["first-in", "first-out", "second-in"]


@pytest.mark.asyncio
async def test_different_keys_do_not_block():
    locks = KeyedLock()

    async with locks.hold("p1"):
        assert locks.is_locked("p1")
        async with locks.hold("p2"):
            assert locks.is_locked("p2")


@pytest.mark.asyncio
async def test_entries_are_dropped_when_unused():
    locks = KeyedLock()

    async with locks.hold("p1"):
        assert len(locks) == 1

    assert len(locks) == 0
    assert not locks.is_locked("p1")


@pytest.mark.asyncio
async def test_lock_released_on_error():
    locks = KeyedLock()

    with pytest.raises(ValueError):
        async with locks.hold("p1"):
            raise ValueError("fail")

    assert len(locks) == 0
    async with locks.hold("p1"):
        pass


def test_project_locks_is_shared():
    assert get_project_locks() is get_project_locks()
