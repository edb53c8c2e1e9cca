"""Tests for the per-room lock registry."""
from __future__ import annotations

import asyncio

import pytest

from videomeeting.services.locks import RoomLocks


@pytest.mark.asyncio
async def test_same_room_is_serialized():
    locks = RoomLocks()
    events: list[str] = []

    async def worker(name: str) -> None:
        async with locks.hold("room-1"):
            events.append(f"{name}:enter")
            await asyncio.sleep(0)
            events.append(f"{name}:exit")

    await asyncio.gather(worker("a"), worker("b"))

    assert events == ["a:enter", "a:exit", "b:enter", "b:exit"]


@pytest.mark.asyncio
async def test_different_rooms_do_not_block_each_other():
    locks = RoomLocks()
    release = asyncio.Event()
    entered: list[str] = []

    async def holder() -> None:
        async with locks.hold("room-1"):
            entered.append("room-1")
            await release.wait()

    task = asyncio.create_task(holder())
    await asyncio.sleep(0)

    async with locks.hold("room-2"):
        entered.append("room-2")

    release.set()
    await task

    assert entered == ["room-1", "room-2"]


@pytest.mark.asyncio
async def test_lock_entries_are_dropped_after_use():
    locks = RoomLocks()

    async with locks.hold("room-1"):
        assert "room-1" in locks

    assert "room-1" not in locks


@pytest.mark.asyncio
async def test_lock_released_on_error():
    locks = RoomLocks()

    with pytest.raises(RuntimeError):
        async with locks.hold("room-1"):
            raise RuntimeError("boom")

    async with locks.hold("room-1"):
        pass
    assert "room-1" not in locks
