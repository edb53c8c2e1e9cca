"""Join record persistence helpers."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.join_room import JoinRoom


async def create_join(session: AsyncSession, *, user_id: str, room_id: str, token: str) -> JoinRoom:
    """Persist a join record for an issued token."""

    join = JoinRoom(id=str(uuid4()), user_id=user_id, room_id=room_id, token=token)
    session.add(join)
    await session.flush()
    return join


async def count_for_room(session: AsyncSession, room_id: str) -> int:
    """Return the number of join records for the room."""

    result = await session.execute(select(func.count(JoinRoom.id)).where(JoinRoom.room_id == room_id))
    return result.scalar_one()


async def delete_for_room(session: AsyncSession, room_id: str) -> int:
    """Delete every join record of the room and return how many were removed."""

    result = await session.execute(delete(JoinRoom).where(JoinRoom.room_id == room_id))
    return result.rowcount or 0
