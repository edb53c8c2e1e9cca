"""Room repository helpers."""
from __future__ import annotations

from sqlalchemy import Select, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import DuplicateTitleError
from ..models.room import Room


async def get_by_id(session: AsyncSession, room_id: str) -> Room | None:
    """Return a room by identifier."""

    return await session.get(Room, room_id, populate_existing=True)


async def get_by_title(session: AsyncSession, title: str) -> Room | None:
    """Return the room holding the given title."""

    stmt: Select[tuple[Room]] = select(Room).where(Room.title == title).execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_by_session(session: AsyncSession, session_id: str) -> Room | None:
    """Return the room bound to a media server session."""

    stmt: Select[tuple[Room]] = select(Room).where(Room.session == session_id).execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def add_room(session: AsyncSession, room: Room) -> Room:
    """Insert a room, mapping a title unique violation to ``DuplicateTitleError``."""

    session.add(room)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise DuplicateTitleError(f"Room title '{room.title}' already exists") from exc
    return room


async def claim_session(session: AsyncSession, *, room_id: str, session_id: str) -> bool:
    """Record the session id only if the room has none yet.

    Returns False when another writer already set the session.
    """

    stmt = (
        update(Room)
        .where(Room.id == room_id, Room.session.is_(None))
        .values(session=session_id)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return (result.rowcount or 0) == 1


async def get_session_id(session: AsyncSession, room_id: str) -> str | None:
    """Read the stored session id straight from the table."""

    result = await session.execute(select(Room.session).where(Room.id == room_id))
    return result.scalar_one_or_none()


async def delete_room(session: AsyncSession, room_id: str) -> None:
    """Delete the room row."""

    await session.execute(delete(Room).where(Room.id == room_id))


async def list_page(
    session: AsyncSession,
    *,
    limit: int,
    after_title: str | None = None,
) -> tuple[list[Room], bool]:
    """Return rooms ordered by title after the cursor, plus whether more exist."""

    stmt = select(Room).order_by(Room.title.asc()).limit(limit + 1)
    if after_title is not None:
        stmt = stmt.where(Room.title > after_title)
    result = await session.execute(stmt)
    rows = list(result.scalars().all())
    return rows[:limit], len(rows) > limit
