"""User repository helpers."""
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User


async def get_by_id(session: AsyncSession, user_id: str) -> User | None:
    """Return a user by identifier."""

    return await session.get(User, user_id)
