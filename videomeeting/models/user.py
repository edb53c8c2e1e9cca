"""User model."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .join_room import JoinRoom
    from .room import Room


class User(Base):
    """Account that can host or join rooms."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    hosted_rooms: Mapped[list["Room"]] = relationship("Room", back_populates="host")
    joins: Mapped[list["JoinRoom"]] = relationship("JoinRoom", back_populates="user")
