"""Meeting room model."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .join_room import JoinRoom
    from .user import User


class Room(Base):
    """Meeting room, optionally reserved for a later start time.

    ``session`` holds the media server session id once the room has been
    activated. Reserved rooms keep it empty until the first join at or after
    ``start_time``.
    """

    __tablename__ = "rooms"
    __table_args__ = (
        CheckConstraint(
            "(is_reserved AND start_time IS NOT NULL) OR (NOT is_reserved AND start_time IS NULL)",
            name="ck_rooms_reservation_start_time",
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String, nullable=False)
    host_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    session: Mapped[str | None] = mapped_column(String, index=True)
    is_reserved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    host: Mapped["User"] = relationship("User", back_populates="hosted_rooms")
    joins: Mapped[list["JoinRoom"]] = relationship("JoinRoom", back_populates="room")
