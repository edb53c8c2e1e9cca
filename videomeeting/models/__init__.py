"""Expose ORM models."""
from .join_room import JoinRoom
from .room import Room
from .user import User

__all__ = [
    "JoinRoom",
    "Room",
    "User",
]
