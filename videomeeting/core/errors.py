"""Domain errors raised by the room lifecycle service.

Every failure the presentation layer can observe has its own type so the API
can render a precise message. Each class carries the HTTP status and a stable
machine-readable code used by the exception handler in ``main``.
"""
from __future__ import annotations

from fastapi import status


class RoomServiceError(Exception):
    """Base class for room lifecycle failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "room_error"
    default_message: str = "Room operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class UnknownUserError(RoomServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "unknown_user"
    default_message = "User not found"


class DuplicateTitleError(RoomServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_title"
    default_message = "A room with this title already exists"


class RoomNotFoundError(RoomServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "room_not_found"
    default_message = "Room not found"


class NoActiveSessionError(RoomServiceError):
    """An unreserved room has no session recorded."""

    status_code = status.HTTP_409_CONFLICT
    code = "no_active_session"
    default_message = "Room has no active session"


class ReservationNotYetStartedError(RoomServiceError):
    status_code = status.HTTP_425_TOO_EARLY
    code = "reservation_not_started"
    default_message = "Reservation time has not started yet"


class SessionNotFoundError(RoomServiceError):
    """The room's session is no longer active on the media server."""

    status_code = status.HTTP_410_GONE
    code = "session_not_found"
    default_message = "Room session is no longer active"


class SessionProvisioningError(RoomServiceError):
    """The media server refused or failed a session operation."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "session_provisioning_failed"
    default_message = "Media server session operation failed"


class InvalidCursorError(RoomServiceError):
    code = "invalid_cursor"
    default_message = "Invalid cursor"
