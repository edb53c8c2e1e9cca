"""Room lifecycle: creation, reservation, session activation, joins and deletion.

Every media server call happens before the matching database write, so a
failed provider call never leaves a room pointing at a session that was not
created. Provider errors are translated to the domain errors in
``core.errors``; callers never see ``OpenViduError``.
"""
from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from ..core.errors import (
    DuplicateTitleError,
    InvalidCursorError,
    NoActiveSessionError,
    ReservationNotYetStartedError,
    RoomNotFoundError,
    SessionNotFoundError,
    SessionProvisioningError,
    UnknownUserError,
)
from ..models.room import Room
from ..repositories import join_rooms as join_rooms_repo
from ..repositories import rooms as rooms_repo
from ..repositories import users as users_repo
from ..schemas import rooms as schemas
from .locks import room_locks
from .openvidu import ROLE_PUBLISHER, OpenViduClient, OpenViduError

logger = logging.getLogger(__name__)


async def create_room(
    payload: schemas.RoomCreateRequest,
    session: AsyncSession,
    *,
    host_id: str,
    provider: OpenViduClient,
) -> str:
    """Create a room with an immediately provisioned session and return the session id."""

    async with session.begin():
        await _ensure_host_and_free_title(session, host_id, payload.title)

    session_id = await _open_remote_session(provider)

    room = Room(
        id=str(uuid4()),
        title=payload.title,
        password=payload.password,
        host_id=host_id,
        session=session_id,
        is_reserved=False,
        start_time=None,
    )
    try:
        async with session.begin():
            await rooms_repo.add_room(session, room)
    except DuplicateTitleError:
        await _discard_remote_session(provider, session_id)
        raise

    logger.info("[Room: %s] created with session %s", room.title, session_id)
    return session_id


async def reserve_room(
    payload: schemas.RoomReserveRequest,
    session: AsyncSession,
    *,
    host_id: str,
) -> str:
    """Store a reserved room whose session is provisioned on the first timely join."""

    async with session.begin():
        await _ensure_host_and_free_title(session, host_id, payload.title)
        room = Room(
            id=str(uuid4()),
            title=payload.title,
            password=payload.password,
            host_id=host_id,
            session=None,
            is_reserved=True,
            start_time=_ensure_tz(payload.reservation_time),
        )
        await rooms_repo.add_room(session, room)

    logger.info("[Room: %s] reserved for %s", room.title, room.start_time.isoformat())
    return room.title


async def join_room(
    payload: schemas.RoomJoinRequest,
    session: AsyncSession,
    *,
    user_id: str,
    provider: OpenViduClient,
) -> str:
    """Issue a publisher token for the room's session and record the join.

    Reserved rooms are activated here the first time someone joins at or after
    their start time.
    """

    async with session.begin():
        room = await rooms_repo.get_by_title(session, payload.title)
        if room is None:
            raise RoomNotFoundError(f"Room '{payload.title}' not found")
        user = await users_repo.get_by_id(session, user_id)
        if user is None:
            raise UnknownUserError(f"User '{user_id}' not found")

    if room.session is None:
        if not room.is_reserved:
            logger.warning("[Room: %s] unreserved room has no session", room.title)
            raise NoActiveSessionError(f"Room '{room.title}' has no active session")
        if _utcnow() < _ensure_tz(room.start_time):
            logger.info("[Room: %s] join attempted before reservation start", room.title)
            raise ReservationNotYetStartedError(
                f"Room '{room.title}' opens at {_ensure_tz(room.start_time).isoformat()}"
            )
        await activate_session(session, provider, room)
        logger.info("[Room: %s] reserved room activated with session %s", room.title, room.session)

    await _require_active_session(provider, room.session)

    try:
        token = await provider.create_connection_token(room.session, role=ROLE_PUBLISHER)
    except OpenViduError as exc:
        logger.warning("[Room: %s] token request failed: %s", room.title, exc)
        raise SessionProvisioningError("Could not issue a connection token") from exc

    async with session.begin():
        await join_rooms_repo.create_join(session, user_id=user.id, room_id=room.id, token=token)

    logger.info("[Room: %s] issued token in session %s for user %s", room.title, room.session, user.id)
    return token


async def activate_session(session: AsyncSession, provider: OpenViduClient, room: Room) -> str:
    """Bind a media server session to the room exactly once.

    Concurrent activations of the same room in this process wait on the room
    lock and reuse the winner's session. Across processes the conditional
    update decides the winner and losers close the session they created.
    """

    async with room_locks.hold(room.id):
        async with session.begin():
            existing = await rooms_repo.get_session_id(session, room.id)
        if existing is not None:
            set_committed_value(room, "session", existing)
            return existing

        created = await _open_remote_session(provider)

        async with session.begin():
            claimed = await rooms_repo.claim_session(session, room_id=room.id, session_id=created)
            winner = created if claimed else await rooms_repo.get_session_id(session, room.id)

        if not claimed:
            logger.warning("[Room: %s] lost activation race; using session %s", room.title, winner)
            await _discard_remote_session(provider, created)
            if winner is None:
                raise RoomNotFoundError(f"Room '{room.title}' was deleted during activation")

        set_committed_value(room, "session", winner)
        return winner


async def delete_room(session: AsyncSession, provider: OpenViduClient, room_id: str) -> None:
    """Close the room's session and delete the room with its join records."""

    async with room_locks.hold(room_id):
        async with session.begin():
            room = await rooms_repo.get_by_id(session, room_id)
            if room is None:
                raise RoomNotFoundError(f"Room '{room_id}' not found")

        if room.session is None:
            # Reserved room that was never joined: nothing to close remotely.
            logger.info("[Room: %s] deleting never-activated room", room.title)
        else:
            await _require_active_session(provider, room.session)
            try:
                await provider.close_session(room.session)
            except OpenViduError as exc:
                logger.warning("[Room: %s] closing session %s failed: %s", room.title, room.session, exc)
                raise SessionProvisioningError("Could not close the room session") from exc

        async with session.begin():
            removed = await join_rooms_repo.delete_for_room(session, room.id)
            await rooms_repo.delete_room(session, room.id)

    logger.info("[Room: %s] deleted with %d join records", room.title, removed)


async def find_room_by_id(session: AsyncSession, room_id: str) -> Room:
    async with session.begin():
        room = await rooms_repo.get_by_id(session, room_id)
    if room is None:
        raise RoomNotFoundError(f"Room '{room_id}' not found")
    return room


async def find_room_by_title(session: AsyncSession, title: str) -> Room:
    async with session.begin():
        room = await rooms_repo.get_by_title(session, title)
    if room is None:
        raise RoomNotFoundError(f"Room '{title}' not found")
    return room


async def find_room_by_session(session: AsyncSession, session_id: str) -> Room:
    async with session.begin():
        room = await rooms_repo.get_by_session(session, session_id)
    if room is None:
        raise RoomNotFoundError(f"No room bound to session '{session_id}'")
    return room


async def describe_room(session: AsyncSession, room: Room) -> schemas.RoomSummary:
    """Return the API summary of a room, counting its join records."""

    async with session.begin():
        people_count = await join_rooms_repo.count_for_room(session, room.id)
    return _to_summary(room, people_count)


async def list_rooms(
    session: AsyncSession,
    *,
    limit: int,
    cursor: str | None = None,
) -> schemas.RoomListResponse:
    """Return one page of rooms ordered by title."""

    after_title = _decode_cursor(cursor) if cursor else None

    async with session.begin():
        rooms, has_next = await rooms_repo.list_page(session, limit=limit, after_title=after_title)
        summaries = [
            _to_summary(room, await join_rooms_repo.count_for_room(session, room.id)) for room in rooms
        ]

    next_cursor = _encode_cursor(rooms[-1].title) if has_next and rooms else None
    return schemas.RoomListResponse(data=summaries, has_next=has_next, next_cursor=next_cursor)


async def _ensure_host_and_free_title(session: AsyncSession, host_id: str, title: str) -> None:
    host = await users_repo.get_by_id(session, host_id)
    if host is None:
        raise UnknownUserError(f"User '{host_id}' not found")
    if await rooms_repo.get_by_title(session, title) is not None:
        raise DuplicateTitleError(f"Room title '{title}' already exists")


async def _open_remote_session(provider: OpenViduClient) -> str:
    try:
        session_id = await provider.create_session()
    except OpenViduError as exc:
        logger.warning("OpenVidu session allocation failed: %s", exc)
        raise SessionProvisioningError("Could not create a media server session") from exc
    if not session_id:
        logger.warning("OpenVidu returned no session id")
        raise SessionProvisioningError("Media server returned no session")
    return session_id


async def _require_active_session(provider: OpenViduClient, session_id: str) -> None:
    try:
        active = await provider.list_active_sessions()
    except OpenViduError as exc:
        logger.warning("Listing OpenVidu sessions failed: %s", exc)
        raise SessionProvisioningError("Could not query media server sessions") from exc
    if not any(item.session_id == session_id for item in active):
        raise SessionNotFoundError(f"Session '{session_id}' is not active")


async def _discard_remote_session(provider: OpenViduClient, session_id: str) -> None:
    """Close a session nobody will use; failures are only logged."""

    try:
        await provider.close_session(session_id)
    except OpenViduError as exc:
        logger.warning("Could not close orphaned session %s: %s", session_id, exc)


def _to_summary(room: Room, people_count: int) -> schemas.RoomSummary:
    return schemas.RoomSummary(
        id=room.id,
        title=room.title,
        host_id=room.host_id,
        session=room.session,
        is_reserved=room.is_reserved,
        start_time=room.start_time,
        created_at=room.created_at,
        people_count=people_count,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_tz(value: datetime) -> datetime:
    """Ensure the provided datetime is timezone-aware in UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _decode_cursor(cursor: str) -> str:
    try:
        return base64.b64decode(cursor.encode("utf-8"), altchars=b"-_", validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise InvalidCursorError() from exc


def _encode_cursor(title: str) -> str:
    return base64.urlsafe_b64encode(title.encode("utf-8")).decode("utf-8")
