"""Meeting room endpoints."""
from __future__ import annotations

import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..db.session import get_session
from ..schemas import rooms as schemas
from ..services import rooms as rooms_service
from ..services.openvidu import OpenViduClient, get_openvidu_client

router = APIRouter()


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Resolve the caller from the ``X-User-Id`` header set by the gateway."""

    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-User-Id header is required")
    return x_user_id


@router.post("", response_model=schemas.RoomCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    payload: schemas.RoomCreateRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
    provider: OpenViduClient = Depends(get_openvidu_client),
) -> schemas.RoomCreateResponse:
    """Create a room and open its session right away."""

    session_id = await rooms_service.create_room(payload, session, host_id=user_id, provider=provider)
    return schemas.RoomCreateResponse(session=session_id)


@router.post("/reservations", response_model=schemas.RoomReserveResponse, status_code=status.HTTP_201_CREATED)
async def reserve_room(
    payload: schemas.RoomReserveRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> schemas.RoomReserveResponse:
    """Reserve a room that opens at the requested time."""

    title = await rooms_service.reserve_room(payload, session, host_id=user_id)
    return schemas.RoomReserveResponse(title=title)


@router.post("/join", response_model=schemas.RoomJoinResponse)
async def join_room(
    payload: schemas.RoomJoinRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
    provider: OpenViduClient = Depends(get_openvidu_client),
) -> schemas.RoomJoinResponse:
    """Check the room password and return a connection token."""

    room = await rooms_service.find_room_by_title(session, payload.title)
    if not secrets.compare_digest(room.password.encode("utf-8"), payload.password.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid room password")

    token = await rooms_service.join_room(payload, session, user_id=user_id, provider=provider)
    return schemas.RoomJoinResponse(token=token)


@router.get("", response_model=schemas.RoomListResponse)
async def list_rooms(
    limit: int = Query(default=20, ge=1),
    cursor: str | None = None,
    session: AsyncSession = Depends(get_session),
) -> schemas.RoomListResponse:
    """Return rooms ordered by title with keyset pagination."""

    return await rooms_service.list_rooms(session, limit=min(limit, settings.room_list_max_limit), cursor=cursor)


@router.get("/by-title/{title}", response_model=schemas.RoomSummary)
async def get_room_by_title(title: str, session: AsyncSession = Depends(get_session)) -> schemas.RoomSummary:
    room = await rooms_service.find_room_by_title(session, title)
    return await rooms_service.describe_room(session, room)


@router.get("/by-session/{session_id}", response_model=schemas.RoomSummary)
async def get_room_by_session(session_id: str, session: AsyncSession = Depends(get_session)) -> schemas.RoomSummary:
    room = await rooms_service.find_room_by_session(session, session_id)
    return await rooms_service.describe_room(session, room)


@router.get("/{room_id}", response_model=schemas.RoomSummary)
async def get_room(room_id: str, session: AsyncSession = Depends(get_session)) -> schemas.RoomSummary:
    room = await rooms_service.find_room_by_id(session, room_id)
    return await rooms_service.describe_room(session, room)


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(
    room_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
    provider: OpenViduClient = Depends(get_openvidu_client),
) -> Response:
    """Close the room's session and delete it. Only the host may do this."""

    room = await rooms_service.find_room_by_id(session, room_id)
    if room.host_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the host can delete the room")

    await rooms_service.delete_room(session, provider, room.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
