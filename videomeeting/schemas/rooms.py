"""Data contracts for room endpoints."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RoomCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200, description="Unique room title")
    password: str = Field(..., min_length=1, description="Shared secret required to join")


class RoomReserveRequest(RoomCreateRequest):
    reservation_time: datetime = Field(..., description="Earliest time the room can be joined")


class RoomJoinRequest(BaseModel):
    title: str = Field(..., min_length=1)
    password: str = Field(default="", description="Checked by the API before joining")


class RoomCreateResponse(BaseModel):
    session: str = Field(..., description="Media server session id")


class RoomReserveResponse(BaseModel):
    title: str


class RoomJoinResponse(BaseModel):
    token: str = Field(..., description="Connection token for the room's session")


class RoomSummary(BaseModel):
    id: str
    title: str
    host_id: str
    session: str | None = None
    is_reserved: bool
    start_time: datetime | None = None
    created_at: datetime | None = None
    people_count: int = Field(default=0, ge=0)


class RoomListResponse(BaseModel):
    data: list[RoomSummary]
    has_next: bool
    next_cursor: str | None = None
