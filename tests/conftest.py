"""Shared fakes for the room lifecycle tests."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from videomeeting.core.errors import DuplicateTitleError
from videomeeting.models.room import Room
from videomeeting.repositories import join_rooms as join_rooms_repo
from videomeeting.repositories import rooms as rooms_repo
from videomeeting.repositories import users as users_repo
from videomeeting.services import rooms as rooms_service
from videomeeting.services.locks import RoomLocks
from videomeeting.services.openvidu import ActiveSession, OpenViduError


class DummySession:
    """Minimal session stub supporting async transaction context."""

    def __init__(self) -> None:
        self.added: list[object] = []
        self.transactions = 0

    def add(self, obj: object) -> None:
        self.added.append(obj)

    def begin(self):  # noqa: D401 - mimic SQLAlchemy's async begin
        session = self

        class _Tx:
            async def __aenter__(self_inner):
                session.transactions += 1
                return session

            async def __aexit__(self_inner, exc_type, exc, tb):
                return False

        return _Tx()


class FakeOpenVidu:
    """In-memory stand-in for the OpenVidu client."""

    def __init__(self) -> None:
        self.active: list[str] = []
        self.closed: list[str] = []
        self.created = 0
        self.tokens_issued = 0
        self.fail_create = False
        self.fail_token = False
        self.fail_close = False

    async def create_session(self) -> str:
        if self.fail_create:
            raise OpenViduError("allocation failed", status_code=500)
        self.created += 1
        session_id = f"ses_{self.created}"
        # Yield so concurrent callers can interleave.
        await asyncio.sleep(0)
        self.active.append(session_id)
        return session_id

    async def list_active_sessions(self) -> list[ActiveSession]:
        return [ActiveSession(session_id=session_id) for session_id in self.active]

    async def create_connection_token(self, session_id: str, *, role: str = "PUBLISHER", data: str = "userData") -> str:
        if self.fail_token or session_id not in self.active:
            raise OpenViduError("session unknown", status_code=404)
        self.tokens_issued += 1
        return f"wss://media?sessionId={session_id}&token=tok_{self.tokens_issued}"

    async def close_session(self, session_id: str) -> None:
        if self.fail_close or session_id not in self.active:
            raise OpenViduError("cannot close", status_code=404)
        self.active.remove(session_id)
        self.closed.append(session_id)


class RoomStore:
    """Table-like storage patched in place of the repository modules.

    Rows are kept as dicts and every read builds a fresh ``Room`` so each
    caller sees its own object, as separate database sessions would.
    """

    def __init__(self) -> None:
        self.users: dict[str, SimpleNamespace] = {}
        self.rooms: dict[str, dict] = {}
        self.joins: list[dict] = []

    def add_user(self, user_id: str) -> None:
        self.users[user_id] = SimpleNamespace(id=user_id, name=user_id.title())

    def add_row(self, **fields) -> dict:
        row = {
            "id": fields.pop("id"),
            "title": fields.pop("title"),
            "password": fields.pop("password", "pw"),
            "host_id": fields.pop("host_id", "host"),
            "session": fields.pop("session", None),
            "is_reserved": fields.pop("is_reserved", False),
            "start_time": fields.pop("start_time", None),
            "created_at": fields.pop("created_at", datetime(2025, 1, 1, tzinfo=timezone.utc)),
        }
        self.rooms[row["id"]] = row
        return row

    def row_by_title(self, title: str) -> dict | None:
        return next((row for row in self.rooms.values() if row["title"] == title), None)

    def joins_for(self, room_id: str) -> list[dict]:
        return [join for join in self.joins if join["room_id"] == room_id]

    def install(self, monkeypatch) -> None:
        store = self

        def _room(row: dict | None) -> Room | None:
            return Room(**row) if row is not None else None

        async def get_user(session, user_id):
            return store.users.get(user_id)

        async def get_by_id(session, room_id):
            return _room(store.rooms.get(room_id))

        async def get_by_title(session, title):
            return _room(store.row_by_title(title))

        async def get_by_session(session, session_id):
            return _room(next((row for row in store.rooms.values() if row["session"] == session_id), None))

        async def add_room(session, room):
            if store.row_by_title(room.title) is not None:
                raise DuplicateTitleError(f"Room title '{room.title}' already exists")
            store.add_row(
                id=room.id,
                title=room.title,
                password=room.password,
                host_id=room.host_id,
                session=room.session,
                is_reserved=room.is_reserved,
                start_time=room.start_time,
            )
            return room

        async def claim_session(session, *, room_id, session_id):
            row = store.rooms.get(room_id)
            if row is None or row["session"] is not None:
                return False
            row["session"] = session_id
            return True

        async def get_session_id(session, room_id):
            row = store.rooms.get(room_id)
            return row["session"] if row else None

        async def delete_room(session, room_id):
            store.rooms.pop(room_id, None)

        async def list_page(session, *, limit, after_title=None):
            rows = sorted(store.rooms.values(), key=lambda row: row["title"])
            if after_title is not None:
                rows = [row for row in rows if row["title"] > after_title]
            return [_room(row) for row in rows[:limit]], len(rows) > limit

        async def create_join(session, *, user_id, room_id, token):
            join = {"user_id": user_id, "room_id": room_id, "token": token}
            store.joins.append(join)
            return SimpleNamespace(**join)

        async def count_for_room(session, room_id):
            return len(store.joins_for(room_id))

        async def delete_for_room(session, room_id):
            removed = store.joins_for(room_id)
            store.joins = [join for join in store.joins if join["room_id"] != room_id]
            return len(removed)

        monkeypatch.setattr(users_repo, "get_by_id", get_user)
        monkeypatch.setattr(rooms_repo, "get_by_id", get_by_id)
        monkeypatch.setattr(rooms_repo, "get_by_title", get_by_title)
        monkeypatch.setattr(rooms_repo, "get_by_session", get_by_session)
        monkeypatch.setattr(rooms_repo, "add_room", add_room)
        monkeypatch.setattr(rooms_repo, "claim_session", claim_session)
        monkeypatch.setattr(rooms_repo, "get_session_id", get_session_id)
        monkeypatch.setattr(rooms_repo, "delete_room", delete_room)
        monkeypatch.setattr(rooms_repo, "list_page", list_page)
        monkeypatch.setattr(join_rooms_repo, "create_join", create_join)
        monkeypatch.setattr(join_rooms_repo, "count_for_room", count_for_room)
        monkeypatch.setattr(join_rooms_repo, "delete_for_room", delete_for_room)


@pytest.fixture
def store(monkeypatch) -> RoomStore:
    room_store = RoomStore()
    room_store.add_user("host")
    room_store.add_user("guest")
    room_store.install(monkeypatch)
    monkeypatch.setattr(rooms_service, "room_locks", RoomLocks())
    return room_store


@pytest.fixture
def provider() -> FakeOpenVidu:
    return FakeOpenVidu()


@pytest.fixture
def session() -> DummySession:
    return DummySession()


@pytest.fixture
def make_session():
    return DummySession
