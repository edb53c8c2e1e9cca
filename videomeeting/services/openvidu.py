"""OpenVidu REST client.

Only the session-level calls the room lifecycle needs are wrapped: create a
session, list active sessions, issue a connection token and close a session.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)

API_PREFIX = "/openvidu/api"
BASIC_AUTH_USER = "OPENVIDUAPP"

ROLE_PUBLISHER = "PUBLISHER"
CONNECTION_TYPE_WEBRTC = "WEBRTC"


class OpenViduError(Exception):
    """Raised when OpenVidu cannot complete a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class ActiveSession:
    session_id: str
    connection_count: int = 0


class OpenViduClient:
    """Thin async wrapper around the OpenVidu session API."""

    def __init__(
        self,
        base_url: str,
        secret: str,
        timeout_seconds: float = 10.0,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise OpenViduError("OpenVidu URL not configured")
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + API_PREFIX,
            auth=(BASIC_AUTH_USER, secret),
            timeout=timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def create_session(self) -> str:
        """Allocate a new session and return its id."""

        body = await self._request("POST", "/sessions", json={})
        session_id = body.get("id") or body.get("sessionId")
        if not session_id:
            raise OpenViduError(f"Unexpected response creating session: {body}")
        return str(session_id)

    async def list_active_sessions(self) -> list[ActiveSession]:
        """Return a fresh snapshot of the sessions OpenVidu considers active."""

        body = await self._request("GET", "/sessions")
        content = body.get("content")
        if not isinstance(content, list):
            raise OpenViduError(f"Unexpected response listing sessions: {body}")
        sessions = []
        for item in content:
            session_id = item.get("id") or item.get("sessionId")
            if not session_id:
                continue
            connections = item.get("connections") or {}
            sessions.append(
                ActiveSession(
                    session_id=str(session_id),
                    connection_count=int(connections.get("numberOfElements", 0)),
                )
            )
        return sessions

    async def create_connection_token(
        self,
        session_id: str,
        *,
        role: str = ROLE_PUBLISHER,
        data: str = "userData",
    ) -> str:
        """Create a WebRTC connection in the session and return its token."""

        body = await self._request(
            "POST",
            f"/sessions/{session_id}/connection",
            json={"type": CONNECTION_TYPE_WEBRTC, "role": role, "data": data},
        )
        token = body.get("token")
        if not token:
            raise OpenViduError(f"Unexpected response creating connection: {body}")
        return str(token)

    async def close_session(self, session_id: str) -> None:
        """Close the session, evicting all of its participants."""

        await self._request("DELETE", f"/sessions/{session_id}")

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise OpenViduError(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise OpenViduError(
                f"{method} {path} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            raise OpenViduError(f"{method} {path} returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise OpenViduError(f"{method} {path} returned unexpected payload: {body!r}")
        return body


@lru_cache
def get_openvidu_client() -> OpenViduClient:
    """Return the process-wide OpenVidu client."""

    logger.info("Creating OpenVidu client for %s", settings.openvidu_url)
    return OpenViduClient(
        base_url=settings.openvidu_url,
        secret=settings.openvidu_secret,
        timeout_seconds=settings.openvidu_timeout_seconds,
    )
