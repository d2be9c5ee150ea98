"""Session registry for the SSE transport.

Maps a session token to the live stream transport and the engine bound
to it. One registry is created per application and passed around
explicitly; nothing here is module-global.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from .protocol.engine import ProtocolEngine
from .transport.sse import SSETransport

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """One established SSE session."""

    token: str
    transport: SSETransport
    engine: ProtocolEngine
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    async def close(self) -> None:
        """Close engine and transport. Safe to call more than once."""
        await self.engine.close()
        await self.transport.close()

    def to_dict(self) -> dict[str, object]:
        return {
            "session_id": self.token,
            "created_at": self.created_at.isoformat(),
            "pending": self.engine.pending_count,
        }


class SessionRegistry:
    """In-memory token -> Session map.

    Nothing is persisted: a process restart drops every session and
    clients have to establish a new stream.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    async def put(self, token: str, session: Session) -> None:
        async with self._lock:
            if token in self._sessions:
                logger.warning(f"Replacing existing session {token}")
            self._sessions[token] = session

    async def get(self, token: str) -> Session | None:
        return self._sessions.get(token)

    async def remove(self, token: str) -> Session | None:
        """Evict a session.

        Returns:
            The evicted session the first time, None afterwards
        """
        async with self._lock:
            return self._sessions.pop(token, None)

    async def close_all(self) -> int:
        """Evict and close every session (application shutdown)."""
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()

        for session in sessions:
            try:
                await session.close()
            except Exception:
                logger.exception(f"Error closing session {session.token}")

        if sessions:
            logger.info(f"Closed {len(sessions)} SSE sessions")
        return len(sessions)

    def tokens(self) -> list[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, token: object) -> bool:
        return token in self._sessions
