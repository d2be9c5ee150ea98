"""Unit tests for the SSE session registry."""

from __future__ import annotations

import asyncio

import pytest

from vedastro_mcp.protocol.engine import ProtocolEngine
from vedastro_mcp.sessions import Session, SessionRegistry
from vedastro_mcp.transport.sse import SSETransport


async def make_session(token: str = "tok") -> Session:
    transport = SSETransport(token, "/api/messages")
    engine = ProtocolEngine()
    await engine.connect(transport)
    await transport.start()
    return Session(token=token, transport=transport, engine=engine)


class TestSessionRegistry:
    """Tests for put/get/remove semantics."""

    @pytest.mark.asyncio
    async def test_put_then_get(self) -> None:
        registry = SessionRegistry()
        session = await make_session()
        await registry.put("tok", session)

        assert await registry.get("tok") is session
        assert "tok" in registry
        assert len(registry) == 1
        assert registry.tokens() == ["tok"]

    @pytest.mark.asyncio
    async def test_get_unknown(self) -> None:
        assert await SessionRegistry().get("missing") is None

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self) -> None:
        registry = SessionRegistry()
        session = await make_session()
        await registry.put("tok", session)

        assert await registry.remove("tok") is session
        assert await registry.remove("tok") is None
        assert await registry.get("tok") is None

    @pytest.mark.asyncio
    async def test_put_overwrites(self) -> None:
        registry = SessionRegistry()
        first = await make_session()
        second = await make_session()
        await registry.put("tok", first)
        await registry.put("tok", second)
        assert await registry.get("tok") is second

    @pytest.mark.asyncio
    async def test_registries_are_independent(self) -> None:
        a, b = SessionRegistry(), SessionRegistry()
        await a.put("tok", await make_session())
        assert await b.get("tok") is None

    @pytest.mark.asyncio
    async def test_concurrent_puts_and_removes(self) -> None:
        registry = SessionRegistry()
        sessions = [await make_session(f"t{i}") for i in range(20)]

        await asyncio.gather(*(registry.put(s.token, s) for s in sessions))
        assert len(registry) == 20
        await asyncio.gather(*(registry.remove(s.token) for s in sessions[:10]))
        assert sorted(registry.tokens()) == sorted(s.token for s in sessions[10:])

    @pytest.mark.asyncio
    async def test_close_all(self) -> None:
        registry = SessionRegistry()
        sessions = [await make_session(f"t{i}") for i in range(3)]
        for s in sessions:
            await registry.put(s.token, s)

        assert await registry.close_all() == 3
        assert len(registry) == 0
        assert all(s.transport.closed and s.engine.closed for s in sessions)


class TestSession:
    """Tests for the session record."""

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        session = await make_session()
        await session.close()
        await session.close()
        assert session.transport.inbound.closed

    @pytest.mark.asyncio
    async def test_to_dict(self) -> None:
        session = await make_session("abc")
        data = session.to_dict()
        assert data["session_id"] == "abc"
        assert data["pending"] == 0
        assert "created_at" in data
