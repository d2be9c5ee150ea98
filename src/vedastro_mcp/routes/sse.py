"""Legacy SSE endpoints.

- GET /sse - establish a session stream
- POST /messages - submit one message into an established session

Results are never returned inline by /messages; they arrive as
``event: message`` frames on the session's stream.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from ..auth import extract_api_key
from ..errors import TransportError
from ..protocol.engine import ProtocolEngine
from ..protocol.types import parse_message
from ..sessions import Session, SessionRegistry
from ..transport.sse import SSETransport

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Id"
SESSION_QUERY_PARAM = "sessionId"

# Every method is routed here so that wrong methods get our own 405 body
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def _teardown(session: Session, registry: SessionRegistry) -> None:
    await registry.remove(session.token)
    await session.close()
    logger.info(f"SSE session {session.token} closed")


async def _session_stream(
    request: Request,
    session: Session,
    keepalive_interval: float | None,
) -> AsyncIterator[str]:
    async for chunk in session.transport.events(keepalive_interval, request.is_disconnected):
        yield chunk


class SessionStreamResponse(StreamingResponse):
    """Event stream that evicts and closes its session when the response ends.

    Teardown runs even if the body was never iterated, e.g. when the
    client is gone before the headers could be written.
    """

    def __init__(
        self,
        content: AsyncIterator[str],
        session: Session,
        registry: SessionRegistry,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(content, headers=headers, media_type="text/event-stream")
        self.session = session
        self.registry = registry

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await asyncio.shield(_teardown(self.session, self.registry))


async def establish_session(request: Request) -> Response:
    """Open a long-lived SSE stream bound to a new session.

    The session is fully wired and registered before the response
    headers (which carry the token) leave the server.
    """
    if request.method != "GET":
        return PlainTextResponse(
            "Method not allowed. Use GET to establish SSE connection.",
            status_code=405,
            headers={"Allow": "GET"},
        )

    state = request.app.state
    registry: SessionRegistry = state.registry
    engine: ProtocolEngine | None = None

    try:
        api_key = extract_api_key(request.headers)

        session_id = str(uuid.uuid4())
        while session_id in registry:
            session_id = str(uuid.uuid4())

        transport = SSETransport(session_id, state.settings.messages_path)
        engine = state.engine_factory(api_key)
        await engine.connect(transport)
        await transport.start()

        session = Session(token=session_id, transport=transport, engine=engine)
        await registry.put(session_id, session)
    except Exception as e:
        logger.exception(f"Error starting SSE session: {e}")
        if engine is not None:
            await engine.close()
        return JSONResponse({"error": str(e) or "Internal server error"}, status_code=500)

    logger.info(f"SSE session {session_id} established")

    return SessionStreamResponse(
        _session_stream(request, session, state.settings.sse_keepalive_interval),
        session,
        registry,
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
            SESSION_HEADER: session_id,
        },
    )


async def submit_message(request: Request) -> Response:
    """Route one JSON-RPC message into an established session."""
    if request.method != "POST":
        return PlainTextResponse(
            "Method not allowed. Use POST to send messages.",
            status_code=405,
            headers={"Allow": "POST"},
        )

    state = request.app.state
    registry: SessionRegistry = state.registry

    try:
        session_id = request.headers.get(SESSION_HEADER) or request.query_params.get(
            SESSION_QUERY_PARAM
        )
        if not session_id:
            return PlainTextResponse(
                "Missing X-Session-Id header or sessionId query parameter",
                status_code=400,
            )

        session = await registry.get(session_id)
        if session is None:
            return PlainTextResponse(
                f"Session not found. Please reconnect to {state.settings.sse_path}",
                status_code=404,
            )

        body = await request.body()
        message = parse_message(json.loads(body))

        try:
            session.transport.inbound.deliver(message)
        except TransportError as e:
            logger.warning(f"Session {session_id} rejected message: {e}")
            return PlainTextResponse(
                f"Session is not accepting messages. Please reconnect to {state.settings.sse_path}",
                status_code=409,
            )

        return PlainTextResponse("Accepted", status_code=202)

    except Exception as e:
        logger.warning(f"Failed to submit message: {e}")
        return JSONResponse({"error": str(e) or "Internal server error"}, status_code=500)


sse_routes = [
    Route("/sse", establish_session, methods=ALL_METHODS),
    Route("/messages", submit_message, methods=ALL_METHODS),
]
