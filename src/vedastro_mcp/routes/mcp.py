"""Streamable HTTP endpoint (``/mcp``).

Stateless: each call builds a fresh engine and transport, runs the
exchange and tears both down before returning.
"""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from ..auth import extract_api_key
from ..protocol.types import JsonRpcErrorCode, error_response
from ..transport.streamable import StreamableHTTPTransport

logger = logging.getLogger(__name__)


async def mcp_endpoint(request: Request) -> Response:
    """Handle one streamable HTTP exchange."""
    state = request.app.state

    try:
        api_key = extract_api_key(request.headers)
        engine = state.engine_factory(api_key)
        transport = StreamableHTTPTransport(json_response=state.settings.json_response)
        await engine.connect(transport)

        try:
            exchange = await transport.handle_request(request)
        finally:
            await engine.close()

        # The host computes content-length for the body it actually sends
        headers = {
            key: value
            for key, value in exchange.headers.items()
            if key.lower() != "content-length"
        }
        return Response(
            content=exchange.body,
            status_code=exchange.status_code,
            headers=headers,
        )

    except Exception as e:
        logger.exception(f"MCP request failed: {e}")
        envelope = error_response(
            None, JsonRpcErrorCode.INTERNAL_ERROR, str(e) or "Internal server error"
        )
        return JSONResponse(envelope.to_wire(), status_code=500)


mcp_routes = [
    Route("/mcp", mcp_endpoint, methods=["GET", "POST", "DELETE"]),
]
