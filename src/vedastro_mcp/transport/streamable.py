"""Streamable HTTP transport (stateless).

One HTTP request is one exchange: the body's messages are delivered to
the engine, the transport waits until every request in the body has a
response, then renders them as a JSON body or an event stream. No
session id is issued and none is honoured.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..errors import TransportClosedError, TransportError
from ..protocol.types import (
    InvalidMessageError,
    JsonRpcErrorCode,
    JsonRpcMessage,
    JsonRpcRequest,
    JsonRpcResponse,
    RequestId,
    dumps,
    error_response,
    parse_payload,
)
from .base import Transport, sse_frame

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
SSE_MEDIA_TYPE = "text/event-stream"


def _media_types(accept: str) -> set[str]:
    return {part.split(";", 1)[0].strip().lower() for part in accept.split(",") if part.strip()}


def accepts(accept: str | None, media_type: str) -> bool:
    """Whether an Accept header admits ``media_type``.

    A missing header admits nothing: clients must say what they read.
    """
    if accept is None or not accept.strip():
        return False
    types = _media_types(accept)
    major = media_type.split("/", 1)[0]
    return bool(types & {media_type, f"{major}/*", "*/*"})


class StreamableHTTPTransport(Transport):
    """Per-request transport for the ``/mcp`` endpoint."""

    def __init__(self, json_response: bool = True) -> None:
        super().__init__()
        self.json_response = json_response
        self._pending: dict[RequestId, asyncio.Future[JsonRpcResponse]] = {}

    async def send(self, message: JsonRpcMessage) -> None:
        """Resolve the pending request this response answers."""
        if self.closed:
            raise TransportClosedError("Exchange is closed")

        if not isinstance(message, JsonRpcResponse) or message.id is None:
            # Stateless mode has no standalone stream to carry these
            self.report_error(TransportError("No stream for unsolicited server message"))
            return

        future = self._pending.get(message.id)
        if future is None or future.done():
            self.report_error(TransportError(f"No pending request with id {message.id!r}"))
            return
        future.set_result(message)

    async def _on_close(self) -> None:
        for future in self._pending.values():
            if not future.done():
                future.cancel()
        self._pending.clear()

    async def handle_request(self, request: Request) -> Response:
        """Run one HTTP exchange and build the response."""
        if request.method == "POST":
            return await self._handle_post(request)
        if request.method == "DELETE":
            # Nothing to terminate without sessions
            return Response(status_code=200)
        return self._error_response(
            405,
            JsonRpcErrorCode.SERVER_ERROR,
            "Method not allowed.",
            headers={"Allow": "POST, DELETE"},
        )

    async def _handle_post(self, request: Request) -> Response:
        # Clients must take both formats regardless of the configured one
        accept = request.headers.get("accept")
        if not (accepts(accept, JSON_MEDIA_TYPE) and accepts(accept, SSE_MEDIA_TYPE)):
            return self._error_response(
                406,
                JsonRpcErrorCode.SERVER_ERROR,
                "Not Acceptable: Client must accept both application/json and text/event-stream",
            )

        content_type = request.headers.get("content-type", "")
        if JSON_MEDIA_TYPE not in content_type.lower():
            return self._error_response(
                415,
                JsonRpcErrorCode.SERVER_ERROR,
                "Unsupported Media Type: Content-Type must be application/json",
            )

        body = await request.body()
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return self._error_response(400, JsonRpcErrorCode.PARSE_ERROR, f"Parse error: {e}")

        try:
            messages = parse_payload(payload)
        except InvalidMessageError as e:
            return self._error_response(400, JsonRpcErrorCode.INVALID_REQUEST, e.message)

        requests = [m for m in messages if isinstance(m, JsonRpcRequest)]
        ids = [r.id for r in requests]
        if len(set(ids)) != len(ids):
            return self._error_response(
                400, JsonRpcErrorCode.INVALID_REQUEST, "Duplicate request id in batch"
            )

        loop = asyncio.get_running_loop()
        for request_id in ids:
            self._pending[request_id] = loop.create_future()

        for message in messages:
            self.inbound.deliver(message)

        if not requests:
            return Response(status_code=202)

        responses = await asyncio.gather(*(self._pending[i] for i in ids))
        self._pending.clear()
        return self._render(list(responses), batch=isinstance(payload, list))

    def _render(self, responses: list[JsonRpcResponse], batch: bool) -> Response:
        if self.json_response:
            content: Any = (
                [r.to_wire() for r in responses] if batch else responses[0].to_wire()
            )
            return JSONResponse(content)

        body = "".join(sse_frame("message", dumps(r)) for r in responses)
        return Response(
            body,
            media_type=SSE_MEDIA_TYPE,
            headers={"Cache-Control": "no-cache"},
        )

    @staticmethod
    def _error_response(
        status_code: int,
        code: int,
        message: str,
        headers: dict[str, str] | None = None,
    ) -> JSONResponse:
        return JSONResponse(
            error_response(None, code, message).to_wire(),
            status_code=status_code,
            headers=headers,
        )
