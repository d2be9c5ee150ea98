"""Protocol engine.

Dispatches JSON-RPC messages arriving on a transport's inbound channel
to built-in MCP methods and registered tools, and sends every response
back through the same transport. The engine never looks at HTTP; the
same instance logic serves a single buffered exchange or a long-lived
event stream.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import TransportError
from ..tools.base import ToolDefinition, ToolRegistry
from .types import (
    SUPPORTED_PROTOCOL_VERSIONS,
    JsonRpcErrorCode,
    JsonRpcMessage,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    ProtocolError,
    error_response,
)

if TYPE_CHECKING:
    from ..transport.base import Transport

logger = logging.getLogger(__name__)

MethodHandler = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass
class ServerInfo:
    """Identity advertised in the ``initialize`` result."""

    name: str = "VedAstro"
    version: str = "1.0.0"
    instructions: str | None = None


class ProtocolEngine:
    """MCP server engine bound to at most one transport."""

    def __init__(
        self,
        info: ServerInfo | None = None,
        tools: ToolRegistry | None = None,
        request_timeout: float | None = 60.0,
    ) -> None:
        self.info = info or ServerInfo()
        self.tools = tools or ToolRegistry()
        self.request_timeout = request_timeout

        # Per-connection state negotiated in initialize
        self.protocol_version: str | None = None
        self.client_info: dict[str, Any] | None = None
        self.client_capabilities: dict[str, Any] = {}
        self.initialized = False

        self._transport: Transport | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False
        self._handlers: dict[str, MethodHandler] = {}
        self._register_default_handlers()

    def _register_default_handlers(self) -> None:
        self._handlers["initialize"] = self._handle_initialize
        self._handlers["ping"] = self._handle_ping
        self._handlers["tools/list"] = self._handle_list_tools
        self._handlers["tools/call"] = self._handle_call_tool

    def register_tool(self, tool: ToolDefinition) -> None:
        self.tools.register(tool)

    def register_handler(self, method: str, handler: MethodHandler) -> None:
        """Register a custom request handler."""
        self._handlers[method] = handler

    @property
    def transport(self) -> Transport | None:
        return self._transport

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    # =========================================================================
    # Transport binding
    # =========================================================================

    async def connect(self, transport: Transport) -> None:
        """Bind to a transport and start consuming its inbound channel."""
        if self._closed:
            raise RuntimeError("Engine is closed")
        if self._transport is not None:
            raise RuntimeError("Engine is already connected to a transport")

        self._unsubscribe = transport.inbound.subscribe(self._receive)
        self._transport = transport
        transport.on_close(self._on_transport_closed)
        transport.on_error(self._on_transport_error)

    async def close(self) -> None:
        """Cancel in-flight work and close the transport. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._cancel_pending()
        if self._transport is not None:
            await self._transport.close()

    def _receive(self, message: JsonRpcMessage) -> None:
        """Inbound channel receiver: process each message as its own task."""
        if self._closed:
            raise TransportError("Engine is closed")
        task = asyncio.create_task(self._process(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _on_transport_closed(self) -> None:
        self._closed = True
        self._cancel_pending()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_transport_error(self, error: Exception) -> None:
        logger.warning(f"Transport error: {error}")

    def _cancel_pending(self) -> None:
        current = asyncio.current_task() if self._tasks else None
        for task in list(self._tasks):
            if task is not current:
                task.cancel()

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def _process(self, message: JsonRpcMessage) -> None:
        if isinstance(message, JsonRpcRequest):
            response = await self.handle_request(message)
            await self._send(response)
        elif isinstance(message, JsonRpcNotification):
            await self.handle_notification(message)
        else:
            # The server sends no requests of its own, so nothing awaits these
            logger.debug(f"Ignoring client response for id {message.id!r}")

    async def _send(self, response: JsonRpcResponse) -> None:
        if self._transport is None:
            logger.warning(f"No transport for response {response.id!r}")
            return
        try:
            await self._transport.send(response)
        except TransportError as e:
            logger.warning(f"Dropping response {response.id!r}: {e}")

    async def handle_request(self, request: JsonRpcRequest) -> JsonRpcResponse:
        """Run one request to completion and build its response."""
        handler = self._handlers.get(request.method)
        if handler is None:
            return error_response(
                request.id,
                JsonRpcErrorCode.METHOD_NOT_FOUND,
                f"Method not found: {request.method}",
            )

        params = request.params if request.params is not None else {}
        try:
            if not isinstance(params, dict):
                raise ProtocolError(
                    JsonRpcErrorCode.INVALID_PARAMS, "Params must be an object"
                )
            if self.request_timeout:
                result = await asyncio.wait_for(handler(params), timeout=self.request_timeout)
            else:
                result = await handler(params)
            return JsonRpcResponse(id=request.id, result=result)
        except ProtocolError as e:
            return JsonRpcResponse(id=request.id, error=e.to_error())
        except TimeoutError:
            return error_response(
                request.id,
                JsonRpcErrorCode.INTERNAL_ERROR,
                f"Request timed out after {self.request_timeout}s",
            )
        except Exception as e:
            logger.exception(f"Error handling {request.method}: {e}")
            return error_response(
                request.id,
                JsonRpcErrorCode.INTERNAL_ERROR,
                str(e) or type(e).__name__,
            )

    async def handle_notification(self, notification: JsonRpcNotification) -> None:
        if notification.method == "notifications/initialized":
            self.initialized = True
            logger.info("Client initialized")
        else:
            logger.debug(f"Ignoring notification {notification.method}")

    # =========================================================================
    # MCP methods
    # =========================================================================

    async def _handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        if requested in SUPPORTED_PROTOCOL_VERSIONS:
            self.protocol_version = requested
        else:
            self.protocol_version = SUPPORTED_PROTOCOL_VERSIONS[0]
        self.client_info = params.get("clientInfo")
        self.client_capabilities = params.get("capabilities") or {}

        result: dict[str, Any] = {
            "protocolVersion": self.protocol_version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": self.info.name, "version": self.info.version},
        }
        if self.info.instructions:
            result["instructions"] = self.info.instructions
        return result

    async def _handle_ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def _handle_list_tools(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": [tool.to_dict() for tool in self.tools.list_tools()]}

    async def _handle_call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not name:
            raise ProtocolError(JsonRpcErrorCode.INVALID_PARAMS, "Missing tool name")

        tool = self.tools.get(name)
        if tool is None:
            raise ProtocolError(JsonRpcErrorCode.INVALID_PARAMS, f"Tool {name} not found")

        # Some clients send the arguments under "params"
        arguments = params.get("arguments")
        if arguments is None:
            arguments = params.get("params")
        return await tool.call(arguments)
