"""JSON-RPC 2.0 envelope types for the Model Context Protocol.

Field names follow the wire format (camelCase where MCP uses it).
Messages are immutable once parsed.
"""

from __future__ import annotations

import json
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, ValidationError

# Newest first. The first entry is offered when a client asks for a
# version we do not know.
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]

RequestId = Union[str, int]


class JsonRpcErrorCode:
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Implementation-defined server error
    SERVER_ERROR = -32000


class JsonRpcModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class JsonRpcRequest(JsonRpcModel):
    """JSON-RPC 2.0 request (expects a response)."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId
    method: str
    params: dict[str, Any] | list[Any] | None = None


class JsonRpcNotification(JsonRpcModel):
    """JSON-RPC 2.0 notification (no response expected)."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: dict[str, Any] | list[Any] | None = None


class JsonRpcError(JsonRpcModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any | None = None

    def to_wire(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


class JsonRpcResponse(JsonRpcModel):
    """JSON-RPC 2.0 response.

    ``id`` is ``None`` only for failures that happened before the
    request could be correlated.
    """

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId | None = None
    result: Any | None = None
    error: JsonRpcError | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with exactly one of ``result`` or ``error``."""
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.to_wire()
        else:
            data["result"] = self.result if self.result is not None else {}
        return data


JsonRpcMessage = Union[JsonRpcRequest, JsonRpcNotification, JsonRpcResponse]


class ProtocolError(Exception):
    """Failure that maps onto a specific JSON-RPC error code."""

    def __init__(self, code: int, message: str, data: Any | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_error(self) -> JsonRpcError:
        return JsonRpcError(code=self.code, message=self.message, data=self.data)


class InvalidMessageError(ProtocolError):
    """The payload is valid JSON but not a JSON-RPC message."""

    def __init__(self, message: str) -> None:
        super().__init__(JsonRpcErrorCode.INVALID_REQUEST, message)


def parse_message(data: Any) -> JsonRpcMessage:
    """Parse a decoded JSON value into a protocol message.

    Raises:
        InvalidMessageError: if the value is not a JSON-RPC 2.0 message
    """
    if not isinstance(data, dict):
        raise InvalidMessageError("Message must be a JSON object")

    try:
        if "method" in data:
            if data.get("id") is not None:
                return JsonRpcRequest.model_validate(data)
            fields = {k: v for k, v in data.items() if k != "id"}
            return JsonRpcNotification.model_validate(fields)
        if "result" in data or "error" in data:
            return JsonRpcResponse.model_validate(data)
    except ValidationError as e:
        raise InvalidMessageError(f"Invalid JSON-RPC message: {e}") from e

    raise InvalidMessageError("Message has neither 'method' nor 'result'/'error'")


def parse_payload(payload: Any) -> list[JsonRpcMessage]:
    """Parse a single message or a batch (JSON array) of messages."""
    if isinstance(payload, list):
        if not payload:
            raise InvalidMessageError("Batch must not be empty")
        return [parse_message(item) for item in payload]
    return [parse_message(payload)]


def error_response(
    request_id: RequestId | None,
    code: int,
    message: str,
    data: Any | None = None,
) -> JsonRpcResponse:
    """Create a JSON-RPC error response."""
    return JsonRpcResponse(
        id=request_id,
        error=JsonRpcError(code=code, message=message, data=data),
    )


def dumps(message: JsonRpcMessage | JsonRpcResponse) -> str:
    """Compact wire encoding of a message."""
    if isinstance(message, JsonRpcResponse):
        data = message.to_wire()
    else:
        data = message.model_dump(exclude_none=True)
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)
