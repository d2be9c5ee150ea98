"""Model Context Protocol envelope types.

The dispatcher lives in :mod:`vedastro_mcp.protocol.engine`.
"""

from .types import (
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    InvalidMessageError,
    JsonRpcError,
    JsonRpcErrorCode,
    JsonRpcMessage,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    ProtocolError,
    error_response,
    parse_message,
    parse_payload,
)

__all__ = [
    "LATEST_PROTOCOL_VERSION",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "InvalidMessageError",
    "JsonRpcError",
    "JsonRpcErrorCode",
    "JsonRpcMessage",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "ProtocolError",
    "error_response",
    "parse_message",
    "parse_payload",
]
