"""HTTP transports for the protocol engine."""

from .base import InboundChannel, Transport, sse_frame
from .sse import SSETransport
from .streamable import StreamableHTTPTransport

__all__ = [
    "InboundChannel",
    "SSETransport",
    "StreamableHTTPTransport",
    "Transport",
    "sse_frame",
]
