"""HTTP routes."""

from .health import health_routes
from .mcp import mcp_routes
from .sse import sse_routes

__all__ = ["health_routes", "mcp_routes", "sse_routes"]
