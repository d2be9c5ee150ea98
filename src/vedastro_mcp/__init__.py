"""VedAstro MCP Server.

Exposes VedAstro astrology calculations as Model Context Protocol tools
over Streamable HTTP and the legacy SSE transport.
"""

from .app import create_app
from .config import Settings
from .protocol.engine import ProtocolEngine, ServerInfo
from .server import create_engine
from .sessions import Session, SessionRegistry

__version__ = "1.0.0"

__all__ = [
    "ProtocolEngine",
    "ServerInfo",
    "Session",
    "SessionRegistry",
    "Settings",
    "create_app",
    "create_engine",
]
