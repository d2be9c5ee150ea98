"""Engine factory.

Every stream session and every streamable exchange gets its own engine,
bound to the caller's credential.
"""

from __future__ import annotations

import httpx

from .config import Settings
from .protocol.engine import ProtocolEngine, ServerInfo
from .tools import INSTRUCTIONS, VedAstroClient, build_catalog

SERVER_NAME = "VedAstro"
SERVER_VERSION = "1.0.0"


def create_engine(
    api_key: str | None = None,
    *,
    settings: Settings,
    http_client: httpx.AsyncClient,
) -> ProtocolEngine:
    """Create an engine with the VedAstro catalog registered.

    Args:
        api_key: Credential extracted from the request; falls back to
            ``settings.api_key``
        settings: Server settings
        http_client: Shared client for downstream calls

    Returns:
        Unconnected ProtocolEngine
    """
    client = VedAstroClient(
        http_client,
        base_url=settings.api_url,
        api_key=api_key or settings.api_key,
    )
    engine = ProtocolEngine(
        ServerInfo(name=SERVER_NAME, version=SERVER_VERSION, instructions=INSTRUCTIONS),
        request_timeout=settings.request_timeout,
    )
    for tool in build_catalog(client):
        engine.register_tool(tool)
    return engine
