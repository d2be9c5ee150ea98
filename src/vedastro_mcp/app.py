"""VedAstro MCP Server Application.

Creates the Starlette ASGI application with all routes.

Route organization (prefix configurable, default /api):
- /health - Health check
- /api/mcp - Streamable HTTP transport (stateless)
- /api/sse - Legacy SSE stream, one session per connection
- /api/messages - Legacy SSE message submission
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator, Callable
from functools import partial

import httpx
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import BaseRoute, Mount

from .config import Settings
from .protocol.engine import ProtocolEngine
from .routes import health_routes, mcp_routes, sse_routes
from .server import create_engine
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)

EngineFactory = Callable[[str | None], ProtocolEngine]


def create_app(
    settings: Settings | None = None,
    *,
    registry: SessionRegistry | None = None,
    http_client: httpx.AsyncClient | None = None,
    engine_factory: EngineFactory | None = None,
) -> Starlette:
    """Create the MCP server application.

    Args:
        settings: Server settings; loaded from the environment if omitted
        registry: Session registry; a fresh one per app if omitted
        http_client: Client for VedAstro calls; created (and closed on
            shutdown) by the app if omitted
        engine_factory: Builds an engine for a credential; defaults to
            :func:`vedastro_mcp.server.create_engine`

    Returns:
        Configured Starlette application
    """
    settings = settings or Settings.from_env()
    registry = registry if registry is not None else SessionRegistry()
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=settings.api_timeout)
    factory = engine_factory or partial(create_engine, settings=settings, http_client=client)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info(f"MCP routes mounted at {settings.route_prefix or '/'}")
        try:
            yield
        finally:
            await registry.close_all()
            if owns_client:
                await client.aclose()

    routes: list[BaseRoute] = []
    routes.extend(health_routes)

    mcp_transport_routes: list[BaseRoute] = [*mcp_routes, *sse_routes]
    if settings.route_prefix:
        routes.append(Mount(settings.route_prefix, routes=mcp_transport_routes))
    else:
        routes.extend(mcp_transport_routes)

    # Browser clients need to read the session header
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Session-Id", "Mcp-Session-Id"],
        ),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.http_client = client
    app.state.engine_factory = factory
    return app
