"""VedAstro MCP Server CLI.

Usage:
    vedastro-mcp                      # Serve on 127.0.0.1:7071
    vedastro-mcp --port 8080          # Custom port
    vedastro-mcp --reload             # Auto-reload for development
    vedastro-mcp --health             # Check a running server and exit
"""

from __future__ import annotations

import logging

import click
import httpx

LOG_LEVELS = ["debug", "info", "warning", "error"]


@click.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=7071, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS),
    default="info",
    help="Logging level",
)
@click.option("--health", "health_check", is_flag=True, help="Check server health and exit")
@click.option("--health-url", default="http://localhost:7071", help="Server URL for health check")
def main(
    host: str,
    port: int,
    reload: bool,
    log_level: str,
    health_check: bool,
    health_url: str,
) -> None:
    """VedAstro MCP server over Streamable HTTP and SSE."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if health_check:
        _check_health(health_url)
        return

    _run_http_server(host, port, reload, log_level)


def _check_health(url: str) -> None:
    """GET <url>/health once; any answer but 200 is a failure."""
    health_url = f"{url.rstrip('/')}/health"
    try:
        response = httpx.get(health_url, timeout=5.0)
    except httpx.HTTPError as e:
        raise click.ClickException(f"Cannot reach {health_url}: {e}") from e

    if response.status_code != 200:
        raise click.ClickException(f"{health_url} answered {response.status_code}")

    sessions = response.json().get("sessions", 0)
    click.echo(f"healthy, {sessions} open SSE session(s)")


def _run_http_server(host: str, port: int, reload: bool, log_level: str) -> None:
    """Run the HTTP server."""
    import uvicorn

    click.echo(f"Starting VedAstro MCP server on http://{host}:{port}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "vedastro_mcp.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
