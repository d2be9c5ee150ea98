"""Server configuration.

Values come from the environment so the same image can run locally,
under uvicorn, or behind a hosting platform without code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_API_URL = "https://api.vedastro.org/api"

_TRUTHY = ("1", "true", "yes", "on")


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUTHY


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


@dataclass
class Settings:
    """Runtime settings for the MCP server."""

    # Downstream service
    api_url: str = DEFAULT_API_URL
    api_key: str | None = None
    api_timeout: float = 30.0

    # Transport settings
    route_prefix: str = "/api"
    json_response: bool = True
    request_timeout: float = 60.0
    sse_keepalive_interval: float = 15.0

    def __post_init__(self) -> None:
        self.api_url = self.api_url.rstrip("/")
        prefix = self.route_prefix.strip().rstrip("/")
        if prefix and not prefix.startswith("/"):
            prefix = "/" + prefix
        self.route_prefix = prefix

    @property
    def messages_path(self) -> str:
        """Path clients POST follow-up messages to on the SSE transport."""
        return f"{self.route_prefix}/messages"

    @property
    def sse_path(self) -> str:
        return f"{self.route_prefix}/sse"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        return cls(
            api_url=os.environ.get("VEDASTRO_API_URL", DEFAULT_API_URL),
            api_key=os.environ.get("VEDASTRO_API_KEY") or None,
            api_timeout=_env_float("VEDASTRO_TIMEOUT", 30.0),
            route_prefix=os.environ.get("MCP_ROUTE_PREFIX", "/api"),
            json_response=_env_bool("MCP_JSON_RESPONSE", True),
            request_timeout=_env_float("MCP_REQUEST_TIMEOUT", 60.0),
            sse_keepalive_interval=_env_float("MCP_SSE_KEEPALIVE", 15.0),
        )
