"""VedAstro HTTP client.

Every VedAstro endpoint answers ``{"Status": "Pass" | ..., "Payload": ...}``.
Anything other than an HTTP 2xx with ``Status == "Pass"`` becomes a
:class:`VedAstroError`. Calls are never retried; the protocol client
decides whether to try again.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import DEFAULT_API_URL
from ..errors import VedAstroError

logger = logging.getLogger(__name__)

AYANAMSA = "RAMAN"


class VedAstroClient:
    """Thin async wrapper over the VedAstro ``Calculate`` API."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str = DEFAULT_API_URL,
        api_key: str | None = None,
    ) -> None:
        self._http = http
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    @property
    def headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key} if self.api_key else {}

    def url(self, path: str) -> str:
        return f"{self.base_url}/Calculate/{path.lstrip('/')}"

    async def calculate(self, path: str, label: str | None = None) -> Any:
        """GET a ``Calculate`` endpoint and return its payload.

        Args:
            path: Path below ``/Calculate/``
            label: Short name included in error messages when a tool
                makes several calls

        Raises:
            VedAstroError: on transport failure, non-2xx status or a
                non-Pass envelope
        """
        prefix = f"VedAstro API error ({label})" if label else "VedAstro API error"
        url = self.url(path)

        try:
            response = await self._http.get(url, headers=self.headers)
        except httpx.HTTPError as e:
            raise VedAstroError(f"{prefix}: {e}") from e

        if not response.is_success:
            logger.warning(f"VedAstro returned {response.status_code} for {url}")
            raise VedAstroError(f"{prefix}: {response.status_code}", response.status_code)

        try:
            envelope = response.json()
        except ValueError as e:
            raise VedAstroError(f"{prefix}: invalid JSON response") from e

        if not isinstance(envelope, dict) or envelope.get("Status") != "Pass":
            payload = envelope.get("Payload") if isinstance(envelope, dict) else envelope
            raise VedAstroError(f"{prefix}: {payload}")

        return envelope.get("Payload")
