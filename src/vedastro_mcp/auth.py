"""Credential extraction.

The credential is optional. It is only forwarded to VedAstro, which
lifts free-tier throttling for keyed requests.
"""

from __future__ import annotations

from collections.abc import Mapping


def extract_api_key(headers: Mapping[str, str]) -> str | None:
    """Return the API key carried by the request, if any.

    Checked in order, first non-empty value wins:
    ``x-api-key``, ``APIKey``, ``Authorization: Bearer <token>``.
    ``headers`` should be case-insensitive (Starlette ``Headers``).
    """
    for name in ("x-api-key", "APIKey"):
        value = (headers.get(name) or "").strip()
        if value:
            return value

    authorization = headers.get("Authorization") or ""
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
        if token:
            return token

    return None
