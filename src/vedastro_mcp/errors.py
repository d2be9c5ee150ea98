"""Exception hierarchy shared by transports, tools and routes."""

from __future__ import annotations


class VedAstroError(Exception):
    """Downstream VedAstro call failed (HTTP error or non-Pass status)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportError(Exception):
    """Base class for transport failures."""


class TransportClosedError(TransportError):
    """Raised when writing to or delivering into a closed transport."""


class NoReceiverError(TransportError):
    """Raised when an inbound message has nowhere to go."""
