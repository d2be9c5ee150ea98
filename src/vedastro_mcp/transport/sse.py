"""Session transport for the legacy SSE endpoints.

Output for a session is written into an asyncio queue that the
long-lived ``text/event-stream`` response drains. Input arrives on a
separate POST endpoint and is delivered through :attr:`inbound`.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable

from ..errors import TransportClosedError
from ..protocol.types import JsonRpcMessage, dumps
from .base import Transport, sse_frame

KEEPALIVE_COMMENT = ": keepalive\n\n"


class SSETransport(Transport):
    """Transport writing framed events to one live stream."""

    def __init__(self, session_id: str, endpoint: str) -> None:
        super().__init__()
        self.session_id = session_id
        self.endpoint = endpoint
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Announce where the client should POST follow-up messages."""
        if self.closed:
            raise TransportClosedError("SSE stream is closed")
        if self._started:
            raise RuntimeError("SSE transport already started")
        self._started = True
        self._queue.put_nowait(sse_frame("endpoint", self.endpoint))

    async def send(self, message: JsonRpcMessage) -> None:
        if self.closed:
            raise TransportClosedError("SSE stream is closed")
        self._queue.put_nowait(sse_frame("message", dumps(message)))

    async def _on_close(self) -> None:
        # Wake the stream so it can finish
        self._queue.put_nowait(None)

    async def events(
        self,
        keepalive_interval: float | None = None,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncIterator[str]:
        """Yield framed events until the transport closes.

        Args:
            keepalive_interval: Seconds of silence before a keepalive
                comment is sent; None disables keepalives
            is_disconnected: Checked on every idle interval; the stream
                ends once it reports True
        """
        while True:
            try:
                if keepalive_interval:
                    chunk = await asyncio.wait_for(self._queue.get(), timeout=keepalive_interval)
                else:
                    chunk = await self._queue.get()
            except TimeoutError:
                if is_disconnected is not None and await is_disconnected():
                    return
                yield KEEPALIVE_COMMENT
                continue

            if chunk is None:
                return
            yield chunk
