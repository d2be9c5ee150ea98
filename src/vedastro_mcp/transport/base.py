"""Transport abstraction shared by the HTTP adapters.

A transport owns one direction of output (``send``) and exposes an
:class:`InboundChannel` that adapters write received messages into.
The protocol engine subscribes to that channel when it connects, so
nothing ever assigns callbacks onto the transport object itself.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from ..errors import NoReceiverError, TransportClosedError
from ..protocol.types import JsonRpcMessage

logger = logging.getLogger(__name__)

MessageReceiver = Callable[[JsonRpcMessage], None]
CloseCallback = Callable[[], Awaitable[None] | None]
ErrorCallback = Callable[[Exception], None]


class InboundChannel:
    """Single-receiver sink for messages arriving from the client.

    Adapters call :meth:`deliver`; exactly one receiver (the engine)
    consumes. Delivery never silently drops a message: a closed channel
    or a missing receiver raises so the caller can signal the client.
    """

    def __init__(self) -> None:
        self._receiver: MessageReceiver | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def has_receiver(self) -> bool:
        return self._receiver is not None

    def subscribe(self, receiver: MessageReceiver) -> Callable[[], None]:
        """Attach the receiver.

        Returns:
            Unsubscribe function
        """
        if self._closed:
            raise TransportClosedError("Inbound channel is closed")
        if self._receiver is not None:
            raise RuntimeError("Inbound channel already has a receiver")
        self._receiver = receiver

        def unsubscribe() -> None:
            if self._receiver is receiver:
                self._receiver = None

        return unsubscribe

    def deliver(self, message: JsonRpcMessage) -> None:
        """Hand a message to the receiver.

        Raises:
            TransportClosedError: if the channel was closed
            NoReceiverError: if nothing is subscribed
        """
        if self._closed:
            raise TransportClosedError("Inbound channel is closed")
        receiver = self._receiver
        if receiver is None:
            raise NoReceiverError("No receiver attached to inbound channel")
        receiver(message)

    def close(self) -> None:
        self._closed = True
        self._receiver = None


class Transport(ABC):
    """Base class for engine transports."""

    def __init__(self) -> None:
        self.inbound = InboundChannel()
        self._closed = False
        self._close_callbacks: list[CloseCallback] = []
        self._error_callbacks: list[ErrorCallback] = []

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        """Start the transport. Default is a no-op."""

    @abstractmethod
    async def send(self, message: JsonRpcMessage) -> None:
        """Send a message to the client."""

    async def close(self) -> None:
        """Close the transport. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.inbound.close()
        await self._on_close()

        callbacks = list(self._close_callbacks)
        self._close_callbacks.clear()
        for callback in callbacks:
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Error in transport close callback")

    async def _on_close(self) -> None:
        """Hook for subclasses to release their output resources."""

    def on_close(self, callback: CloseCallback) -> None:
        self._close_callbacks.append(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_callbacks.append(callback)

    def report_error(self, error: Exception) -> None:
        """Notify error subscribers about a non-fatal transport failure."""
        if not self._error_callbacks:
            logger.warning(f"Unhandled transport error: {error}")
            return
        for callback in self._error_callbacks:
            try:
                callback(error)
            except Exception:
                logger.exception("Error in transport error callback")


def sse_frame(event: str, data: str) -> str:
    """Frame one server-sent event."""
    lines = "".join(f"data: {line}\n" for line in data.split("\n"))
    return f"event: {event}\n{lines}\n"
