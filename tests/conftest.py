"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio

from vedastro_mcp.app import create_app
from vedastro_mcp.config import Settings
from vedastro_mcp.tools.client import VedAstroClient

API_URL = "https://vedastro.test/api"

BIRTH = {
    "latitude": "19.0760",
    "longitude": "72.8777",
    "birth_time": "14:30",
    "birth_date": "25/10/1992",
    "timezone": "+05:30",
}


class FakeVedAstro:
    """In-memory stand-in for the VedAstro Calculate API.

    Every endpoint passes with ``{"<Endpoint>": "<Endpoint>-value"}`` unless
    told otherwise.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.failures: dict[str, int] = {}
        self.rejections: dict[str, Any] = {}
        self.payloads: dict[str, Any] = {}

    def fail(self, endpoint: str, status_code: int = 503) -> None:
        self.failures[endpoint] = status_code

    def reject(self, endpoint: str, payload: Any = "Invalid input") -> None:
        self.rejections[endpoint] = payload

    def respond(self, endpoint: str, payload: Any) -> None:
        self.payloads[endpoint] = payload

    @staticmethod
    def endpoint_of(request: httpx.Request) -> str:
        return request.url.path.split("/Calculate/", 1)[1].split("/", 1)[0]

    def endpoints(self) -> list[str]:
        return [self.endpoint_of(r) for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = self.endpoint_of(request)
        if endpoint in self.failures:
            return httpx.Response(self.failures[endpoint], text="unavailable")
        if endpoint in self.rejections:
            return httpx.Response(
                200, json={"Status": "Fail", "Payload": self.rejections[endpoint]}
            )
        payload = self.payloads.get(endpoint, {endpoint: f"{endpoint}-value"})
        return httpx.Response(200, json={"Status": "Pass", "Payload": payload})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def vedastro() -> FakeVedAstro:
    return FakeVedAstro()


@pytest.fixture
def http_client(vedastro: FakeVedAstro) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=vedastro.transport())


@pytest.fixture
def client(http_client: httpx.AsyncClient) -> VedAstroClient:
    return VedAstroClient(http_client, base_url=API_URL)


@pytest.fixture
def settings() -> Settings:
    return Settings(api_url=API_URL)


@pytest.fixture
def app(settings: Settings, http_client: httpx.AsyncClient):
    return create_app(settings, http_client=http_client)


# =============================================================================
# Streaming helpers
# =============================================================================


class StreamingConnection:
    """Drive one long-lived ASGI response inside the test's event loop.

    The buffering test clients wait for the full body, which an SSE
    stream never finishes, so the app is called directly here.
    """

    def __init__(self, app: Any, path: str, headers: dict[str, str] | None = None) -> None:
        self.app = app
        self.path = path
        self.request_headers = headers or {}
        self.status: int | None = None
        self.headers: dict[str, str] = {}
        self._messages: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._disconnect = asyncio.Event()
        self._request_sent = False
        self._buffer = ""
        self._done = False
        self._task: asyncio.Task[None] | None = None

    async def open(self) -> StreamingConnection:
        path, _, query = self.path.partition("?")
        scope = {
            "type": "http",
            "asgi": {"version": "3.0", "spec_version": "2.0"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": path,
            "raw_path": path.encode(),
            "query_string": query.encode(),
            "root_path": "",
            "headers": [(k.lower().encode(), v.encode()) for k, v in self.request_headers.items()],
            "client": ("testclient", 50000),
            "server": ("testserver", 80),
        }
        self._task = asyncio.create_task(self.app(scope, self._receive, self._send))
        start = await asyncio.wait_for(self._messages.get(), timeout=2.0)
        assert start["type"] == "http.response.start"
        self.status = start["status"]
        self.headers = {k.decode().lower(): v.decode() for k, v in start["headers"]}
        return self

    async def _receive(self) -> dict[str, Any]:
        if not self._request_sent:
            self._request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await self._disconnect.wait()
        return {"type": "http.disconnect"}

    async def _send(self, message: dict[str, Any]) -> None:
        await self._messages.put(message)

    async def read_text(self, timeout: float = 2.0) -> str:
        """Read the rest of a finite body."""
        while not self._done:
            await self._pull(timeout)
        text, self._buffer = self._buffer, ""
        return text

    async def read_event(self, timeout: float = 2.0) -> dict[str, str]:
        """Read the next event frame, skipping comment frames."""
        while True:
            while "\n\n" not in self._buffer:
                if self._done:
                    raise EOFError("Stream ended")
                await self._pull(timeout)
            frame, self._buffer = self._buffer.split("\n\n", 1)
            event: dict[str, str] = {}
            data: list[str] = []
            for line in frame.split("\n"):
                if line.startswith(":"):
                    continue
                field, _, value = line.partition(": ")
                if field == "data":
                    data.append(value)
                elif field:
                    event[field] = value
            if not event and not data:
                continue
            event["data"] = "\n".join(data)
            return event

    async def read_json_event(self, timeout: float = 2.0) -> dict[str, Any]:
        event = await self.read_event(timeout)
        assert event.get("event") == "message"
        return json.loads(event["data"])

    async def _pull(self, timeout: float) -> None:
        message = await asyncio.wait_for(self._messages.get(), timeout=timeout)
        if message["type"] == "http.response.body":
            self._buffer += message.get("body", b"").decode()
            if not message.get("more_body", False):
                self._done = True

    async def disconnect(self) -> None:
        self._disconnect.set()
        if self._task is not None:
            await asyncio.wait_for(self._task, timeout=2.0)


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Poll until ``predicate`` holds (teardown runs in a shielded task)."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met in time")
        await asyncio.sleep(0.01)


@pytest_asyncio.fixture
async def open_stream(app):
    """Open streaming connections and disconnect them after the test."""
    connections: list[StreamingConnection] = []

    async def _open(
        path: str = "/api/sse",
        headers: dict[str, str] | None = None,
        target: Any = None,
    ) -> StreamingConnection:
        conn = StreamingConnection(target or app, path, headers)
        connections.append(conn)
        return await conn.open()

    yield _open

    for conn in connections:
        await conn.disconnect()
