"""Unit tests for the stateless streamable HTTP transport."""

from __future__ import annotations

import json
from typing import Any

import pytest
from starlette.requests import Request

from vedastro_mcp.protocol.engine import ProtocolEngine
from vedastro_mcp.protocol.types import JsonRpcNotification, JsonRpcResponse
from vedastro_mcp.transport.streamable import StreamableHTTPTransport, accepts

JSON_HEADERS = {"content-type": "application/json", "accept": "application/json, text/event-stream"}


def make_request(method: str = "POST", body: Any = None, headers: dict[str, str] | None = None):
    raw = body if isinstance(body, bytes) else json.dumps(body).encode() if body is not None else b""
    scope = {
        "type": "http",
        "method": method,
        "path": "/api/mcp",
        "query_string": b"",
        "headers": [(k.encode(), v.encode()) for k, v in (headers or JSON_HEADERS).items()],
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": raw, "more_body": False}

    return Request(scope, receive)


async def connected(json_response: bool = True) -> StreamableHTTPTransport:
    transport = StreamableHTTPTransport(json_response=json_response)
    await ProtocolEngine().connect(transport)
    return transport


class TestAccepts:
    """Tests for Accept header matching."""

    @pytest.mark.parametrize(
        "header",
        ["application/json", "application/*", "*/*", "text/html, application/json;q=0.9"],
    )
    def test_accepts_json(self, header: str) -> None:
        assert accepts(header, "application/json")

    @pytest.mark.parametrize("header", [None, "", "  "])
    def test_missing_header_accepts_nothing(self, header: str | None) -> None:
        assert not accepts(header, "application/json")

    def test_rejects_other_types(self) -> None:
        assert not accepts("text/html", "application/json")
        assert not accepts("application/json", "text/event-stream")


class TestExchange:
    """Tests for one POST exchange."""

    @pytest.mark.asyncio
    async def test_single_request_json(self) -> None:
        transport = await connected()
        response = await transport.handle_request(
            make_request(body={"jsonrpc": "2.0", "id": 1, "method": "ping"})
        )
        assert response.status_code == 200
        assert json.loads(response.body) == {"jsonrpc": "2.0", "id": 1, "result": {}}

    @pytest.mark.asyncio
    async def test_batch_returns_list(self) -> None:
        transport = await connected()
        response = await transport.handle_request(
            make_request(
                body=[
                    {"jsonrpc": "2.0", "id": 1, "method": "ping"},
                    {"jsonrpc": "2.0", "method": "notifications/initialized"},
                    {"jsonrpc": "2.0", "id": "two", "method": "tools/list"},
                ]
            )
        )
        body = json.loads(response.body)
        assert [item["id"] for item in body] == [1, "two"]

    @pytest.mark.asyncio
    async def test_event_stream_rendering(self) -> None:
        transport = await connected(json_response=False)
        response = await transport.handle_request(
            make_request(body={"jsonrpc": "2.0", "id": 1, "method": "ping"})
        )
        assert response.media_type == "text/event-stream"
        assert response.body == b'event: message\ndata: {"jsonrpc":"2.0","id":1,"result":{}}\n\n'

    @pytest.mark.asyncio
    async def test_notifications_only_is_accepted(self) -> None:
        transport = await connected()
        response = await transport.handle_request(
            make_request(body={"jsonrpc": "2.0", "method": "notifications/initialized"})
        )
        assert response.status_code == 202
        assert response.body == b""

    @pytest.mark.asyncio
    async def test_not_acceptable(self) -> None:
        transport = await connected()
        headers = {"content-type": "application/json", "accept": "text/html"}
        response = await transport.handle_request(
            make_request(body={"jsonrpc": "2.0", "id": 1, "method": "ping"}, headers=headers)
        )
        assert response.status_code == 406
        assert json.loads(response.body)["id"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("accept", [None, "application/json", "text/event-stream"])
    async def test_both_formats_required(self, accept: str | None) -> None:
        transport = await connected()
        headers = {"content-type": "application/json"}
        if accept is not None:
            headers["accept"] = accept
        response = await transport.handle_request(
            make_request(body={"jsonrpc": "2.0", "id": 1, "method": "ping"}, headers=headers)
        )
        assert response.status_code == 406
        assert "application/json and text/event-stream" in json.loads(response.body)["error"]["message"]

    @pytest.mark.asyncio
    async def test_wildcard_accepts_both(self) -> None:
        transport = await connected(json_response=False)
        headers = {"content-type": "application/json", "accept": "*/*"}
        response = await transport.handle_request(
            make_request(body={"jsonrpc": "2.0", "id": 1, "method": "ping"}, headers=headers)
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_content_type(self) -> None:
        transport = await connected()
        headers = {"content-type": "text/plain", "accept": "application/json, text/event-stream"}
        response = await transport.handle_request(make_request(body=b"ping", headers=headers))
        assert response.status_code == 415

    @pytest.mark.asyncio
    async def test_parse_error(self) -> None:
        transport = await connected()
        response = await transport.handle_request(make_request(body=b"{not json"))
        assert response.status_code == 400
        assert json.loads(response.body)["error"]["code"] == -32700

    @pytest.mark.asyncio
    async def test_invalid_message(self) -> None:
        transport = await connected()
        response = await transport.handle_request(make_request(body={"hello": "world"}))
        assert response.status_code == 400
        assert json.loads(response.body)["error"]["code"] == -32600

    @pytest.mark.asyncio
    async def test_duplicate_ids(self) -> None:
        transport = await connected()
        ping = {"jsonrpc": "2.0", "id": 1, "method": "ping"}
        response = await transport.handle_request(make_request(body=[ping, ping]))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_get_not_allowed(self) -> None:
        transport = await connected()
        response = await transport.handle_request(make_request(method="GET"))
        assert response.status_code == 405
        assert response.headers["allow"] == "POST, DELETE"
        assert json.loads(response.body)["error"]["code"] == -32000

    @pytest.mark.asyncio
    async def test_delete_is_noop(self) -> None:
        transport = await connected()
        response = await transport.handle_request(make_request(method="DELETE"))
        assert response.status_code == 200


class TestSend:
    """Tests for outbound correlation."""

    @pytest.mark.asyncio
    async def test_uncorrelated_messages_reported(self) -> None:
        transport = StreamableHTTPTransport()
        errors: list[Exception] = []
        transport.on_error(errors.append)

        await transport.send(JsonRpcResponse(id=99, result={}))
        await transport.send(JsonRpcNotification(method="notifications/message"))
        assert len(errors) == 2
