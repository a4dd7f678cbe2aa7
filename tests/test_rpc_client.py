"""Tests for JsonRpcWebsocket request correlation and close handling."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from websockets.exceptions import ConnectionClosedError

from guardian_client.errors import (
    GuardianConnectionError,
    GuardianResponseError,
    GuardianTimeout,
)
from guardian_client.transport.rpc_client import JsonRpcWebsocket

from .conftest import ENDPOINT

_END = object()


class FakeConnection:
    """Stand-in for a websockets ClientConnection."""

    def __init__(self, reply: Callable[[dict[str, Any]], Any] | None = None) -> None:
        self.incoming: asyncio.Queue[Any] = asyncio.Queue()
        self.sent: list[dict[str, Any]] = []
        self.reply = reply
        self.close_code: int | None = None
        self.close_reason: str | None = None

    async def send(self, data: str) -> None:
        frame = json.loads(data)
        self.sent.append(frame)
        if self.reply is not None:
            answer = self.reply(frame)
            if answer is not None:
                self.push(answer)

    def push(self, message: Any) -> None:
        self.incoming.put_nowait(message if isinstance(message, (str, bytes)) else json.dumps(message))

    def end(self, code: int = 1000) -> None:
        self.close_code = code
        self.incoming.put_nowait(_END)

    def drop(self) -> None:
        self.close_code = 1006
        self.incoming.put_nowait(ConnectionClosedError(None, None))

    async def close(self) -> None:
        if self.close_code is None:
            self.end(1000)

    def __aiter__(self) -> FakeConnection:
        return self

    async def __anext__(self) -> Any:
        item = await self.incoming.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


def echo_result(frame: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": frame["id"], "result": {"echo": frame["method"]}}


async def open_channel(
    connection: FakeConnection,
    *,
    request_timeout: float = 5.0,
    on_error: Callable[[Any], None] | None = None,
) -> JsonRpcWebsocket:
    with patch(
        "guardian_client.transport.rpc_client.connect_websocket",
        return_value=connection,
    ):
        channel = JsonRpcWebsocket(ENDPOINT, request_timeout, on_error)
        await channel.open()
    return channel


class TestOpen:
    """Tests for JsonRpcWebsocket.open()."""

    @pytest.mark.asyncio
    async def test_open_connects_to_url(self) -> None:
        """Test the endpoint and socket options are passed through."""
        connection = FakeConnection()

        with patch(
            "guardian_client.transport.rpc_client.connect_websocket",
            return_value=connection,
        ) as mock_connect:
            channel = JsonRpcWebsocket(
                ENDPOINT, 60.0, ping_interval=30, open_timeout=5.0, close_timeout=2.0
            )
            await channel.open()

        mock_connect.assert_called_once_with(
            ENDPOINT, ping_interval=30, open_timeout=5.0, close_timeout=2.0
        )
        assert channel.is_open
        await channel.close()

    @pytest.mark.asyncio
    async def test_open_propagates_errors(self) -> None:
        """Test connection errors reach the caller."""
        with patch(
            "guardian_client.transport.rpc_client.connect_websocket",
            side_effect=GuardianConnectionError("WebSocket connection failed"),
        ):
            channel = JsonRpcWebsocket(ENDPOINT, 60.0)
            with pytest.raises(GuardianConnectionError, match="connection failed"):
                await channel.open()

        assert not channel.is_open


class TestCall:
    """Tests for JsonRpcWebsocket.call()."""

    @pytest.mark.asyncio
    async def test_call_sends_jsonrpc_frame(self) -> None:
        """Test the request frame and the decoded result."""
        connection = FakeConnection(reply=echo_result)
        channel = await open_channel(connection)

        response = await channel.call("status", [{"auth": None, "params": None}])

        assert connection.sent == [
            {
                "jsonrpc": "2.0",
                "id": 1,
                "method": "status",
                "params": [{"auth": None, "params": None}],
            }
        ]
        assert response.result == {"echo": "status"}
        assert not response.is_error
        await channel.close()

    @pytest.mark.asyncio
    async def test_call_returns_error_response(self) -> None:
        """Test error responses are returned, not raised."""
        error = {"code": 401, "message": "Invalid authentication"}
        connection = FakeConnection(
            reply=lambda frame: {"jsonrpc": "2.0", "id": frame["id"], "error": error}
        )
        channel = await open_channel(connection)

        response = await channel.call("auth", [{"auth": "bad", "params": None}])

        assert response.is_error
        assert response.error == error
        await channel.close()

    @pytest.mark.asyncio
    async def test_responses_matched_by_id(self) -> None:
        """Test out-of-order responses reach the right caller."""
        connection = FakeConnection()
        channel = await open_channel(connection)

        first = asyncio.create_task(channel.call("version"))
        second = asyncio.create_task(channel.call("audit"))
        await asyncio.sleep(0)
        ids = {frame["method"]: frame["id"] for frame in connection.sent}

        connection.push({"jsonrpc": "2.0", "id": ids["audit"], "result": "audit-result"})
        connection.push({"jsonrpc": "2.0", "id": ids["version"], "result": "version-result"})

        assert (await first).result == "version-result"
        assert (await second).result == "audit-result"
        assert ids["version"] != ids["audit"]
        await channel.close()

    @pytest.mark.asyncio
    async def test_call_timeout(self) -> None:
        """Test a call with no response times out."""
        connection = FakeConnection()
        channel = await open_channel(connection, request_timeout=0.01)

        with pytest.raises(GuardianTimeout, match="'run_dkg' timed out"):
            await channel.call("run_dkg")

        await channel.close()

    @pytest.mark.asyncio
    async def test_call_not_connected(self) -> None:
        """Test calling before open raises."""
        channel = JsonRpcWebsocket(ENDPOINT, 60.0)

        with pytest.raises(GuardianConnectionError, match="not connected"):
            await channel.call("status")

    @pytest.mark.asyncio
    async def test_invalid_frames_are_ignored(self) -> None:
        """Test junk frames do not disturb pending calls."""
        connection = FakeConnection()
        channel = await open_channel(connection)

        call = asyncio.create_task(channel.call("status"))
        await asyncio.sleep(0)
        connection.push("not json")
        connection.push(b"\x00\x01")
        connection.push({"jsonrpc": "2.0", "method": "notification"})
        connection.push({"jsonrpc": "2.0", "id": 999, "result": "stray"})
        connection.push({"jsonrpc": "2.0", "id": 1, "result": "ok"})

        assert (await call).result == "ok"
        await channel.close()

    @pytest.mark.asyncio
    async def test_malformed_reply_fails_its_call(self) -> None:
        """Test a broken reply to a pending request fails it without waiting."""
        connection = FakeConnection(
            reply=lambda frame: {"jsonrpc": "2.0", "id": frame["id"], "error": None}
        )
        channel = await open_channel(connection, request_timeout=60.0)

        with pytest.raises(GuardianResponseError, match="neither result nor error"):
            await asyncio.wait_for(channel.call("status"), timeout=1.0)

        assert channel.is_open
        await channel.close()

    @pytest.mark.asyncio
    async def test_malformed_frame_without_id_is_ignored(self) -> None:
        """Test a broken frame naming no request leaves pending calls alone."""
        connection = FakeConnection()
        channel = await open_channel(connection)

        call = asyncio.create_task(channel.call("status"))
        await asyncio.sleep(0)
        connection.push({"jsonrpc": "2.0", "id": [1], "result": "odd"})
        connection.push({"jsonrpc": "2.0", "id": "1"})
        connection.push({"jsonrpc": "2.0", "id": 1, "result": "ok"})

        assert (await call).result == "ok"
        await channel.close()


class TestClose:
    """Tests for close handling and remote drops."""

    @pytest.mark.asyncio
    async def test_local_close_is_clean(self) -> None:
        """Test a local close reports a clean outcome and no error callback."""
        on_error = MagicMock()
        channel = await open_channel(FakeConnection(), on_error=on_error)

        outcome = await channel.close()

        assert outcome.was_clean
        assert outcome.code == 1000
        assert not channel.is_open
        on_error.assert_not_called()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        """Test closing twice returns the same outcome."""
        channel = await open_channel(FakeConnection())

        first = await channel.close()
        second = await channel.close()

        assert first is second

    @pytest.mark.asyncio
    async def test_close_fails_pending_calls(self) -> None:
        """Test calls waiting during a local close fail with a connection error."""
        channel = await open_channel(FakeConnection())

        call = asyncio.create_task(channel.call("run_dkg"))
        await asyncio.sleep(0)
        await channel.close()

        with pytest.raises(GuardianConnectionError):
            await call

    @pytest.mark.asyncio
    async def test_remote_drop_notifies_and_fails_calls(self) -> None:
        """Test an abrupt drop fails pending calls and reports the error once."""
        on_error = MagicMock()
        connection = FakeConnection()
        channel = await open_channel(connection, on_error=on_error)

        call = asyncio.create_task(channel.call("status"))
        await asyncio.sleep(0)
        connection.drop()

        with pytest.raises(GuardianConnectionError, match="connection lost"):
            await call

        on_error.assert_called_once()
        assert isinstance(on_error.call_args.args[0], GuardianConnectionError)

        outcome = await channel.close()
        assert not outcome.was_clean

    @pytest.mark.asyncio
    async def test_remote_close_notifies(self) -> None:
        """Test a server-initiated close is reported as a fatal error."""
        on_error = MagicMock()
        connection = FakeConnection()
        channel = await open_channel(connection, on_error=on_error)

        connection.end(1001)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        on_error.assert_called_once()
        assert "closed by server" in str(on_error.call_args.args[0])
        assert not (await channel.close()).was_clean
