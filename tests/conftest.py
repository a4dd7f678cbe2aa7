"""Pytest configuration and fixtures for guardian_client tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from guardian_client import CredentialStore, GuardianApi, GuardianApiSettings, InMemoryStorage
from guardian_client.errors import GuardianClientError, GuardianConnectionError
from guardian_client.protocol import RpcResponse
from guardian_client.transport.rpc_client import CloseOutcome

ENDPOINT = "ws://127.0.0.1:18174"

Handler = Callable[[str, Any], Any]


class FakeServer:
    """Scriptable guardian standing in for the JSON-RPC server.

    Handlers map a method name to a callable receiving the ``{auth, params}``
    envelope. A handler returns the result, or raises ``FakeRpcError`` to
    answer with an error object.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Handler] = {}
        self.calls: list[tuple[str, list[Any] | None]] = []
        self.open_count = 0
        self.reachable = True
        self.open_delay = 0.0
        self.open_gate: asyncio.Event | None = None

    def on(self, method: str, handler: Handler) -> None:
        self.handlers[method] = handler

    def returns(self, method: str, result: Any) -> None:
        self.handlers[method] = lambda _method, _envelope: result

    def answer(self, method: str, params: list[Any] | None) -> Any:
        self.calls.append((method, params))
        envelope = params[0] if params else None
        handler = self.handlers.get(method)
        if handler is None:
            return RpcResponse(id=len(self.calls), error={"code": -32601, "message": "Method not found"})
        try:
            return RpcResponse(id=len(self.calls), result=handler(method, envelope))
        except FakeRpcError as err:
            return RpcResponse(id=len(self.calls), error=err.error)

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]


class FakeRpcError(Exception):
    """Raised by a handler to answer with an error object."""

    def __init__(self, error: Any) -> None:
        super().__init__(error)
        self.error = error


class FakeTransport:
    """In-memory channel bound to a FakeServer."""

    def __init__(
        self,
        server: FakeServer,
        url: str,
        request_timeout: float,
        on_error: Callable[[GuardianClientError], None],
    ) -> None:
        self.server = server
        self.url = url
        self.request_timeout = request_timeout
        self.on_error = on_error
        self.opened = False
        self.closed = False
        self.close_calls = 0
        self.clean_close = True

    async def open(self) -> None:
        self.server.open_count += 1
        if self.server.open_gate is not None:
            await self.server.open_gate.wait()
        if self.server.open_delay:
            await asyncio.sleep(self.server.open_delay)
        if not self.server.reachable:
            raise GuardianConnectionError("WebSocket connection failed")
        self.opened = True

    async def call(self, method: str, params: list[Any] | None = None) -> RpcResponse:
        if not self.opened or self.closed:
            raise GuardianConnectionError("WebSocket is not connected")
        await asyncio.sleep(0)
        if not self.server.reachable:
            raise GuardianConnectionError("WebSocket connection lost")
        return self.server.answer(method, params)

    async def close(self) -> CloseOutcome:
        self.close_calls += 1
        self.closed = True
        return CloseOutcome(code=1000, reason="", was_clean=self.clean_close)

    def drop(self, error: GuardianClientError | None = None) -> None:
        """Simulate the server going away."""
        self.closed = True
        self.on_error(error or GuardianConnectionError("WebSocket closed by server"))


class TransportRecorder:
    """Transport factory that remembers every channel it created."""

    def __init__(self, server: FakeServer) -> None:
        self.server = server
        self.created: list[FakeTransport] = []

    def __call__(
        self,
        url: str,
        request_timeout: float,
        on_error: Callable[[GuardianClientError], None],
    ) -> FakeTransport:
        transport = FakeTransport(self.server, url, request_timeout, on_error)
        self.created.append(transport)
        return transport


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def transports(server: FakeServer) -> TransportRecorder:
    return TransportRecorder(server)


@pytest.fixture
def settings() -> GuardianApiSettings:
    """Settings with the confirmation delays shrunk for tests."""
    return GuardianApiSettings(
        endpoint=ENDPOINT,
        start_consensus_grace=0.05,
        confirm_retry_delay=0.01,
    )


@pytest.fixture
def credentials() -> CredentialStore:
    return CredentialStore(InMemoryStorage())


@pytest.fixture
def api(
    settings: GuardianApiSettings,
    credentials: CredentialStore,
    transports: TransportRecorder,
) -> GuardianApi:
    return GuardianApi(settings, credentials=credentials, transport_factory=transports)
