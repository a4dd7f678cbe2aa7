"""JSON-RPC over WebSocket channel for the guardian API."""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK
from websockets.frames import CloseCode

from ..errors import (
    GuardianClientError,
    GuardianConnectionError,
    GuardianResponseError,
    GuardianTimeout,
)
from ..protocol import RpcResponse, build_request, parse_response
from .ws import connect_websocket

_LOGGER = logging.getLogger(__name__)

ErrorCallback = Callable[[GuardianClientError], None]


@dataclass(frozen=True, slots=True)
class CloseOutcome:
    """Result of closing a channel."""

    code: int | None
    reason: str
    was_clean: bool


class RpcTransport(Protocol):
    """Call-and-response channel used by the connection manager."""

    async def open(self) -> None: ...

    async def call(self, method: str, params: list[Any] | None = None) -> RpcResponse: ...

    async def close(self) -> CloseOutcome: ...


TransportFactory = Callable[[str, float, ErrorCallback], RpcTransport]


class JsonRpcWebsocket:
    """JSON-RPC 2.0 client over a single websockets connection.

    Requests are correlated with responses by id, so any number of calls may
    be outstanding at once.

    Usage:
        channel = JsonRpcWebsocket("ws://127.0.0.1:18174", request_timeout=60)
        await channel.open()
        response = await channel.call("status", [{"auth": None, "params": None}])
        await channel.close()
    """

    def __init__(
        self,
        url: str,
        request_timeout: float,
        on_error: ErrorCallback | None = None,
        *,
        ping_interval: int | None = 20,
        open_timeout: float = 15.0,
        close_timeout: float = 5.0,
    ) -> None:
        self.url = url
        self._request_timeout = request_timeout
        self._on_error = on_error
        self._ping_interval = ping_interval
        self._open_timeout = open_timeout
        self._close_timeout = close_timeout

        self._ws: ClientConnection | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._pending: dict[int, asyncio.Future[RpcResponse]] = {}
        self._ids = itertools.count(1)
        self._closing = False
        self._closed = False
        self._remote_dropped = False
        self._close_outcome: CloseOutcome | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closed

    async def open(self) -> None:
        """Connect to the endpoint and start reading responses."""
        if self._ws is not None:
            raise GuardianClientError("Channel has already been opened")
        self._ws = await connect_websocket(
            self.url,
            ping_interval=self._ping_interval,
            open_timeout=self._open_timeout,
            close_timeout=self._close_timeout,
        )
        _LOGGER.debug("Channel open to %s", self.url)
        self._reader_task = asyncio.create_task(self._read_loop())

    async def call(self, method: str, params: list[Any] | None = None) -> RpcResponse:
        """Send one request and wait for its response.

        Raises:
            GuardianConnectionError: If the channel is not open or closes before
                the response arrives.
            GuardianTimeout: If no response arrives within the request timeout.
            GuardianResponseError: If the reply to this request is malformed.
        """
        if self._ws is None or self._closed or self._closing:
            raise GuardianConnectionError("WebSocket is not connected")

        request_id = next(self._ids)
        future: asyncio.Future[RpcResponse] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            try:
                await self._ws.send(json.dumps(build_request(request_id, method, params)))
            except ConnectionClosed as err:
                raise GuardianConnectionError("WebSocket closed while sending") from err

            try:
                return await asyncio.wait_for(future, timeout=self._request_timeout)
            except TimeoutError as err:
                raise GuardianTimeout(f"Request '{method}' timed out") from err
        finally:
            self._pending.pop(request_id, None)

    async def close(self) -> CloseOutcome:
        """Close the channel. Safe to call more than once."""
        if self._close_outcome is not None:
            return self._close_outcome
        if self._ws is None:
            self._closed = True
            self._close_outcome = CloseOutcome(code=None, reason="", was_clean=True)
            return self._close_outcome

        self._closing = True
        await self._ws.close()
        if self._reader_task is not None:
            await self._reader_task

        code = self._ws.close_code
        was_clean = (
            not self._remote_dropped
            and code is not None
            and code != CloseCode.ABNORMAL_CLOSURE
        )
        self._close_outcome = CloseOutcome(
            code=code,
            reason=self._ws.close_reason or "",
            was_clean=was_clean,
        )
        _LOGGER.debug("Channel to %s closed: %s", self.url, self._close_outcome)
        return self._close_outcome

    async def _read_loop(self) -> None:
        if self._ws is None:
            return

        error: GuardianConnectionError | None = None
        try:
            async for raw in self._ws:
                self._handle_frame(raw)
        except ConnectionClosedOK:
            pass
        except ConnectionClosed as err:
            error = GuardianConnectionError("WebSocket connection lost")
            error.__cause__ = err
        except Exception as err:
            _LOGGER.exception("Unexpected error reading from %s", self.url)
            error = GuardianConnectionError("WebSocket read failed")
            error.__cause__ = err

        self._closed = True
        if not self._closing:
            # Peer went away without us asking.
            self._remote_dropped = True
            if error is None:
                error = GuardianConnectionError("WebSocket closed by server")

        self._fail_pending(error or GuardianConnectionError("WebSocket closed"))

        if self._remote_dropped and error is not None and self._on_error is not None:
            self._on_error(error)

    def _handle_frame(self, raw: str | bytes) -> None:
        if isinstance(raw, bytes):
            _LOGGER.debug("Ignoring binary frame from %s", self.url)
            return

        try:
            message = json.loads(raw)
        except ValueError as err:
            _LOGGER.warning("Undecodable frame from %s: %s", self.url, err)
            return

        try:
            response = parse_response(message)
        except ValueError as err:
            _LOGGER.warning("Invalid JSON-RPC frame from %s: %s", self.url, err)
            self._fail_request(message, GuardianResponseError(f"Malformed response: {err}"))
            return

        if not isinstance(response.id, int):
            _LOGGER.debug("Ignoring response with id %r", response.id)
            return

        future = self._pending.get(response.id)
        if future is None or future.done():
            _LOGGER.debug("Ignoring response for unknown request %d", response.id)
            return
        future.set_result(response)

    def _fail_request(self, message: Any, error: GuardianResponseError) -> None:
        """Fail the call a malformed frame answers, if it names one."""
        if not isinstance(message, dict):
            return
        request_id = message.get("id")
        if isinstance(request_id, bool) or not isinstance(request_id, int):
            return
        future = self._pending.get(request_id)
        if future is not None and not future.done():
            future.set_exception(error)

    def _fail_pending(self, error: GuardianConnectionError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()
