"""Connection management for the guardian API channel.

A client instance owns at most one live channel. Concurrent callers that
need a channel while one is being opened all wait on the same attempt.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from enum import Enum

from .config import ENDPOINT_ENV_VAR, GuardianApiSettings
from .errors import GuardianClientError, GuardianConfigError, GuardianConnectionError
from .transport.rpc_client import JsonRpcWebsocket, RpcTransport, TransportFactory

_LOGGER = logging.getLogger(__name__)

CONNECT_FAILED_MESSAGE = (
    "Failed to connect to API, confirm your server is online and try again."
)


class ConnectionState(str, Enum):
    """Connection manager states."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionManager:
    """Single-flight owner of the guardian channel.

    Usage:
        manager = ConnectionManager(GuardianApiSettings(endpoint="ws://127.0.0.1:18174"))
        channel = await manager.connect()
        response = await channel.call("status", [{"auth": None, "params": None}])
        await manager.shutdown()
    """

    def __init__(
        self,
        settings: GuardianApiSettings,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._settings = settings
        self._transport_factory: TransportFactory = transport_factory or functools.partial(
            JsonRpcWebsocket,
            ping_interval=settings.ping_interval,
            open_timeout=settings.open_timeout,
            close_timeout=settings.close_timeout,
        )

        self._handle: RpcTransport | None = None
        self._pending: asyncio.Task[RpcTransport] | None = None
        self._background_tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> ConnectionState:
        if self._handle is not None:
            return ConnectionState.CONNECTED
        if self._pending is not None:
            return ConnectionState.CONNECTING
        return ConnectionState.IDLE

    @property
    def is_connected(self) -> bool:
        return self._handle is not None

    async def connect(self) -> RpcTransport:
        """Return the live channel, opening one if needed.

        Raises:
            GuardianConfigError: If no endpoint is configured, or it is not a
                ws:// or wss:// URL.
            GuardianConnectionError: If the channel could not be opened.
        """
        if self._handle is not None:
            return self._handle

        if self._pending is None or self._pending.done():
            endpoint = self._settings.endpoint
            if not endpoint:
                raise GuardianConfigError(f"{ENDPOINT_ENV_VAR} not set")

            pending = asyncio.create_task(self._open(endpoint))
            pending.add_done_callback(self._settle)
            self._pending = pending

        # Shield so one waiter giving up does not abort the attempt for the rest.
        return await asyncio.shield(self._pending)

    async def shutdown(self) -> bool:
        """Drop the pending attempt and close the live channel.

        Returns:
            True if nothing was open or the channel closed cleanly from our side.
        """
        self._pending = None

        handle, self._handle = self._handle, None
        if handle is None:
            return True

        outcome = await handle.close()
        _LOGGER.info(
            "Guardian connection closed (code=%s, clean=%s)",
            outcome.code,
            outcome.was_clean,
        )
        return outcome.was_clean

    async def _open(self, endpoint: str) -> RpcTransport:
        handle: RpcTransport | None = None

        def on_error(error: GuardianClientError) -> None:
            self._handle_transport_error(handle, error)

        handle = self._transport_factory(endpoint, self._settings.request_timeout, on_error)

        _LOGGER.info("Connecting to guardian API at %s", endpoint)
        try:
            await handle.open()
        except GuardianConfigError as err:
            _LOGGER.error("Cannot connect to %s: %s", endpoint, err)
            raise
        except (GuardianClientError, OSError) as err:
            _LOGGER.error("Failed to open websocket to %s: %s", endpoint, err)
            raise GuardianConnectionError(CONNECT_FAILED_MESSAGE) from err

        if asyncio.current_task() is not self._pending:
            _LOGGER.debug("Connection attempt superseded by shutdown, closing it")
            await handle.close()
            raise GuardianConnectionError("Connection attempt was abandoned by shutdown")

        self._handle = handle
        _LOGGER.info("Connected to guardian API at %s", endpoint)
        return handle

    def _settle(self, task: asyncio.Task[RpcTransport]) -> None:
        if self._pending is task:
            self._pending = None
        if not task.cancelled():
            # Mark the outcome as retrieved; waiters already got it.
            task.exception()

    def _handle_transport_error(
        self, handle: RpcTransport | None, error: GuardianClientError
    ) -> None:
        if handle is None or handle is not self._handle:
            _LOGGER.debug("Ignoring error from a stale channel: %s", error)
            return

        _LOGGER.error("Guardian connection failed: %s", error)
        self._pending = None
        self._handle = None

        task = asyncio.create_task(self._close_quietly(handle))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _close_quietly(self, handle: RpcTransport) -> None:
        try:
            await handle.close()
        except GuardianClientError as err:
            _LOGGER.warning("Error closing failed channel: %s", err)
