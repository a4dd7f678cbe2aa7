"""Opening the guardian API WebSocket."""

from __future__ import annotations

from urllib.parse import urlsplit

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidStatus,
    InvalidURI,
    WebSocketException,
)

from ..errors import (
    GuardianConfigError,
    GuardianConnectionError,
    GuardianHandshakeError,
    GuardianTimeout,
)

WEBSOCKET_SCHEMES = frozenset({"ws", "wss"})


def validate_endpoint(url: str) -> str:
    """Return ``url`` unchanged if it names a ws:// or wss:// host.

    Raises:
        GuardianConfigError: If the scheme is not a WebSocket one or the host
            is missing.
    """
    parts = urlsplit(url)
    if parts.scheme.lower() not in WEBSOCKET_SCHEMES or not parts.hostname:
        raise GuardianConfigError(
            f"Guardian endpoint must be a ws:// or wss:// URL, got {url!r}"
        )
    return url


async def connect_websocket(
    url: str,
    *,
    ping_interval: int | None = 20,
    open_timeout: float = 15.0,
    close_timeout: float = 5.0,
) -> ClientConnection:
    """Open a WebSocket to the guardian API.

    Guardian replies (consensus configs, audits) can be large, so the
    incoming message size is not capped.

    Args:
        url: ws:// or wss:// endpoint of the guardian
        ping_interval: Keepalive ping interval, None disables pings
        open_timeout: Seconds allowed for the TCP connect and the upgrade
        close_timeout: Seconds to wait for the closing handshake
    """
    validate_endpoint(url)
    try:
        return await websockets.connect(
            url,
            ping_interval=ping_interval,
            open_timeout=open_timeout,
            close_timeout=close_timeout,
            max_size=None,
        )
    except TimeoutError as err:
        raise GuardianTimeout(f"Timed out after {open_timeout:g}s opening {url}") from err
    except InvalidURI as err:
        raise GuardianConfigError(f"Invalid guardian endpoint {url!r}") from err
    except InvalidStatus as err:
        raise GuardianHandshakeError(
            f"Guardian at {url} refused the upgrade (HTTP {err.response.status_code})"
        ) from err
    except InvalidHandshake as err:
        raise GuardianHandshakeError(f"WebSocket handshake with {url} failed") from err
    except (OSError, WebSocketException) as err:
        raise GuardianConnectionError(f"Could not reach guardian at {url}") from err
