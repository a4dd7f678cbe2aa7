"""Transport layer for the guardian API client.

This package contains all IO and wire handling.

Components:
- ws: WebSocket connection setup
- rpc_client: JSON-RPC request/response correlation over the WebSocket
"""

from .rpc_client import CloseOutcome, JsonRpcWebsocket, RpcTransport, TransportFactory
from .ws import connect_websocket

__all__ = [
    "CloseOutcome",
    "JsonRpcWebsocket",
    "RpcTransport",
    "TransportFactory",
    "connect_websocket",
]
