"""Protocol helpers for guardian JSON-RPC frames.

Every guardian method takes a single positional parameter: an envelope
carrying the operator credential and the method-specific payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

JSONRPC_VERSION = "2.0"


@dataclass(frozen=True, slots=True)
class RpcResponse:
    """Decoded JSON-RPC response. Exactly one of result/error is meaningful."""

    id: int | str | None
    result: Any = None
    error: Any = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


def build_params(auth: str | None, params: Any = None) -> list[dict[str, Any]]:
    """Build the positional parameter list for a guardian method.

    Args:
        auth: Operator credential, or None when no credential is stored.
        params: Method-specific payload, or None for methods without input.

    Returns:
        Single-element list holding the ``{auth, params}`` envelope.
    """
    return [{"auth": auth, "params": params}]


def build_request(
    request_id: int,
    method: str,
    params: list[Any] | None,
) -> dict[str, Any]:
    """Build a JSON-RPC 2.0 request frame."""
    frame: dict[str, Any] = {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "method": method,
    }
    if params is not None:
        frame["params"] = params
    return frame


def parse_response(message: Any) -> RpcResponse:
    """Extract a response from a decoded JSON-RPC frame.

    Args:
        message: Decoded JSON object received from the server.

    Returns:
        RpcResponse with the request id and either result or error.

    Raises:
        ValueError: If the frame is not a JSON-RPC response.
    """
    if not isinstance(message, dict):
        raise ValueError("JSON-RPC response must be an object")
    if "id" not in message:
        raise ValueError("JSON-RPC response is missing an id")

    request_id = message["id"]
    if isinstance(request_id, bool) or not isinstance(request_id, (int, str, type(None))):
        raise ValueError(f"Unsupported JSON-RPC id type: {type(request_id).__name__}")

    if message.get("error") is not None:
        return RpcResponse(id=request_id, error=message["error"])
    if "result" not in message:
        raise ValueError("JSON-RPC response has neither result nor error")
    return RpcResponse(id=request_id, result=message["result"])
