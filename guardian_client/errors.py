"""Client error types for guardian API interactions."""

from __future__ import annotations

from typing import Any

UNAUTHORIZED_ERROR_CODE = 401


class GuardianClientError(Exception):
    """Base error for guardian API client failures."""


class GuardianConfigError(GuardianClientError):
    """The client is missing required configuration."""


class GuardianConnectionError(GuardianClientError):
    """Network connection to the guardian failed or was lost."""


class GuardianTimeout(GuardianConnectionError):
    """Timeout while communicating with the guardian."""


class GuardianHandshakeError(GuardianConnectionError):
    """WebSocket handshake failed."""


class GuardianRpcError(GuardianClientError):
    """Error payload returned by the guardian for an RPC call.

    The server's error object is kept untouched on ``error`` so callers can
    tell authentication failures apart from other application errors.
    """

    def __init__(self, error: Any) -> None:
        self.error = error
        super().__init__(self.message or "Guardian returned an error")

    @property
    def code(self) -> int | None:
        if isinstance(self.error, dict):
            code = self.error.get("code")
            if isinstance(code, int) and not isinstance(code, bool):
                return code
        return None

    @property
    def message(self) -> str | None:
        if isinstance(self.error, dict):
            message = self.error.get("message")
            return str(message) if message is not None else None
        if isinstance(self.error, str):
            return self.error
        return None

    @property
    def is_unauthorized(self) -> bool:
        return self.code == UNAUTHORIZED_ERROR_CODE


class GuardianResponseError(GuardianClientError):
    """Response from the guardian could not be decoded."""


class ConsensusStartError(GuardianClientError):
    """Consensus could not be confirmed as running after start_consensus."""
