"""Settings for the guardian API client."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

ENDPOINT_ENV_VAR = "FM_CONFIG_API"

# Distributed key generation can take a very long time on slow federations.
DEFAULT_REQUEST_TIMEOUT = 5 * 60 * 60.0
DEFAULT_OPEN_TIMEOUT = 15.0
DEFAULT_PING_INTERVAL = 20
DEFAULT_CLOSE_TIMEOUT = 5.0

# start_consensus restarts the server, so its own response is unreliable.
DEFAULT_START_CONSENSUS_GRACE = 5.0
DEFAULT_CONFIRM_MAX_TRIES = 10
DEFAULT_CONFIRM_RETRY_DELAY = 1.0


@dataclass(frozen=True, slots=True)
class GuardianApiSettings:
    """Connection and retry settings.

    Attributes:
        endpoint: WebSocket URL of the guardian API, or None if unset
        request_timeout: Per-call response timeout (seconds)
        open_timeout: WebSocket open timeout (seconds)
        ping_interval: Keepalive ping interval (seconds), None disables pings
        close_timeout: Wait for the closing handshake (seconds)
        start_consensus_grace: How long to wait for start_consensus to answer
        confirm_max_tries: Status polls before giving up on consensus
        confirm_retry_delay: Delay between status polls (seconds)
    """

    endpoint: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    open_timeout: float = DEFAULT_OPEN_TIMEOUT
    ping_interval: int | None = DEFAULT_PING_INTERVAL
    close_timeout: float = DEFAULT_CLOSE_TIMEOUT
    start_consensus_grace: float = DEFAULT_START_CONSENSUS_GRACE
    confirm_max_tries: int = DEFAULT_CONFIRM_MAX_TRIES
    confirm_retry_delay: float = DEFAULT_CONFIRM_RETRY_DELAY

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.open_timeout <= 0:
            raise ValueError("open_timeout must be positive")
        if self.close_timeout <= 0:
            raise ValueError("close_timeout must be positive")
        if self.start_consensus_grace < 0:
            raise ValueError("start_consensus_grace must not be negative")
        if self.confirm_max_tries < 1:
            raise ValueError("confirm_max_tries must be at least 1")
        if self.confirm_retry_delay < 0:
            raise ValueError("confirm_retry_delay must not be negative")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: object,
    ) -> GuardianApiSettings:
        """Build settings with the endpoint taken from ``FM_CONFIG_API``.

        An unset or blank variable leaves the endpoint empty; the error is
        raised on the first connection attempt, not here.
        """
        env = os.environ if environ is None else environ
        endpoint = env.get(ENDPOINT_ENV_VAR, "").strip() or None
        settings = cls(endpoint=endpoint)
        if overrides:
            settings = replace(settings, **overrides)  # type: ignore[arg-type]
        return settings
