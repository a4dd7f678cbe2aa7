"""Confirmation that consensus started after ``start_consensus``.

Starting consensus restarts the guardian process, so the reply to the call
itself may never arrive. Instead of trusting it, the client reconnects and
polls ``status`` until the server reports that consensus is running.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .errors import ConsensusStartError, GuardianClientError
from .types import StatusResponse

_LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


async def await_with_grace(
    call: Awaitable[Any],
    grace: float,
    *,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """Wait for ``call`` to succeed or for ``grace`` seconds, whichever is first.

    A failing call does not end the wait early; only the timer or a success
    does. The call is left running if the timer wins and its outcome is
    discarded.
    """
    call_task = asyncio.ensure_future(call)
    timer_task = asyncio.ensure_future(sleep(grace))
    pending: set[asyncio.Future[Any]] = {call_task, timer_task}

    try:
        while True:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            if timer_task in done:
                return
            if call_task in done:
                err = call_task.exception()
                if err is None:
                    return
                _LOGGER.debug("start_consensus failed, waiting out grace period: %s", err)
    finally:
        if not timer_task.done():
            timer_task.cancel()
        if call_task.done():
            _discard_outcome(call_task)
        else:
            call_task.add_done_callback(_discard_outcome)


def _discard_outcome(task: asyncio.Future[Any]) -> None:
    if task.cancelled():
        return
    err = task.exception()
    if err is not None:
        _LOGGER.debug("Ignoring late start_consensus outcome: %s", err)


async def confirm_consensus_running(
    connect: Callable[[], Awaitable[Any]],
    shutdown: Callable[[], Awaitable[bool]],
    status: Callable[[], Awaitable[StatusResponse]],
    *,
    max_tries: int,
    retry_delay: float,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """Poll the restarted guardian until it reports ``ConsensusRunning``.

    Each attempt opens and immediately drops a fresh connection to check the
    server is reachable again, then asks for the status over a new one.

    Raises:
        ConsensusStartError: If no attempt observed consensus running.
    """
    for attempt in range(1, max_tries + 1):
        try:
            await connect()
            await shutdown()
            current = await status()
            if current.is_consensus_running:
                _LOGGER.info("Consensus confirmed running after %d attempt(s)", attempt)
                return
            _LOGGER.warning(
                "Failed to confirm consensus running (attempt %d/%d): "
                "expected status ConsensusRunning, got %s",
                attempt,
                max_tries,
                getattr(current.server, "value", current.server),
            )
        except GuardianClientError as err:
            _LOGGER.warning(
                "Failed to confirm consensus running (attempt %d/%d): %s",
                attempt,
                max_tries,
                err,
            )

        if attempt < max_tries:
            await sleep(retry_delay)

    raise ConsensusStartError("Failed to start consensus, see logs for more info.")
