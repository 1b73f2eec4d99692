"""Polling for long-running Veo video jobs."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from ..errors import NoUriReturnedError, OperationCancelledError, PollTimeoutError, UpstreamError
from .base import VideoOperation

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 10.0
DEFAULT_MAX_WAIT_S = 900.0

RefreshFn = Callable[[VideoOperation], Awaitable[VideoOperation]]
PollCallback = Callable[[int, float], None]


class OperationPoller:
    """Drive a video operation to completion.

    Each poll sleeps ``interval_s`` and then asks ``refresh`` for a fresh
    snapshot; the previous snapshot is never mutated. ``max_wait_s=None``
    disables the deadline.
    """

    def __init__(
        self,
        refresh: RefreshFn,
        *,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
        max_wait_s: float | None = DEFAULT_MAX_WAIT_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        on_poll: PollCallback | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive.")
        self._refresh = refresh
        self.interval_s = interval_s
        self.max_wait_s = max_wait_s
        self._sleep = sleep
        self._clock = clock
        self._on_poll = on_poll

    async def wait(self, operation: VideoOperation, cancel_event: asyncio.Event | None = None) -> str:
        started = self._clock()
        current = operation
        attempt = 0
        while not current.done:
            _raise_if_cancelled(cancel_event, current)
            elapsed = self._clock() - started
            if self.max_wait_s is not None and elapsed >= self.max_wait_s:
                raise PollTimeoutError(
                    f"Video operation {current.name or '<unnamed>'} not done after {elapsed:.0f}s."
                )
            await self._sleep(self.interval_s)
            _raise_if_cancelled(cancel_event, current)
            current = await self._refresh(current)
            attempt += 1
            elapsed = self._clock() - started
            logger.debug("Poll %d for %s: done=%s (%.0fs)", attempt, current.name, current.done, elapsed)
            if self._on_poll is not None:
                self._on_poll(attempt, elapsed)
        return resolve_video_uri(current)


def resolve_video_uri(operation: VideoOperation) -> str:
    if operation.error:
        raise UpstreamError(operation.error, operation="video_operation")
    if not operation.video_uri:
        raise NoUriReturnedError("Video generation completed but no URI returned.")
    return operation.video_uri


def _raise_if_cancelled(cancel_event: asyncio.Event | None, operation: VideoOperation) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(f"Video operation {operation.name or '<unnamed>'} cancelled.")
