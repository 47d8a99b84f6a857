"""Driver loop: stream lines through decode, classify and the tracker.

Lines are consumed strictly in arrival order; each line is fully applied
before the next is read. When the tracker is rate-limited a second task
calls tick() on a fixed cadence. Both tasks go through the tracker's lock.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Protocol

from .classifier import classify
from .errors import RecordDecodeError, StreamSourceError
from .record import decode_line
from .tracker import TouchTracker

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_LOGGER = logging.getLogger(__name__)


class LineSource(Protocol):
    """Async source of text lines backed by an owned process."""

    async def start(self) -> None: ...

    def terminate(self) -> None: ...

    async def close(self) -> int | None: ...

    def __aiter__(self) -> AsyncIterator[str]: ...


class Watcher:
    """Runs the consumer loop and the periodic re-check task."""

    def __init__(self, source: LineSource, tracker: TouchTracker) -> None:
        self._source = source
        self._tracker = tracker
        self._stop_requested = False
        self._line_count = 0
        self._dropped_count = 0

    @property
    def line_count(self) -> int:
        """Number of lines read so far."""
        return self._line_count

    @property
    def dropped_count(self) -> int:
        """Number of lines that could not be decoded."""
        return self._dropped_count

    @property
    def stop_requested(self) -> bool:
        """Whether stop() has been called."""
        return self._stop_requested

    def stop(self) -> None:
        """Request a graceful shutdown.

        The source is terminated and the consumer exits after draining the
        remaining lines. Safe to call from a signal handler.
        """
        if self._stop_requested:
            return
        _LOGGER.info("Shutdown requested")
        self._stop_requested = True
        self._source.terminate()

    async def run(self) -> None:
        """Run until the stream ends or stop() is called.

        Raises:
            StreamSourceError: If the source cannot start, or ends without
                a stop request.
        """
        await self._source.start()

        tick_task: asyncio.Task[None] | None = None
        if self._tracker.rate_limited:
            tick_task = asyncio.create_task(self._tick_loop())

        try:
            await self._consume()
        finally:
            if tick_task is not None:
                tick_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await tick_task
            returncode = await self._source.close()

        _LOGGER.info(
            "Stream closed after %d lines (%d undecodable)",
            self._line_count,
            self._dropped_count,
        )
        if self._stop_requested:
            return

        _LOGGER.warning("Log stream ended unexpectedly (status %s)", returncode)
        raise StreamSourceError("Log stream ended unexpectedly", returncode)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    async def _consume(self) -> None:
        async for line in self._source:
            self._line_count += 1
            await self._handle_line(line)

    async def _handle_line(self, line: str) -> None:
        if not line.strip():
            return

        try:
            record = decode_line(line)
        except RecordDecodeError as err:
            self._dropped_count += 1
            _LOGGER.debug("Dropped line: %s", err)
            return

        signal = classify(record)
        if signal is None:
            return

        await self._tracker.apply(signal)

    async def _tick_loop(self) -> None:
        """Re-check pending edges on a fixed cadence."""
        interval = self._tracker.interval
        while True:
            await asyncio.sleep(interval)
            try:
                await self._tracker.tick()
            except Exception as err:
                _LOGGER.exception("Dispatch pass failed: %s", err)
