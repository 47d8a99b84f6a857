"""Supervised `log stream` subprocess exposed as an async line iterator."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from .config import DEFAULT_STREAM_COMMAND
from .errors import StreamSourceError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_LOGGER = logging.getLogger(__name__)

# Unified-log entries can carry large payloads.
STREAM_LINE_LIMIT = 1024 * 1024


class LogStreamProcess:
    """Wrapper around the external log streaming process.

    Usage:
        source = LogStreamProcess()
        await source.start()
        async for line in source:
            ...
        await source.close()
    """

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_STREAM_COMMAND,
        *,
        limit: int = STREAM_LINE_LIMIT,
    ) -> None:
        self._command = tuple(command)
        self._limit = limit
        self._process: asyncio.subprocess.Process | None = None

    @property
    def returncode(self) -> int | None:
        """Exit status of the process, or None while running."""
        if self._process is None:
            return None
        return self._process.returncode

    async def start(self) -> None:
        """Spawn the stream process.

        Raises:
            StreamSourceError: If the process cannot be started.
        """
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._command,
                stdout=asyncio.subprocess.PIPE,
                limit=self._limit,
            )
        except OSError as err:
            raise StreamSourceError(
                f"Failed to start {' '.join(self._command)}: {err}"
            ) from err

        _LOGGER.info(
            "Started %s (pid %d)", " ".join(self._command), self._process.pid
        )

    def terminate(self) -> None:
        """Ask the process to exit; iteration ends once its output drains."""
        if self._process is None or self._process.returncode is not None:
            return
        try:
            self._process.terminate()
        except ProcessLookupError:
            pass

    async def close(self) -> int | None:
        """Terminate the process if still running and wait for it.

        Returns:
            Exit status of the process
        """
        if self._process is None:
            return None

        self.terminate()
        returncode = await self._process.wait()
        _LOGGER.debug("Stream process exited with status %s", returncode)
        return returncode

    def __aiter__(self) -> AsyncIterator[str]:
        if self._process is None or self._process.stdout is None:
            raise StreamSourceError("Stream process is not running")
        return self._iter_lines(self._process.stdout)

    async def _iter_lines(self, stdout: asyncio.StreamReader) -> AsyncIterator[str]:
        while True:
            try:
                raw = await stdout.readline()
            except ValueError as err:
                # Oversized line; the reader has already discarded it.
                _LOGGER.debug("Dropped oversized line: %s", err)
                continue

            if not raw:
                return
            yield raw.decode("utf-8", errors="replace").rstrip("\r\n")
