"""Tests for the log stream subprocess wrapper."""

from __future__ import annotations

import sys

import pytest

from yknotify.errors import StreamSourceError
from yknotify.stream import LogStreamProcess


def _python(code: str) -> tuple[str, ...]:
    return (sys.executable, "-c", code)


class TestLogStreamProcess:
    """Tests for LogStreamProcess."""

    @pytest.mark.asyncio
    async def test_yields_lines_in_order(self) -> None:
        source = LogStreamProcess(_python("print('first'); print('second')"))
        await source.start()

        lines = [line async for line in source]
        returncode = await source.close()

        assert lines == ["first", "second"]
        assert returncode == 0
        assert source.returncode == 0

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_replaced(self) -> None:
        code = "import sys; sys.stdout.buffer.write(b'caf\\xe9\\n')"
        source = LogStreamProcess(_python(code))
        await source.start()

        lines = [line async for line in source]
        await source.close()

        assert lines == ["caf�"]

    @pytest.mark.asyncio
    async def test_oversized_line_is_dropped(self) -> None:
        code = "print('x' * 500); print('ok')"
        source = LogStreamProcess(_python(code), limit=64)
        await source.start()

        lines = [line async for line in source]
        await source.close()

        assert lines[-1] == "ok"
        assert "x" * 500 not in lines

    @pytest.mark.asyncio
    async def test_start_failure(self) -> None:
        source = LogStreamProcess(("/nonexistent/yknotify-log-stream",))

        with pytest.raises(StreamSourceError, match="Failed to start"):
            await source.start()

    @pytest.mark.asyncio
    async def test_close_terminates_running_process(self) -> None:
        source = LogStreamProcess(_python("import time; time.sleep(30)"))
        await source.start()

        returncode = await source.close()

        assert returncode is not None
        assert returncode != 0

    @pytest.mark.asyncio
    async def test_terminate_ends_iteration(self) -> None:
        code = "import time\nprint('ready', flush=True)\ntime.sleep(30)"
        source = LogStreamProcess(_python(code))
        await source.start()

        lines = []
        async for line in source:
            lines.append(line)
            source.terminate()
        await source.close()

        assert lines == ["ready"]

    def test_iterate_before_start(self) -> None:
        with pytest.raises(StreamSourceError):
            aiter(LogStreamProcess())

    @pytest.mark.asyncio
    async def test_close_before_start(self) -> None:
        assert await LogStreamProcess().close() is None
