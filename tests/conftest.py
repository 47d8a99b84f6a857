"""Pytest configuration and fixtures for yknotify tests."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Iterable
from typing import Any

import pytest

from yknotify.errors import NotificationError
from yknotify.events import BufferEventEmitter
from yknotify.notifier import NotificationSink

FIDO2_SENDER = "/System/Library/Extensions/IOHIDFamily.kext/Contents/MacOS/IOHIDFamily"
OPENPGP_PROCESS = "/System/Library/CryptoTokenKit/usbsmartcardreaderd.slotd/Contents/MacOS/usbsmartcardreaderd"
OPENPGP_SUBSYSTEM = "com.apple.CryptoTokenKit"


def make_line(**fields: Any) -> str:
    """Encode a log entry the way `log stream --style ndjson` does."""
    return json.dumps(fields)


def fido2_line(message: str) -> str:
    """Create a line matching the FIDO2 rule."""
    return make_line(
        processImagePath="/kernel",
        senderImagePath=FIDO2_SENDER,
        eventMessage=message,
        messageType="Default",
    )


def openpgp_line(message: str) -> str:
    """Create a line matching the OpenPGP rule."""
    return make_line(
        processImagePath=OPENPGP_PROCESS,
        subsystem=OPENPGP_SUBSYSTEM,
        eventMessage=message,
    )


class RecordingSink(NotificationSink):
    """Sink that records shown notifications and can be told to fail."""

    def __init__(self, *, fail: bool = False) -> None:
        self.shown: list[tuple[str, str, str | None]] = []
        self.fail = fail

    async def show(self, summary: str, body: str, sound: str | None = None) -> None:
        self.shown.append((summary, body, sound))
        if self.fail:
            raise NotificationError("notification center unavailable")

    @property
    def summaries(self) -> list[str]:
        return [summary for summary, _, _ in self.shown]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLineSource:
    """In-memory line source standing in for the log stream process."""

    def __init__(self, lines: Iterable[str], returncode: int | None = 0) -> None:
        self.lines = list(lines)
        self.returncode = returncode
        self.started = False
        self.terminated = False
        self.closed = False

    async def start(self) -> None:
        self.started = True

    def terminate(self) -> None:
        self.terminated = True

    async def close(self) -> int | None:
        self.closed = True
        return self.returncode

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iter_lines()

    async def _iter_lines(self) -> AsyncIterator[str]:
        for line in self.lines:
            if self.terminated:
                return
            yield line


@pytest.fixture
def sink() -> RecordingSink:
    """Create a recording notification sink."""
    return RecordingSink()


@pytest.fixture
def emitter() -> BufferEventEmitter:
    """Create a buffering event emitter."""
    return BufferEventEmitter()


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake monotonic clock."""
    return FakeClock()
