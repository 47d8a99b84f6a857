"""Structured touch event records.

Every dispatched notification is accompanied by one TouchEvent, written to a
diagnostics channel independent of the notification sink.
"""

from __future__ import annotations

import json
import sys
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TextIO

from .classifier import DeviceClass


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class TouchEvent:
    """Outbound record of a dispatched notification.

    Attributes:
        type: Device class that triggered the notification.
        needed: Direction of the transition (not serialized).
        ts: Dispatch time (UTC).
    """

    type: DeviceClass
    needed: bool = True
    ts: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape ``{"ts": ..., "type": ...}``."""
        return {"ts": self.ts.isoformat(), "type": self.type.value}

    def to_json(self) -> str:
        """Serialize to a single JSON line."""
        return json.dumps(self.to_dict())


class EventEmitter(ABC):
    """Abstract interface for touch event emission."""

    @abstractmethod
    def emit(self, event: TouchEvent) -> None:
        """Emit a touch event.

        Must not block for long; it is called while dispatching.
        """


class NullEventEmitter(EventEmitter):
    """No-op emitter."""

    def emit(self, event: TouchEvent) -> None:
        """Discard the event."""


class StreamEventEmitter(EventEmitter):
    """Writes each event as one JSON line to a text stream (stdout by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def emit(self, event: TouchEvent) -> None:
        """Write and flush the event line."""
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(event.to_json() + "\n")
        stream.flush()


class BufferEventEmitter(EventEmitter):
    """Keeps the most recent events in memory, oldest dropped first."""

    def __init__(self, max_size: int = 1000) -> None:
        self._recent: deque[TouchEvent] = deque(maxlen=max_size)

    def emit(self, event: TouchEvent) -> None:
        self._recent.append(event)

    @property
    def events(self) -> list[TouchEvent]:
        return list(self._recent)

    def clear(self) -> None:
        self._recent.clear()
