"""Touch state tracking and debounced notification dispatch.

Each device class is either idle or awaiting a touch. A notification is
dispatched on the rising edge (touch needed) and on the falling edge (touch
confirmed), never once per matching log line.

Two dispatch strategies share the same state machine:
- Immediate (interval == 0): apply() dispatches an edge as soon as it is seen.
- Rate-limited (interval > 0): apply() only records the edge; tick() runs a
  dispatch pass at most once per interval, announcing every edge that fired
  since the previous pass, in arrival order.

Both strategies announce the same edges and converge on the same final
state; they differ only in latency. A sink failure is logged and never
rolls back the transition.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from .classifier import DeviceClass, TouchSignal
from .config import DEFAULT_INTERVAL
from .errors import NotificationError
from .events import EventEmitter, NullEventEmitter, TouchEvent
from .notifier import NotificationSink, notification_text

_LOGGER = logging.getLogger(__name__)

SoundResolver = Callable[[DeviceClass, bool], str | None]


def _all_idle() -> dict[DeviceClass, bool]:
    return {device_class: False for device_class in DeviceClass}


def _no_sound(device_class: DeviceClass, needed: bool) -> str | None:
    return None


@dataclass
class TouchState:
    """Shared touch state.

    Attributes:
        needed: Current belief of whether a touch is outstanding, per class.
        notified: State last announced to the user, per class.
        edges: (class, needed) transitions fired since the last pass, in
            arrival order.
        last_dispatch: Monotonic time of the last dispatch pass.
    """

    needed: dict[DeviceClass, bool] = field(default_factory=_all_idle)
    notified: dict[DeviceClass, bool] = field(default_factory=_all_idle)
    edges: list[tuple[DeviceClass, bool]] = field(default_factory=lambda: [])
    last_dispatch: float | None = None

    def set_needed(self, device_class: DeviceClass, needed: bool) -> bool:
        """Record a classifier signal.

        Returns:
            True if the signal fired an edge, False for a same-direction repeat
        """
        if self.needed[device_class] == needed:
            return False
        self.needed[device_class] = needed
        self.edges.append((device_class, needed))
        return True

    def pending_edges(self) -> list[tuple[DeviceClass, bool]]:
        """Return the edges not yet announced, oldest first."""
        return list(self.edges)


class TouchTracker:
    """Owns the TouchState and drives notification dispatch.

    Usage:
        tracker = TouchTracker(OsascriptNotifier(), StreamEventEmitter())
        await tracker.apply(TouchSignal(DeviceClass.FIDO2, needed=True))
        await tracker.tick()  # rate-limited strategy only
    """

    def __init__(
        self,
        sink: NotificationSink,
        emitter: EventEmitter | None = None,
        *,
        sound_for: SoundResolver | None = None,
        interval: float = DEFAULT_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize tracker.

        Args:
            sink: Notification sink
            emitter: Touch event emitter
            sound_for: Resolves the sound for a (class, needed) pair
            interval: Minimum seconds between dispatch passes; 0 dispatches
                immediately on every edge
            clock: Monotonic clock
        """
        if interval < 0:
            raise ValueError("interval must not be negative")

        self._sink = sink
        self._emitter = emitter or NullEventEmitter()
        self._sound_for = sound_for or _no_sound
        self._interval = interval
        self._clock = clock

        self._state = TouchState()
        self._lock = asyncio.Lock()

    @property
    def interval(self) -> float:
        """Minimum seconds between dispatch passes."""
        return self._interval

    @property
    def rate_limited(self) -> bool:
        """Whether edges wait for tick() before being dispatched."""
        return self._interval > 0

    @property
    def state(self) -> TouchState:
        """Copy of the current state."""
        return TouchState(
            needed=dict(self._state.needed),
            notified=dict(self._state.notified),
            edges=list(self._state.edges),
            last_dispatch=self._state.last_dispatch,
        )

    def is_needed(self, device_class: DeviceClass) -> bool:
        """Whether a touch is currently believed to be outstanding."""
        return self._state.needed[device_class]

    @property
    def has_pending(self) -> bool:
        """Whether any edge is waiting to be dispatched."""
        return bool(self._state.edges)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def apply(self, signal: TouchSignal) -> list[TouchEvent]:
        """Apply a classifier signal.

        Returns:
            Events dispatched as a direct result (always empty when
            rate-limited)
        """
        async with self._lock:
            if not self._state.set_needed(signal.device_class, signal.needed):
                _LOGGER.debug(
                    "%s: already %s",
                    signal.device_class.value,
                    "needed" if signal.needed else "idle",
                )
                return []

            _LOGGER.debug(
                "%s: touch %s",
                signal.device_class.value,
                "needed" if signal.needed else "satisfied",
            )

            if self.rate_limited:
                return []
            return await self._dispatch_pass(self._clock())

    async def tick(self) -> list[TouchEvent]:
        """Run a dispatch pass if edges are pending and the interval elapsed.

        Returns:
            Events dispatched by this pass
        """
        async with self._lock:
            if not self._state.edges:
                return []

            now = self._clock()
            last = self._state.last_dispatch
            if last is not None and now - last < self._interval:
                _LOGGER.debug("Dispatch deferred: %.3fs since last", now - last)
                return []

            return await self._dispatch_pass(now)

    # -------------------------------------------------------------------------
    # Internal: Dispatch
    # -------------------------------------------------------------------------

    async def _dispatch_pass(self, now: float) -> list[TouchEvent]:
        """Dispatch every pending edge in order. Caller must hold the lock."""
        edges = self._state.pending_edges()
        if not edges:
            return []
        self._state.edges.clear()

        events: list[TouchEvent] = []
        for device_class, needed in edges:
            self._state.notified[device_class] = needed
            events.append(await self._dispatch(device_class, needed))

        self._state.last_dispatch = now
        return events

    async def _dispatch(self, device_class: DeviceClass, needed: bool) -> TouchEvent:
        event = TouchEvent(type=device_class, needed=needed)
        try:
            self._emitter.emit(event)
        except OSError as err:
            _LOGGER.error("Failed to emit %s touch event: %s", device_class.value, err)

        summary, body = notification_text(device_class, needed)
        _LOGGER.info("%s: %s", device_class.value, summary)

        try:
            await self._sink.show(summary, body, self._sound_for(device_class, needed))
        except NotificationError as err:
            _LOGGER.error(
                "Failed to show %s notification: %s", device_class.value, err
            )
        return event
