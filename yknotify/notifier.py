"""User notification sinks."""

from __future__ import annotations

import asyncio
import logging
import shutil
from abc import ABC, abstractmethod
from typing import Final

from .classifier import DeviceClass
from .errors import NotificationError

_LOGGER = logging.getLogger(__name__)

NEEDED_SUMMARY: Final = "YubiKey Touch Needed"
CONFIRMED_SUMMARY: Final = "YubiKey Touch Confirmed"
CONFIRMED_BODY: Final = "YubiKey touch was detected."

_NEEDED_BODIES: Final[dict[DeviceClass, str]] = {
    DeviceClass.FIDO2: "FIDO2 authentication is required.",
    DeviceClass.OPENPGP: "OpenPGP authentication is required.",
}

OSASCRIPT: Final = "osascript"


def notification_text(device_class: DeviceClass, needed: bool) -> tuple[str, str]:
    """Return the fixed (summary, body) pair for a class and direction."""
    if needed:
        return NEEDED_SUMMARY, _NEEDED_BODIES[device_class]
    return CONFIRMED_SUMMARY, CONFIRMED_BODY


class NotificationSink(ABC):
    """Abstract interface for showing a user notification."""

    @abstractmethod
    async def show(self, summary: str, body: str, sound: str | None = None) -> None:
        """Show a notification.

        Raises:
            NotificationError: If the notification could not be shown.
        """


class NullNotifier(NotificationSink):
    """Sink that shows nothing."""

    async def show(self, summary: str, body: str, sound: str | None = None) -> None:
        """Discard the notification."""


def _applescript_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_applescript(summary: str, body: str, sound: str | None = None) -> str:
    """Build the ``display notification`` AppleScript statement."""
    script = (
        f"display notification {_applescript_string(body)}"
        f" with title {_applescript_string(summary)}"
    )
    if sound:
        script += f" sound name {_applescript_string(sound)}"
    return script


class OsascriptNotifier(NotificationSink):
    """Shows macOS Notification Center alerts through osascript.

    Sound names refer to files in /System/Library/Sounds, /Library/Sounds or
    ~/Library/Sounds without their extension, e.g. "Purr".
    """

    def __init__(self, executable: str = OSASCRIPT) -> None:
        self._executable = executable

    def check_available(self) -> None:
        """Verify the notification subsystem can be used.

        Raises:
            NotificationError: If osascript cannot be found.
        """
        if shutil.which(self._executable) is None:
            raise NotificationError(f"{self._executable} not found on PATH")

    async def show(self, summary: str, body: str, sound: str | None = None) -> None:
        """Run osascript and wait for it to exit."""
        script = build_applescript(summary, body, sound)
        try:
            process = await asyncio.create_subprocess_exec(
                self._executable,
                "-e",
                script,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as err:
            raise NotificationError(f"Failed to run {self._executable}: {err}") from err

        _, stderr = await process.communicate()
        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise NotificationError(
                f"{self._executable} exited with status {process.returncode}: {detail}"
            )
        _LOGGER.debug("Notification shown: %s", summary)
