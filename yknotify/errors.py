"""Error types for yknotify."""

from __future__ import annotations


class YkNotifyError(Exception):
    """Base error for yknotify failures."""


class RecordDecodeError(YkNotifyError):
    """A log stream line could not be decoded into a record."""


class NotificationError(YkNotifyError):
    """A notification could not be shown."""


class ConfigLoadError(YkNotifyError):
    """Configuration file is missing or malformed."""


class StreamSourceError(YkNotifyError):
    """The log stream source failed to start or ended while running."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode
