"""Decoding of `log stream --style ndjson` lines into log records."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .errors import RecordDecodeError


@dataclass(frozen=True, slots=True)
class LogRecord:
    """One decoded unified-log entry.

    Attributes:
        process_image_path: Path of the process that emitted the entry.
        sender_image_path: Path of the sending image (kext, library), if any.
        subsystem: Logging subsystem tag, if any.
        event_message: Free-text message payload.
    """

    process_image_path: str
    event_message: str
    sender_image_path: str | None = None
    subsystem: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LogRecord:
        """Build a record from a decoded JSON object.

        Unknown keys are ignored.

        Raises:
            RecordDecodeError: If a required field is missing or any field
                has a non-string value.
        """
        process_image_path = data.get("processImagePath")
        event_message = data.get("eventMessage")
        if not isinstance(process_image_path, str):
            raise RecordDecodeError("Missing processImagePath")
        if not isinstance(event_message, str):
            raise RecordDecodeError("Missing eventMessage")

        return cls(
            process_image_path=process_image_path,
            event_message=event_message,
            sender_image_path=_optional_str(data.get("senderImagePath")),
            subsystem=_optional_str(data.get("subsystem")),
        )


def _optional_str(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise RecordDecodeError(f"Expected string, got {type(value).__name__}")


def decode_line(line: str) -> LogRecord:
    """Decode one line of line-delimited JSON into a LogRecord.

    Raises:
        RecordDecodeError: If the line is not a JSON object with the
            required fields.
    """
    try:
        data = json.loads(line)
    except ValueError as err:
        raise RecordDecodeError(f"Invalid JSON: {err}") from err

    if not isinstance(data, dict):
        raise RecordDecodeError("Line is not a JSON object")

    return LogRecord.from_dict(data)
