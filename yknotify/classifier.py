"""Classification of unified-log records into touch signals.

Two independent rules map a LogRecord to an optional TouchSignal:

- FIDO2 (edge-triggered): the IOHIDFamily kext logs a startQueue/stopQueue
  pair on the HID user client when a FIDO2 request begins and ends.
- OpenPGP (level-triggered): usbsmartcardreaderd logs a "Time extension
  received" heartbeat while the card waits for a touch and never logs an
  explicit stop, so every matching record restates the current level.

Classification is pure. Turning levels into notification edges is the job
of the tracker.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .record import LogRecord

_LOGGER = logging.getLogger(__name__)

FIDO2_PROCESS_IMAGE_PATH = "/kernel"
FIDO2_SENDER_SUFFIX = "IOHIDFamily"
FIDO2_MESSAGE_MARKER = "IOHIDLibUserClient:0x"
FIDO2_START_SUFFIX = "startQueue"
FIDO2_STOP_SUFFIX = "stopQueue"

OPENPGP_PROCESS_SUFFIX = "usbsmartcardreaderd"
OPENPGP_SUBSYSTEM_SUFFIX = "CryptoTokenKit"
OPENPGP_NEEDED_MESSAGE = "Time extension received"


class DeviceClass(Enum):
    """Hardware key paths that can request a touch."""

    FIDO2 = "FIDO2"
    OPENPGP = "OpenPGP"


@dataclass(frozen=True, slots=True)
class TouchSignal:
    """Evidence about whether a device class currently needs a touch.

    Attributes:
        device_class: Device class the record speaks about.
        needed: True for "touch needed", False for "touch satisfied".
    """

    device_class: DeviceClass
    needed: bool


def classify_fido2(record: LogRecord) -> TouchSignal | None:
    """Apply the FIDO2 rule to a record."""
    if record.process_image_path != FIDO2_PROCESS_IMAGE_PATH:
        return None
    if record.sender_image_path is None or not record.sender_image_path.endswith(
        FIDO2_SENDER_SUFFIX
    ):
        return None
    if FIDO2_MESSAGE_MARKER not in record.event_message:
        return None

    _LOGGER.debug("FIDO2 kernel message: %s", record.event_message)

    if record.event_message.endswith(FIDO2_START_SUFFIX):
        return TouchSignal(DeviceClass.FIDO2, needed=True)
    if record.event_message.endswith(FIDO2_STOP_SUFFIX):
        return TouchSignal(DeviceClass.FIDO2, needed=False)
    return None


def classify_openpgp(record: LogRecord) -> TouchSignal | None:
    """Apply the OpenPGP rule to a record."""
    if not record.process_image_path.endswith(OPENPGP_PROCESS_SUFFIX):
        return None
    if record.subsystem is None or not record.subsystem.endswith(
        OPENPGP_SUBSYSTEM_SUFFIX
    ):
        return None

    return TouchSignal(
        DeviceClass.OPENPGP,
        needed=record.event_message == OPENPGP_NEEDED_MESSAGE,
    )


def classify(record: LogRecord) -> TouchSignal | None:
    """Classify a record, returning None when neither rule applies."""
    signal = classify_fido2(record)
    if signal is not None:
        return signal
    return classify_openpgp(record)
