"""Desktop notifications for hardware security key touch requests.

Watches the macOS unified log for FIDO2 and OpenPGP touch requests and
shows a notification when a touch is needed and when it was confirmed.
"""

__version__ = "0.1.0"

from .classifier import DeviceClass, TouchSignal, classify
from .config import Config, SoundConfig, build_config, load_config_file
from .errors import (
    ConfigLoadError,
    NotificationError,
    RecordDecodeError,
    StreamSourceError,
    YkNotifyError,
)
from .events import (
    BufferEventEmitter,
    EventEmitter,
    NullEventEmitter,
    StreamEventEmitter,
    TouchEvent,
)
from .notifier import NotificationSink, NullNotifier, OsascriptNotifier
from .record import LogRecord, decode_line
from .stream import LogStreamProcess
from .tracker import TouchState, TouchTracker
from .watcher import Watcher

__all__ = [
    "BufferEventEmitter",
    "Config",
    "ConfigLoadError",
    "DeviceClass",
    "EventEmitter",
    "LogRecord",
    "LogStreamProcess",
    "NotificationError",
    "NotificationSink",
    "NullEventEmitter",
    "NullNotifier",
    "OsascriptNotifier",
    "RecordDecodeError",
    "SoundConfig",
    "StreamEventEmitter",
    "StreamSourceError",
    "TouchEvent",
    "TouchSignal",
    "TouchState",
    "TouchTracker",
    "Watcher",
    "YkNotifyError",
    "__version__",
    "build_config",
    "classify",
    "decode_line",
    "load_config_file",
]
