"""Command-line entry point.

Usage:
    yknotify                                  # watch with default settings
    yknotify --request-sound Purr --dismissed-sound Pop
    yknotify --openpgp-request-sound Submarine
    yknotify --interval 0                     # dispatch every edge immediately
    yknotify --config ~/.config/yknotify.yaml -v

Touch events are written to standard output as JSON lines; logs go to
standard error.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from collections.abc import Sequence
from pathlib import Path

from . import __version__
from .config import LOG_LEVELS, Config, build_config
from .errors import ConfigLoadError, NotificationError, YkNotifyError
from .events import StreamEventEmitter
from .notifier import NotificationSink, NullNotifier, OsascriptNotifier
from .stream import LogStreamProcess
from .tracker import TouchTracker
from .watcher import Watcher

_LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_SOUND_HELP = (
    "Available sounds can be found in /System/Library/Sounds, /Library/Sounds "
    "or ~/Library/Sounds; use the file name without extension"
)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="yknotify",
        description="Notify when a YubiKey is waiting for a touch.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML configuration file (env: YKNOTIFY_CONFIG)",
    )
    parser.add_argument(
        "--request-sound",
        help=f"Sound for new touch requests, e.g. Purr. {_SOUND_HELP} "
        "(env: YKNOTIFY_REQUEST_SOUND)",
    )
    parser.add_argument(
        "--dismissed-sound",
        help=f"Sound when a touch request is dismissed, e.g. Pop. {_SOUND_HELP} "
        "(env: YKNOTIFY_DISMISSED_SOUND)",
    )
    for prefix, label in (("fido2", "FIDO2"), ("openpgp", "OpenPGP")):
        parser.add_argument(
            f"--{prefix}-request-sound",
            help=f"{label} override for --request-sound "
            f"(env: YKNOTIFY_{prefix.upper()}_REQUEST_SOUND)",
        )
        parser.add_argument(
            f"--{prefix}-dismissed-sound",
            help=f"{label} override for --dismissed-sound "
            f"(env: YKNOTIFY_{prefix.upper()}_DISMISSED_SOUND)",
        )
    parser.add_argument(
        "--interval",
        type=float,
        help="Minimum seconds between notification passes; 0 disables "
        "rate limiting (default: 1.0, env: YKNOTIFY_INTERVAL)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log verbosity (default: WARNING, env: YKNOTIFY_LOG_LEVEL)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Shorthand for --log-level DEBUG",
    )
    parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Only emit touch events, do not show notifications",
    )
    return parser


def setup_logging(level: str) -> None:
    """Send log records to standard error."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


def create_sink(config: Config) -> NotificationSink:
    """Create the notification sink for a configuration.

    Raises:
        NotificationError: If notifications are enabled but unavailable.
    """
    if not config.notify:
        return NullNotifier()
    notifier = OsascriptNotifier()
    notifier.check_available()
    return notifier


async def run(config: Config, sink: NotificationSink) -> None:
    """Watch the log stream until it ends or a shutdown signal arrives."""
    tracker = TouchTracker(
        sink,
        StreamEventEmitter(),
        sound_for=config.sound_for,
        interval=config.interval,
    )
    watcher = Watcher(LogStreamProcess(config.stream_command), tracker)

    loop = asyncio.get_running_loop()
    signals = (signal.SIGINT, signal.SIGTERM)
    for sig in signals:
        loop.add_signal_handler(sig, watcher.stop)

    if config.rate_limited:
        dispatch = f"one pass every {config.interval:.2f}s"
    else:
        dispatch = "immediate"
    _LOGGER.info(
        "Watching for touch requests (dispatch %s, notifications %s)",
        dispatch,
        "on" if config.notify else "off",
    )
    try:
        await watcher.run()
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line tool and return its exit status."""
    args = build_parser().parse_args(argv)

    overrides = {
        "request_sound": args.request_sound,
        "dismissed_sound": args.dismissed_sound,
        "fido2_request_sound": args.fido2_request_sound,
        "fido2_dismissed_sound": args.fido2_dismissed_sound,
        "openpgp_request_sound": args.openpgp_request_sound,
        "openpgp_dismissed_sound": args.openpgp_dismissed_sound,
        "interval": args.interval,
        "log_level": "DEBUG" if args.verbose else args.log_level,
    }

    try:
        config = build_config(
            path=args.config,
            env=os.environ,
            overrides=overrides,
            notify=not args.no_notify,
        )
    except ConfigLoadError as err:
        setup_logging("ERROR")
        _LOGGER.error("Invalid configuration: %s", err)
        return 1

    setup_logging(config.log_level)

    try:
        sink = create_sink(config)
    except NotificationError as err:
        _LOGGER.error("Notifications unavailable: %s", err)
        return 1

    try:
        asyncio.run(run(config, sink))
    except YkNotifyError as err:
        _LOGGER.error("%s", err)
        return 1
    return 0
