"""Runtime configuration.

Configuration is read once at startup and handed to the core as plain
values. Sources, highest priority first: command-line flags, environment
variables, an optional YAML file, built-in defaults.

Example YAML file::

    request_sound: Purr
    dismissed_sound: Pop
    interval: 1.0
    log_level: INFO
    sounds:
      openpgp:
        request: Submarine
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

import yaml

from .classifier import DeviceClass
from .errors import ConfigLoadError

DEFAULT_INTERVAL: Final = 1.0
DEFAULT_LOG_LEVEL: Final = "WARNING"
DEFAULT_STREAM_COMMAND: Final[tuple[str, ...]] = (
    "log",
    "stream",
    "--level",
    "debug",
    "--style",
    "ndjson",
)

LOG_LEVELS: Final = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_PREFIX: Final = "YKNOTIFY_"
ENV_CONFIG_PATH: Final = "YKNOTIFY_CONFIG"

# Flat override keys shared by the environment and the command line.
OVERRIDE_KEYS: Final = (
    "request_sound",
    "dismissed_sound",
    "fido2_request_sound",
    "fido2_dismissed_sound",
    "openpgp_request_sound",
    "openpgp_dismissed_sound",
    "interval",
    "log_level",
)

_CLASS_KEYS: Final[dict[str, DeviceClass]] = {
    "fido2": DeviceClass.FIDO2,
    "openpgp": DeviceClass.OPENPGP,
}


@dataclass(frozen=True)
class SoundConfig:
    """Sound names for one device class (None means "use the global default")."""

    request: str | None = None
    dismissed: str | None = None


@dataclass(frozen=True)
class Config:
    """Immutable runtime configuration.

    Attributes:
        request_sound: Global sound for "touch needed" notifications.
        dismissed_sound: Global sound for "touch confirmed" notifications.
        class_sounds: Per-class sound overrides.
        interval: Minimum seconds between dispatch passes; 0 dispatches
            every edge immediately.
        log_level: Logging level name.
        stream_command: Command producing the ndjson log stream.
        notify: Whether to show user notifications at all.
    """

    request_sound: str | None = None
    dismissed_sound: str | None = None
    class_sounds: dict[DeviceClass, SoundConfig] = field(default_factory=lambda: {})
    interval: float = DEFAULT_INTERVAL
    log_level: str = DEFAULT_LOG_LEVEL
    stream_command: tuple[str, ...] = DEFAULT_STREAM_COMMAND
    notify: bool = True

    def __post_init__(self) -> None:
        if self.interval < 0:
            raise ConfigLoadError(f"interval must not be negative: {self.interval}")
        if self.log_level not in LOG_LEVELS:
            raise ConfigLoadError(f"Unknown log level: {self.log_level}")
        if not self.stream_command:
            raise ConfigLoadError("stream_command must not be empty")

    @property
    def rate_limited(self) -> bool:
        """Whether dispatch is coalesced into periodic passes."""
        return self.interval > 0

    def sound_for(self, device_class: DeviceClass, needed: bool) -> str | None:
        """Resolve the sound for a notification.

        Lookup order: class-specific override, global default, none.
        """
        override = self.class_sounds.get(device_class)
        if override is not None:
            sound = override.request if needed else override.dismissed
            if sound:
                return sound
        return self.request_sound if needed else self.dismissed_sound

    def with_overrides(self, overrides: Mapping[str, Any]) -> Config:
        """Return a copy with flat override values applied.

        Keys are those in OVERRIDE_KEYS; None values are skipped.
        """
        changes: dict[str, Any] = {}
        class_sounds = dict(self.class_sounds)

        for key, value in overrides.items():
            if value is None:
                continue
            if key not in OVERRIDE_KEYS:
                raise ConfigLoadError(f"Unknown setting: {key}")

            prefix, _, rest = key.partition("_")
            if prefix in _CLASS_KEYS and rest.endswith("_sound"):
                device_class = _CLASS_KEYS[prefix]
                current = class_sounds.get(device_class, SoundConfig())
                direction = rest.removesuffix("_sound")
                class_sounds[device_class] = dataclasses.replace(
                    current, **{direction: str(value)}
                )
            elif key == "interval":
                changes["interval"] = _parse_interval(value)
            elif key == "log_level":
                changes["log_level"] = str(value).upper()
            else:
                changes[key] = str(value)

        changes["class_sounds"] = class_sounds
        return dataclasses.replace(self, **changes)


def _parse_interval(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as err:
        raise ConfigLoadError(f"Invalid interval: {value!r}") from err


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise ConfigLoadError(f"File not found: {path}")
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {path}: {err}") from err

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(f"Expected a mapping in {path}")
    return data


def _sound_name(value: Any, key: str) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise ConfigLoadError(f"'{key}' must be a sound name, got {value!r}")


def _parse_class_sounds(data: Any) -> dict[DeviceClass, SoundConfig]:
    if not isinstance(data, dict):
        raise ConfigLoadError("'sounds' must be a mapping")

    class_sounds: dict[DeviceClass, SoundConfig] = {}
    for name, entry in data.items():
        device_class = _CLASS_KEYS.get(str(name).lower())
        if device_class is None:
            raise ConfigLoadError(f"Unknown device class under 'sounds': {name}")
        entry = entry or {}
        if not isinstance(entry, dict):
            raise ConfigLoadError(f"'sounds.{name}' must be a mapping")
        class_sounds[device_class] = SoundConfig(
            request=_sound_name(entry.get("request"), f"sounds.{name}.request"),
            dismissed=_sound_name(
                entry.get("dismissed"), f"sounds.{name}.dismissed"
            ),
        )
    return class_sounds


def load_config_file(path: Path) -> Config:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Config built from the file on top of the defaults.

    Raises:
        ConfigLoadError: If the file is missing or malformed.
    """
    data = _load_yaml(path)

    stream_command = DEFAULT_STREAM_COMMAND
    if (command := data.get("stream_command")) is not None:
        if isinstance(command, str):
            command = command.split()
        if not isinstance(command, list):
            raise ConfigLoadError("'stream_command' must be a list or string")
        stream_command = tuple(str(part) for part in command)

    class_sounds: dict[DeviceClass, SoundConfig] = {}
    if (sounds := data.get("sounds")) is not None:
        class_sounds = _parse_class_sounds(sounds)

    base = Config(class_sounds=class_sounds, stream_command=stream_command)
    return base.with_overrides(
        {
            "request_sound": _sound_name(data.get("request_sound"), "request_sound"),
            "dismissed_sound": _sound_name(
                data.get("dismissed_sound"), "dismissed_sound"
            ),
            "interval": data.get("interval"),
            "log_level": data.get("log_level"),
        }
    )


def overrides_from_env(env: Mapping[str, str]) -> dict[str, str]:
    """Collect YKNOTIFY_* overrides from an environment mapping."""
    overrides: dict[str, str] = {}
    for key in OVERRIDE_KEYS:
        value = env.get(ENV_PREFIX + key.upper())
        if value:
            overrides[key] = value
    return overrides


def build_config(
    *,
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
    notify: bool = True,
) -> Config:
    """Build the effective configuration from all sources.

    Args:
        path: Optional YAML file. Falls back to YKNOTIFY_CONFIG.
        env: Environment mapping (usually os.environ).
        overrides: Command-line overrides keyed like OVERRIDE_KEYS.
        notify: Whether notifications should be shown.

    Returns:
        Effective Config.
    """
    env = env or {}
    if path is None and (env_path := env.get(ENV_CONFIG_PATH)):
        path = Path(env_path)

    config = load_config_file(path) if path is not None else Config()
    config = config.with_overrides(overrides_from_env(env))
    config = config.with_overrides(overrides or {})
    if not notify:
        config = dataclasses.replace(config, notify=False)
    return config
