"""Helper utilities for loading and storing the events configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import tomllib
from platformdirs import user_config_dir

from .errors import ConfigError

DEFAULT_APP_NAME = "eventide"
CONFIG_FILE_NAME = "config.toml"
CONFIG_SECTION = "events"
LISTENERS_KEY = "listeners"

DEFAULTS: dict[str, Any] = {
    "enabled": True,
    "global_priority": False,
    "log_dispatch": True,
}
_ENV_KEY_MAP: dict[str, str] = {
    "enabled": "EVENTIDE_EVENTS_ENABLED",
    "global_priority": "EVENTIDE_GLOBAL_PRIORITY",
}
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def default_config_path() -> Path:
    """Return the platform-specific default config path."""

    base_dir = Path(user_config_dir(DEFAULT_APP_NAME, appauthor=False))
    return base_dir / CONFIG_FILE_NAME


def _parse_flag(label: str, raw: str) -> bool:
    normalized = raw.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigError(f"{label} must be a boolean flag, got {raw!r}")


@dataclass
class ConfigStore:
    """Key/value settings read from the ``[events]`` table of a TOML file."""

    path: Path = field(default_factory=default_config_path)
    env: Mapping[str, str] | None = None
    _store: dict[str, Any] = field(default_factory=lambda: dict(DEFAULTS), init=False)

    def load(self) -> "ConfigStore":
        """Merge the file section and environment overrides over the defaults."""

        document: dict[str, Any] = {}
        if self.path.is_file():
            try:
                with self.path.open("rb") as handle:
                    document = tomllib.load(handle)
            except (OSError, tomllib.TOMLDecodeError) as exc:
                raise ConfigError(f"unable to read config at {self.path}") from exc

        section = document.get(CONFIG_SECTION, {})
        if not isinstance(section, dict):
            raise ConfigError(f"malformed [{CONFIG_SECTION}] section in {self.path}")
        for key, value in section.items():
            if key in DEFAULTS and not isinstance(value, bool):
                raise ConfigError(f"'{key}' must be a boolean")
            if key == LISTENERS_KEY:
                value = self._validate_listeners(value)
            self._store[key] = value

        env = os.environ if self.env is None else self.env
        for key, env_key in _ENV_KEY_MAP.items():
            raw_value = env.get(env_key)
            if raw_value is not None:
                self._store[key] = _parse_flag(env_key, raw_value)
        return self

    def get(self, key: str, default: Any | None = None) -> Any | None:
        return self._store.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._store[key] = value

    def as_dict(self) -> dict[str, Any]:
        return dict(self._store)

    def listener_enabled(self, key: str) -> bool:
        """Return False only when ``[events.listeners]`` switches `key` off."""

        listeners = self._store.get(LISTENERS_KEY) or {}
        return bool(listeners.get(key, True))

    def _validate_listeners(self, value: Any) -> dict[str, bool]:
        if not isinstance(value, dict):
            raise ConfigError(f"malformed [{CONFIG_SECTION}.{LISTENERS_KEY}] section in {self.path}")
        for key, flag in value.items():
            if not isinstance(flag, bool):
                raise ConfigError(f"'{LISTENERS_KEY}.{key}' must be a boolean")
        return dict(value)
