"""Core runtime pieces for the eventide event dispatcher."""

from .config import ConfigStore, default_config_path
from .errors import ConfigError, EventideError, SubscriberError
from .events import (
    Event,
    EventDispatcher,
    ListenerHandle,
    ListenerOutcome,
    matches_wildcard,
)
from .runtime import EventRuntime, EventRuntimeStatus
from .subscribers import SubscriberRegistry

__all__ = [
    "ConfigStore",
    "default_config_path",
    "ConfigError",
    "EventideError",
    "SubscriberError",
    "Event",
    "EventDispatcher",
    "ListenerHandle",
    "ListenerOutcome",
    "matches_wildcard",
    "EventRuntime",
    "EventRuntimeStatus",
    "SubscriberRegistry",
]
