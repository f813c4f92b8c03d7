"""Error types raised by the eventide core."""


class EventideError(Exception):
    """Base type for eventide failures."""


class ConfigError(EventideError):
    """Raised when the events configuration cannot be loaded or validated."""


class SubscriberError(EventideError):
    """Raised when a subscriber declares an unusable listener specification."""
