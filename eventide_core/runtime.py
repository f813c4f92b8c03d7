"""Runtime that wires configuration, the dispatcher, and subscriber registration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from .config import ConfigStore
from .events import Event, EventDispatcher
from .subscribers import SubscriberRegistry

BOOTED_EVENT = "runtime.booted"


@dataclass(frozen=True)
class EventRuntimeStatus:
    enabled: bool
    listener_count: int
    subscribers: Sequence[str]


class EventRuntime:
    """Owns one dispatcher and boots subscribers into it when events are enabled.

    Core subscribers are keyed so that ``[events.listeners]`` can switch any
    of them off. The dispatcher is seeded from the config store once; later
    changes must go through ``set_config`` to reach it.
    """

    def __init__(
        self,
        *,
        config: ConfigStore | None = None,
        logger: logging.Logger | None = None,
        core_subscribers: Mapping[str, Any] | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger("eventide_core.runtime")
        self.config = config or ConfigStore().load()
        self.dispatcher = EventDispatcher(logger=self.logger, config=self.config.as_dict())
        self.subscribers = SubscriberRegistry(self.dispatcher, logger=self.logger)
        self._core_subscribers = dict(core_subscribers or {})
        self._booted = False

    @property
    def enabled(self) -> bool:
        return bool(self.config.get("enabled", True))

    def set_config(self, key: str, value: Any) -> None:
        self.config.set(key, value)
        self.dispatcher.set_config(key, value)

    def boot(self, subscribers: Iterable[Any] = ()) -> EventRuntimeStatus:
        if self._booted:
            return self.status()
        if self.enabled:
            self.subscribers.register_subscribers(self._enabled_core_subscribers())
            self.subscribers.register_subscribers(subscribers)
        else:
            self.logger.info("events disabled, skipping subscriber registration")
        self._booted = True

        status = self.status()
        self.dispatcher.dispatch(
            Event(
                BOOTED_EVENT,
                {"enabled": status.enabled, "subscribers": list(status.subscribers)},
            )
        )
        return status

    def status(self) -> EventRuntimeStatus:
        listener_count = sum(
            len(listeners)
            for buckets in self.dispatcher.get_listeners().values()
            for listeners in buckets.values()
        )
        return EventRuntimeStatus(
            enabled=self.enabled,
            listener_count=listener_count,
            subscribers=self.subscribers.registered(),
        )

    def _enabled_core_subscribers(self) -> list[Any]:
        enabled: list[Any] = []
        for key, subscriber in self._core_subscribers.items():
            if self.config.listener_enabled(key):
                enabled.append(subscriber)
            else:
                self.logger.info("core listener %s disabled by configuration", key)
        return enabled
