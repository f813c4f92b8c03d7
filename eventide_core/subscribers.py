"""Wire listeners declared by subscriber objects into an EventDispatcher."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Iterable

from .errors import SubscriberError
from .events import EventDispatcher, ListenerHandle

__all__ = ["SubscriberRegistry", "parse_listener_spec"]


def _subscriber_name(subscriber: Any) -> str:
    cls = subscriber if isinstance(subscriber, type) else type(subscriber)
    return f"{cls.__module__}.{cls.__qualname__}"


def _checked(method: Any, priority: Any) -> tuple[str, int]:
    if not isinstance(method, str) or not method.strip():
        raise SubscriberError("listener method must be a non-empty string")
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise SubscriberError(f"priority for {method!r} must be an integer")
    return method.strip(), priority


def _unpack(item: list[Any] | tuple[Any, ...]) -> tuple[str, int]:
    if not 1 <= len(item) <= 2:
        raise SubscriberError(f"expected (method, priority), got {item!r}")
    return _checked(item[0], item[1] if len(item) == 2 else 0)


def parse_listener_spec(spec: Any) -> list[tuple[str, int]]:
    """Normalize a subscriber declaration into ``[(method, priority), ...]``.

    Accepted forms::

        "on_saved"
        ("on_saved", 10)
        {"method": "on_saved", "priority": 10}
        [("on_saved", 10), ("audit", -5)]
    """

    if isinstance(spec, str):
        return [_checked(spec, 0)]
    if isinstance(spec, Mapping):
        return [_checked(spec.get("method"), spec.get("priority", 0))]
    if isinstance(spec, (list, tuple)):
        if spec and all(isinstance(item, (list, tuple)) for item in spec):
            return [_unpack(item) for item in spec]
        return [_unpack(spec)]
    raise SubscriberError(f"unsupported listener specification: {spec!r}")


class SubscriberRegistry:
    """Register the ``get_event_subscribers()`` declarations of extension objects.

    Each subscriber class is registered at most once; failures are logged and
    never interrupt the remaining subscribers.
    """

    def __init__(
        self,
        dispatcher: EventDispatcher,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self._logger = logger or logging.getLogger(__name__)
        self._handles: dict[str, list[ListenerHandle]] = {}

    def register_subscribers(self, subscribers: Iterable[Any]) -> int:
        """Register every subscriber and return the number of listeners added."""

        subscribers = list(subscribers)
        total = 0
        for subscriber in subscribers:
            try:
                total += self.register_subscriber(subscriber)
            except Exception:
                self._logger.exception(
                    "failed to register event subscribers for %s",
                    _subscriber_name(subscriber),
                )
        self._logger.info(
            "registered %d event listeners from %d subscribers",
            total,
            len(subscribers),
        )
        return total

    def register_subscriber(self, subscriber: Any) -> int:
        name = _subscriber_name(subscriber)
        if name in self._handles:
            return 0
        declare = getattr(subscriber, "get_event_subscribers", None)
        if not callable(declare):
            return 0
        declarations = declare()
        if not declarations:
            return 0

        handles: list[ListenerHandle] = []
        self._handles[name] = handles
        for event, spec in declarations.items():
            handles.extend(self._register_spec(subscriber, name, event, spec))
        self._logger.debug("registered %d event listeners for %s", len(handles), name)
        return len(handles)

    def unregister(self, subscriber: Any) -> int:
        """Remove every listener registered for `subscriber`'s class."""

        name = subscriber if isinstance(subscriber, str) else _subscriber_name(subscriber)
        handles = self._handles.pop(name, [])
        for handle in handles:
            self.dispatcher.remove_listener(handle.event, handle)
        return len(handles)

    def registered(self) -> tuple[str, ...]:
        return tuple(self._handles)

    def is_registered(self, subscriber: Any) -> bool:
        name = subscriber if isinstance(subscriber, str) else _subscriber_name(subscriber)
        return name in self._handles

    def clear_registrations(self) -> None:
        """Forget which subscribers were registered; their listeners stay in place."""
        self._handles.clear()

    def _register_spec(
        self, subscriber: Any, name: str, event: Any, spec: Any
    ) -> list[ListenerHandle]:
        try:
            if not isinstance(event, str) or not event:
                raise SubscriberError(f"event name must be a non-empty string, got {event!r}")
            entries = parse_listener_spec(spec)
        except SubscriberError as exc:
            self._logger.warning(
                "invalid event subscriber configuration in %s for %s: %s",
                name,
                event,
                exc,
            )
            return []

        handles: list[ListenerHandle] = []
        for method, priority in entries:
            try:
                listener = getattr(subscriber, method, None)
                if not callable(listener):
                    self._logger.warning(
                        "method %s does not exist in subscriber %s", method, name
                    )
                    continue
                handles.append(self.dispatcher.listen(event, listener, priority))
            except Exception:
                self._logger.exception(
                    "failed to register event subscriber in %s for %s", name, event
                )
                continue
            self._logger.debug(
                "registered %s.%s for event %s (priority: %d)",
                name,
                method,
                event,
                priority,
            )
        return handles
