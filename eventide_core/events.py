"""Priority-ordered event dispatcher with wildcard subscriptions."""

from __future__ import annotations

import itertools
import logging
import re
import threading
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Iterable, Mapping

__all__ = [
    "WILDCARD",
    "Event",
    "EventDispatcher",
    "Listener",
    "ListenerHandle",
    "ListenerOutcome",
    "matches_wildcard",
    "resolve_event_name",
]

WILDCARD = "*"

Listener = Callable[..., Any]


@dataclass(frozen=True)
class Event:
    """Lightweight event descriptor."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)

    def get_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class ListenerHandle:
    """Token for one registration; ``remove_listener`` accepts it in place of the callable."""

    event: str
    priority: int
    id: int


@dataclass(frozen=True)
class ListenerOutcome:
    """Result of invoking a single listener during a dispatch."""

    handle: ListenerHandle
    value: Any = None
    error: Exception | None = None
    pattern: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class _Registration:
    handle: ListenerHandle
    listener: Listener
    # wildcard key the registration was stored under, None for exact names
    pattern: str | None


_Buckets = dict[int, list[_Registration]]


@lru_cache(maxsize=256)
def _wildcard_regex(pattern: str) -> re.Pattern[str]:
    return re.compile(re.escape(pattern).replace(re.escape(WILDCARD), ".*"))


def matches_wildcard(event_name: str, pattern: str) -> bool:
    """Return True when `event_name` matches `pattern` in full, `*` matching any run."""

    return _wildcard_regex(pattern).fullmatch(event_name) is not None


def resolve_event_name(event: Any) -> str:
    """Strings are used as-is; objects report ``get_name()`` or fall back to their type."""

    if isinstance(event, str):
        return event
    get_name = getattr(event, "get_name", None)
    if callable(get_name):
        return str(get_name())
    cls = type(event)
    return f"{cls.__module__}.{cls.__qualname__}"


def _is_truthy(value: Any) -> bool:
    # values with an ambiguous truth value (arrays, frames) are kept
    try:
        return bool(value)
    except Exception:
        return True


def _sorted_buckets(buckets: _Buckets) -> _Buckets:
    return dict(sorted(buckets.items(), key=lambda item: -item[0]))


class EventDispatcher:
    """Synchronous dispatcher with priorities, wildcards, and per-listener isolation.

    Exact event names and wildcard patterns are kept in two registries, each
    mapping a name to ``{priority: [registration, ...]}`` with priorities in
    descending order. By default a dispatch runs the exact listeners first and
    then every matching wildcard pattern in the order the patterns were first
    registered. Setting the ``global_priority`` config key merges both passes
    into one priority-sorted list.

    The registry is guarded by a re-entrant lock. Dispatch captures the
    matching registrations under the lock and invokes them after releasing
    it, so listeners may register or remove listeners themselves; such
    changes apply from the next dispatch on.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> None:
        self._logger = logger
        self._config: dict[str, Any] = dict(config or {})
        self._listeners: dict[str, _Buckets] = {}
        self._wildcards: dict[str, _Buckets] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    # ---------- Registration ----------

    def listen(self, event: str, listener: Listener, priority: int = 0) -> ListenerHandle:
        """Register `listener` for an event name or `*` pattern; higher priorities run first."""

        with self._lock:
            handle = ListenerHandle(event=event, priority=priority, id=next(self._ids))
            pattern = event if WILDCARD in event else None
            table = self._table_for(event)
            buckets = table.setdefault(event, {})
            buckets.setdefault(priority, []).append(
                _Registration(handle=handle, listener=listener, pattern=pattern)
            )
            table[event] = _sorted_buckets(buckets)
        return handle

    def listen_once(self, event: str, listener: Listener, priority: int = 0) -> ListenerHandle:
        """Register `listener` so that it runs for the first matching dispatch only."""

        guard = threading.Lock()
        fired = False
        handle: ListenerHandle | None = None

        def once(*args: Any) -> Any:
            nonlocal fired
            with guard:
                if fired:
                    return None
                fired = True
            self.remove_listener(event, handle)
            return listener(*args)

        # held across listen() so no dispatch can run the wrapper before `handle` is bound
        with self._lock:
            handle = self.listen(event, once, priority)
        return handle

    def remove_listener(self, event: str, listener: Listener | ListenerHandle) -> None:
        """Remove the registration behind a handle, or every registration equal to a callable."""

        if isinstance(listener, ListenerHandle):
            def matches(registration: _Registration) -> bool:
                return registration.handle == listener
        else:
            def matches(registration: _Registration) -> bool:
                return registration.listener == listener

        with self._lock:
            table = self._table_for(event)
            buckets = table.get(event)
            if not buckets:
                return
            remaining: _Buckets = {}
            for priority, registrations in buckets.items():
                kept = [item for item in registrations if not matches(item)]
                if kept:
                    remaining[priority] = kept
            if remaining:
                table[event] = remaining
            else:
                del table[event]

    def remove_all_listeners(self, event: str | None = None) -> None:
        """Clear everything, or one name plus every wildcard pattern matching it."""

        with self._lock:
            if event is None:
                self._listeners.clear()
                self._wildcards.clear()
                return
            self._listeners.pop(event, None)
            for pattern in [key for key in self._wildcards if matches_wildcard(event, key)]:
                del self._wildcards[pattern]

    # ---------- Dispatch ----------

    def dispatch(self, event: Any, payload: Iterable[Any] = ()) -> list[Any]:
        """Invoke matching listeners and return their truthy results in execution order."""

        return [
            outcome.value
            for outcome in self.dispatch_outcomes(event, payload)
            if outcome.ok and _is_truthy(outcome.value)
        ]

    def dispatch_outcomes(self, event: Any, payload: Iterable[Any] = ()) -> list[ListenerOutcome]:
        """Invoke matching listeners and return one outcome per listener, failures included."""

        name = resolve_event_name(event)
        if isinstance(event, str):
            payload = list(payload)
            args: tuple[Any, ...] = tuple(payload)
        else:
            payload = []
            args = (event,)

        if self._config.get("log_dispatch", True):
            self._log(
                logging.DEBUG,
                "Dispatching event: %s",
                name,
                extra={"event": name, "payload": payload},
            )

        outcomes: list[ListenerOutcome] = []
        for registration in self._matching(name):
            try:
                value = registration.listener(*args)
            except Exception as exc:
                self._log_failure(name, registration, exc)
                outcomes.append(
                    ListenerOutcome(
                        handle=registration.handle,
                        error=exc,
                        pattern=registration.pattern,
                    )
                )
            else:
                outcomes.append(
                    ListenerOutcome(
                        handle=registration.handle,
                        value=value,
                        pattern=registration.pattern,
                    )
                )
        return outcomes

    # ---------- Introspection ----------

    def get_listeners(self, event: str | None = None) -> dict[Any, Any]:
        """Return ``{priority: [listener, ...]}`` for `event`, or the whole registry.

        The whole registry maps every exact name and wildcard pattern to its
        own priority buckets.
        """

        with self._lock:
            if event is None:
                return {
                    key: {
                        priority: [item.listener for item in registrations]
                        for priority, registrations in buckets.items()
                    }
                    for table in (self._listeners, self._wildcards)
                    for key, buckets in table.items()
                }
            merged: dict[int, list[Listener]] = {}
            for registration in self._collect(event):
                merged.setdefault(registration.handle.priority, []).append(registration.listener)
            return dict(sorted(merged.items(), key=lambda item: -item[0]))

    def has_listeners(self, event: str) -> bool:
        with self._lock:
            if self._listeners.get(event):
                return True
            return any(matches_wildcard(event, pattern) for pattern in self._wildcards)

    # ---------- Configuration ----------

    def set_config(self, key: str, value: Any) -> None:
        self._config[key] = value

    def get_config(self, key: str, default: Any | None = None) -> Any | None:
        return self._config.get(key, default)

    def set_logger(self, logger: logging.Logger | None) -> None:
        self._logger = logger

    # ---------- Internals ----------

    def _table_for(self, event: str) -> dict[str, _Buckets]:
        return self._wildcards if WILDCARD in event else self._listeners

    def _collect(self, name: str) -> list[_Registration]:
        collected = [
            registration
            for registrations in self._listeners.get(name, {}).values()
            for registration in registrations
        ]
        for pattern, buckets in self._wildcards.items():
            if not matches_wildcard(name, pattern):
                continue
            collected.extend(
                registration
                for registrations in buckets.values()
                for registration in registrations
            )
        return collected

    def _matching(self, name: str) -> list[_Registration]:
        with self._lock:
            snapshot = self._collect(name)
        if self._config.get("global_priority", False):
            snapshot.sort(key=lambda item: (-item.handle.priority, item.handle.id))
        return snapshot

    def _log_failure(self, name: str, registration: _Registration, exc: Exception) -> None:
        if registration.pattern is None:
            self._log(
                logging.ERROR,
                "Error in event listener for %s: %s",
                name,
                exc,
                extra={"event": name},
                exc_info=exc,
            )
            return
        self._log(
            logging.ERROR,
            "Error in wildcard listener (%s) for %s: %s",
            registration.pattern,
            name,
            exc,
            extra={"event": name, "wildcard": registration.pattern},
            exc_info=exc,
        )

    def _log(self, level: int, message: str, *args: Any, **kwargs: Any) -> None:
        if self._logger is not None:
            self._logger.log(level, message, *args, **kwargs)
