"""Synchronous event emitter.

A tiny publish/subscribe hub: listeners subscribe to a named event and
``emit()`` calls them in subscription order, on the caller's stack.

Design choices:
    - **No buffering or replay**: an event with no listeners is
      dropped, and a listener added after an emit never sees it.
    - **Exceptions propagate**: a failing listener stops the emit and
      the error reaches whoever called ``emit()``.
    - **Snapshot before calling**: listeners added or removed while an
      event is being emitted take effect from the next emit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from py_ko.log import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger(__name__)


@dataclass(frozen=True)
class _Subscription:
    """A listener plus whether it should fire only once."""

    listener: Callable[..., object]
    once: bool = False


class EventEmitter:
    """Subscribe to and emit named events."""

    def __init__(self) -> None:
        """Create an emitter with no listeners."""
        self._subscriptions: dict[str, list[_Subscription]] = {}

    def on(self, event: str, listener: Callable[..., object]) -> None:
        """Call *listener* every time *event* is emitted."""
        self._subscriptions.setdefault(event, []).append(_Subscription(listener))

    def once(self, event: str, listener: Callable[..., object]) -> None:
        """Call *listener* the next time *event* is emitted, then forget it."""
        self._subscriptions.setdefault(event, []).append(_Subscription(listener, once=True))

    def remove_listener(self, event: str, listener: Callable[..., object]) -> None:
        """Remove the first subscription of *listener* to *event*.

        Unknown listeners are ignored.
        """
        subscriptions = self._subscriptions.get(event, [])
        for index, subscription in enumerate(subscriptions):
            if subscription.listener == listener:
                del subscriptions[index]
                return

    def remove_all_listeners(self, event: str | None = None) -> None:
        """Remove every listener of *event*, or of all events when None."""
        if event is None:
            self._subscriptions.clear()
        else:
            self._subscriptions.pop(event, None)

    def listeners(self, event: str) -> list[Callable[..., object]]:
        """Return the listeners of *event* in subscription order."""
        return [s.listener for s in self._subscriptions.get(event, [])]

    def emit(self, event: str, *args: object) -> bool:
        """Call every listener of *event* with *args*.

        Args:
            event: The event name.
            *args: Positional payload passed to each listener.

        Returns:
            True if at least one listener was called.

        """
        subscriptions = self._subscriptions.get(event)
        if not subscriptions:
            logger.debug("event_dropped", event_name=event)
            return False
        snapshot = list(subscriptions)
        self._subscriptions[event] = [s for s in subscriptions if not s.once]
        for subscription in snapshot:
            subscription.listener(*args)
        return True
