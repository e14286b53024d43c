"""Signal handler registry — deferred delivery of POSIX signals.

Signals are asynchronous notifications the kernel sends to a process.
Python already turns them into calls on the main thread, but a handler
that runs at an arbitrary bytecode boundary is a poor place for
application logic.  This registry splits delivery into two halves:

- **Receive**: the OS-level handler installed by ``register_handler``
  only records the signal number in a pending queue.
- **Dispatch**: ``dispatch()`` drains the queue and invokes the
  registered callbacks synchronously, at a point the caller chose.

Catchable vs uncatchable:
    - **Uncatchable**: SIGKILL and SIGSTOP.  The kernel never lets a
      process intercept them; registering a callback raises
      ``SignalError``.
    - **Catchable**: every other signal.

Design choices:
    - **No thread or timer**: nothing is pushed into user code.  The
      owner must call ``dispatch()`` from its own loop.
    - **One queue entry per observed delivery**: two deliveries seen
      before a dispatch run the callbacks twice.  The kernel itself may
      still coalesce identical standard signals before Python sees them.
    - **Previous dispositions are remembered** so ``restore()`` can put
      the process back the way it found it.
"""

from __future__ import annotations

import signal
from collections import deque
from typing import TYPE_CHECKING

from py_ko.log import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import FrameType

logger = get_logger(__name__)

UNCATCHABLE: frozenset[int] = frozenset({signal.SIGKILL, signal.SIGSTOP})
"""Signals that cannot have a handler registered.

Attempting to register a callback for one of these raises
``SignalError``, mirroring the kernel's own refusal.
"""


class SignalError(Exception):
    """Raised when a signal callback cannot be registered."""


class SignalHandler:
    """Map signal numbers to callbacks and run them on demand.

    The registry is owned by exactly one process image.  After a fork
    the child holds an independent copy; nothing is shared.
    """

    def __init__(self) -> None:
        """Create an empty registry with no OS handlers installed."""
        self._handlers: dict[int, list[Callable[[], None]]] = {}
        self._previous: dict[int, signal.Handlers | Callable[..., object] | int | None] = {}
        self._pending: deque[int] = deque()

    @property
    def pending(self) -> tuple[int, ...]:
        """Return the signal numbers received but not yet dispatched."""
        return tuple(self._pending)

    def handlers(self, signum: int) -> list[Callable[[], None]]:
        """Return the callbacks registered for *signum*, in order."""
        return list(self._handlers.get(signum, ()))

    def register_handler(self, signum: int, handler: Callable[[], None]) -> None:
        """Register a callback to run when *signum* is dispatched.

        The first registration for a signal installs the queueing OS
        handler.  Later registrations append to the callback list.

        Args:
            signum: The signal number (e.g. ``signal.SIGTERM``).
            handler: Zero-argument callable run by ``dispatch()``.

        Raises:
            SignalError: If *signum* is uncatchable.
            ValueError: If called outside the main thread (raised by
                the ``signal`` module).

        """
        if signum in UNCATCHABLE:
            msg = f"{signal.Signals(signum).name} is uncatchable"
            raise SignalError(msg)
        if signum not in self._handlers:
            self._previous[signum] = signal.signal(signum, self._receive)
            self._handlers[signum] = []
        self._handlers[signum].append(handler)
        logger.debug("signal_handler_registered", signum=signum)

    def dispatch(self) -> int:
        """Run the callbacks for every signal received since the last call.

        Deliveries are serviced in arrival order.  A signal arriving
        while callbacks run is picked up in the same call.

        Returns:
            The number of deliveries serviced.

        """
        serviced = 0
        while self._pending:
            signum = self._pending.popleft()
            for handler in list(self._handlers.get(signum, ())):
                handler()
            serviced += 1
        if serviced:
            logger.debug("signals_dispatched", count=serviced)
        return serviced

    def restore(self) -> None:
        """Reinstall the previous dispositions and forget all callbacks."""
        for signum, previous in self._previous.items():
            signal.signal(signum, signal.SIG_DFL if previous is None else previous)
        self._previous.clear()
        self._handlers.clear()
        self._pending.clear()

    def _receive(self, signum: int, _frame: FrameType | None) -> None:
        """Queue a delivery; runs inside the interpreter's signal hook."""
        self._pending.append(signum)
