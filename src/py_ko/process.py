"""Process handle — one child OS process seen from its parent.

A ``Process`` is created around a *target* callable before the OS
process exists.  Whoever forks binds the real PID on the parent's copy
with the ``pid`` setter; the child calls ``run()``, which executes the
target.  The parent later calls ``wait()`` to collect the exit status
and publish the outcome to listeners.

State machine::

    CREATED → ASSOCIATED → RUNNING → SHUTDOWN_REQUESTED
                  ↓                          (child only)
              CONCLUDED  (parent, after wait)

Cooperative shutdown:
    ``run()`` registers a SIGTERM callback that flips ``should_shutdown``.
    Sending SIGTERM never stops the child by itself.  The target has to
    call ``dispatch()`` and read ``should_shutdown`` from its own loop::

        def work(proc: Process) -> None:
            while not proc.dispatch().should_shutdown:
                do_one_unit_of_work()

Outcome classification:
    A wait is a **success** only if the child exited normally with
    status 0.  A non-zero exit code or death by signal is an **error**.
    ``wait()`` emits ``"exit"`` (with the PID) and then exactly one of
    ``"success"`` or ``"error"``.  There is no replay: a listener added
    after the wait never hears about it.
"""

from __future__ import annotations

import os
import signal
import time
import warnings
from enum import StrEnum
from typing import TYPE_CHECKING

from py_ko.config import ProcessConfig
from py_ko.events import EventEmitter
from py_ko.log import get_logger
from py_ko.signals import SignalHandler

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger(__name__)


class ProcessState(StrEnum):
    """Lifecycle stages of a process handle.

    - CREATED: constructed, not bound to an OS process.
    - ASSOCIATED: the creator has set the real PID.
    - RUNNING: ``run()`` is executing the target (child side).
    - SHUTDOWN_REQUESTED: SIGTERM was dispatched (child side).
    - CONCLUDED: the parent has collected the exit status.
    """

    CREATED = "created"
    ASSOCIATED = "associated"
    RUNNING = "running"
    SHUTDOWN_REQUESTED = "shutdown_requested"
    CONCLUDED = "concluded"


class ProcessEvent(StrEnum):
    """Names of the events published by ``wait()``."""

    EXIT = "exit"
    SUCCESS = "success"
    ERROR = "error"


class ProcessError(Exception):
    """Raised when a process handle is used out of order."""


class ReadyTimeoutError(ProcessError):
    """Raised when a child never reports ready within the poll budget."""


class Process:
    """A handle on one child process.

    The same object lives in both the parent and (after fork) the child,
    but each side only uses its half of the API: the child runs the
    target and polls for shutdown; the parent waits, kills and listens.
    """

    def __init__(
        self,
        target: Callable[[Process], object],
        *,
        events: EventEmitter | None = None,
        config: ProcessConfig | None = None,
    ) -> None:
        """Create a handle that is not yet bound to any OS process.

        Args:
            target: The unit of work run in the child.  It receives the
                handle so it can poll ``should_shutdown``.
            events: Emitter used for outcome events (a fresh one if None).
            config: Readiness tunables (defaults if None).

        """
        self._pid: int = 0
        self._target = target
        self._status: int | None = None
        self._exit_code: int | None = None
        self._should_shutdown: bool = False
        self._state: ProcessState = ProcessState.CREATED
        self._started: bool = False
        self._signal_handler: SignalHandler | None = None
        self._events: EventEmitter = events if events is not None else EventEmitter()
        self._config: ProcessConfig = config if config is not None else ProcessConfig()

    def __repr__(self) -> str:
        """Return e.g. ``Process(pid=42, state='associated')``."""
        return f"Process(pid={self._pid}, state={self._state.value!r})"

    # -- Identity ------------------------------------------------------------

    @property
    def pid(self) -> int:
        """Return the OS process id, or 0 if not bound yet."""
        return self._pid

    @pid.setter
    def pid(self, value: int) -> None:
        """Bind the OS process id.  No validation is done."""
        self._pid = value
        if value > 0 and self._state is ProcessState.CREATED:
            self._state = ProcessState.ASSOCIATED

    @property
    def target(self) -> Callable[[Process], object]:
        """Return the callable run inside the child."""
        return self._target

    @property
    def state(self) -> ProcessState:
        """Return the current lifecycle stage."""
        return self._state

    @property
    def config(self) -> ProcessConfig:
        """Return the configuration this handle was built with."""
        return self._config

    # -- Exit status -----------------------------------------------------------

    @property
    def status(self) -> int | None:
        """Return the raw wait status, or None before any wait."""
        return self._status

    @status.setter
    def status(self, value: int | None) -> None:
        """Record a raw wait status collected elsewhere."""
        self._status = value

    @property
    def exit_code(self) -> int | None:
        """Return the exit code derived by the last classification.

        Only meaningful after ``wait()`` (or ``is_success_exit()``) ran;
        None before that.
        """
        return self._exit_code

    def is_success_exit(self) -> bool:
        """Return True if the recorded status is a normal exit with code 0.

        Recomputes ``exit_code`` from ``status``.  Without a recorded
        status there is nothing to classify and the answer is False.
        """
        if self._status is None:
            return False
        self._exit_code = os.WEXITSTATUS(self._status)
        return os.WIFEXITED(self._status) and self._exit_code == 0

    def wait(self) -> Process:
        """Block until the child exits, then publish the outcome.

        A handle with no process (PID 0 or negative) has nothing to wait
        for: the call returns at once and publishes nothing.  A negative
        PID is never passed on, since ``waitpid`` would read it as "any
        child" or a process group and reap someone else's child.

        Returns:
            This handle, for chaining.

        Raises:
            ChildProcessError: If the PID is not a child of the caller.

        """
        if self._pid <= 0:
            return self

        logger.debug("process_waiting", pid=self._pid)
        _, self._status = os.waitpid(self._pid, 0)
        success = self.is_success_exit()
        self._state = ProcessState.CONCLUDED

        if success:
            logger.info("process_exited", pid=self._pid, exit_code=self._exit_code)
        else:
            logger.warning(
                "process_failed",
                pid=self._pid,
                exit_code=self._exit_code,
                term_signal=self.term_signal,
            )

        self._events.emit(ProcessEvent.EXIT, self._pid)
        self._events.emit(ProcessEvent.SUCCESS if success else ProcessEvent.ERROR)
        return self

    @property
    def term_signal(self) -> int | None:
        """Return the signal that killed the child, or None."""
        if self._status is None or not os.WIFSIGNALED(self._status):
            return None
        return os.WTERMSIG(self._status)

    # -- Outcome listeners -------------------------------------------------------

    def on_success(self, callback: Callable[[], object]) -> Process:
        """Call *callback* when a wait finds a successful exit."""
        self._events.on(ProcessEvent.SUCCESS, callback)
        return self

    def on_error(self, callback: Callable[[], object]) -> Process:
        """Call *callback* when a wait finds a failed or killed child."""
        self._events.on(ProcessEvent.ERROR, callback)
        return self

    # -- Child side ----------------------------------------------------------

    @property
    def signal_handler(self) -> SignalHandler:
        """Return the signal registry, creating it on first access."""
        if self._signal_handler is None:
            self._signal_handler = SignalHandler()
        return self._signal_handler

    @signal_handler.setter
    def signal_handler(self, handler: SignalHandler) -> None:
        """Replace the signal registry (e.g. with a test double)."""
        self._signal_handler = handler

    @property
    def should_shutdown(self) -> bool:
        """Return True once SIGTERM has been dispatched to this process."""
        return self._should_shutdown

    def run(self) -> None:
        """Execute the target inside the child process.

        Installs the SIGTERM callback first, then calls the target once
        with this handle.  The target's return value is ignored.

        Raises:
            ProcessError: If the handle has already been run.

        """
        if self._started:
            msg = f"Process {self._pid or os.getpid()} has already been run"
            raise ProcessError(msg)
        self._started = True

        self.signal_handler.register_handler(signal.SIGTERM, self._request_shutdown)
        self._state = ProcessState.RUNNING
        logger.debug("process_running", pid=os.getpid())
        self._target(self)

    def dispatch(self) -> Process:
        """Run the callbacks of signals received since the last dispatch."""
        self.signal_handler.dispatch()
        return self

    def dispatch_signals(self) -> Process:
        """Run pending signal callbacks.

        .. deprecated:: Use ``dispatch()``.
        """
        warnings.warn(
            "dispatch_signals() is deprecated, use dispatch()",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.dispatch()

    def _request_shutdown(self) -> None:
        """Handle SIGTERM: ask the target to stop."""
        self._should_shutdown = True
        self._state = ProcessState.SHUTDOWN_REQUESTED
        logger.info("process_shutdown_requested", pid=os.getpid())

    # -- Parent side -----------------------------------------------------------

    def kill(self, sig: int = signal.SIGTERM) -> Process:
        """Send *sig* to the child.

        Delivery failures from the OS propagate unchanged and are not
        retried.

        Raises:
            ProcessError: If the handle is not bound to a process.  A PID
                of 0 or below would signal a whole process group.

        """
        if self._pid <= 0:
            msg = f"Cannot signal pid {self._pid}: handle is not bound to a process"
            raise ProcessError(msg)
        logger.debug("process_signalled", pid=self._pid, signum=int(sig))
        os.kill(self._pid, sig)
        return self

    # -- Readiness -------------------------------------------------------------

    def is_ready(self) -> bool:
        """Return True if the child has finished starting up.

        The base handle has no startup handshake, so it is always
        ready.  Subclasses with a real handshake override this.
        """
        return True

    def set_ready(self, value: bool) -> Process:  # noqa: ARG002, FBT001
        """Mark the child as started.  No effect on the base handle."""
        return self

    def wait_ready(self) -> Process:
        """Poll ``is_ready()`` until it is True or the budget runs out.

        Must not be called from the child process.

        Returns:
            This handle, for chaining.

        Raises:
            ReadyTimeoutError: If the child never reports ready within
                ``config.ready_attempts`` polls.

        """
        for attempt in range(self._config.ready_attempts):
            if self.is_ready():
                return self
            if attempt + 1 < self._config.ready_attempts:
                time.sleep(self._config.ready_interval)

        logger.error(
            "process_ready_timeout",
            pid=self._pid,
            attempts=self._config.ready_attempts,
        )
        msg = f"Wait process running timeout for child pid {self._pid}"
        raise ReadyTimeoutError(msg)
