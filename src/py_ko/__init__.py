"""py-ko — POSIX child-process handles with cooperative shutdown.

Re-exports public symbols so callers can write::

    from py_ko import Process, spawn
"""

from py_ko.config import ConfigError, ProcessConfig
from py_ko.events import EventEmitter
from py_ko.fork import EXIT_FAILURE, EXIT_SUCCESS, spawn
from py_ko.log import configure_logging, get_logger
from py_ko.process import (
    Process,
    ProcessError,
    ProcessEvent,
    ProcessState,
    ReadyTimeoutError,
)
from py_ko.signals import UNCATCHABLE, SignalError, SignalHandler

__all__ = [
    "EXIT_FAILURE",
    "EXIT_SUCCESS",
    "UNCATCHABLE",
    "ConfigError",
    "EventEmitter",
    "Process",
    "ProcessConfig",
    "ProcessError",
    "ProcessEvent",
    "ProcessState",
    "ReadyTimeoutError",
    "SignalError",
    "SignalHandler",
    "configure_logging",
    "get_logger",
    "spawn",
]
