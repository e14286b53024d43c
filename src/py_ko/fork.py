"""Fork a process handle into a real child.

``spawn()`` is the smallest possible process creator: it forks, binds
the child's PID on the parent's handle, and runs the handle in the
child.  The child's exit status follows what happened to the target:

- returned normally → exit status 0
- raised ``SystemExit(n)`` → exit status *n* (1 for non-integer codes)
- raised anything else → ``EXIT_FAILURE``

The child always leaves through ``os._exit`` so it never runs the
parent's ``atexit`` hooks or unwinds into the parent's call stack.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from py_ko.log import get_logger

if TYPE_CHECKING:
    from py_ko.process import Process

logger = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def spawn(process: Process) -> Process:
    """Fork and run *process* in the child.

    Only the parent returns from this call.

    Args:
        process: A handle that has not been run yet.

    Returns:
        The same handle, with ``pid`` bound to the new child.

    """
    sys.stdout.flush()
    sys.stderr.flush()
    pid = os.fork()
    if pid:
        process.pid = pid
        logger.info("process_spawned", pid=pid)
        return process

    os._exit(_run_child(process))  # pragma: no cover


def _run_child(process: Process) -> int:  # pragma: no cover
    """Run the handle and turn its outcome into an exit status."""
    code = EXIT_SUCCESS
    try:
        process.run()
    except SystemExit as e:
        if e.code is None:
            code = EXIT_SUCCESS
        elif isinstance(e.code, int):
            code = e.code
        else:
            code = EXIT_FAILURE
    except BaseException:  # noqa: BLE001
        logger.exception("process_target_failed", pid=os.getpid())
        code = EXIT_FAILURE
    finally:
        sys.stdout.flush()
        sys.stderr.flush()
    return code
