"""Tests for spawn() and cooperative shutdown across processes.

``spawn()`` forks the caller.  The parent's handle gets the child's
PID; the child runs the handle and exits with a status derived from
the target.  Parent and child hold independent copies of the handle,
so a shutdown request seen by the child never changes the parent's
copy.
"""

import os
import signal
import sys
import time

import pytest

from py_ko.fork import EXIT_FAILURE, spawn
from py_ko.process import Process, ProcessState

pytestmark = pytest.mark.skipif(not hasattr(os, "fork"), reason="requires os.fork")


class TestSpawn:
    """Verify process creation."""

    def test_spawn_binds_child_pid(self) -> None:
        """The parent's handle is bound to a new, different pid."""
        proc = spawn(Process(lambda _p: None))
        try:
            assert proc.pid > 0
            assert proc.pid != os.getpid()
            assert proc.state is ProcessState.ASSOCIATED
        finally:
            proc.wait()

    def test_child_receives_its_own_handle(self) -> None:
        """Inside the child the target sees a handle for its own process."""
        read_fd, write_fd = os.pipe()

        def target(_proc: Process) -> None:
            os.write(write_fd, str(os.getpid()).encode())

        proc = spawn(Process(target))
        os.close(write_fd)
        try:
            reported = os.read(read_fd, 32)
        finally:
            os.close(read_fd)
            proc.wait()
        assert int(reported) == proc.pid

    @pytest.mark.parametrize(
        ("code", "expected"),
        [(None, 0), (4, 4), ("fatal", EXIT_FAILURE)],
    )
    def test_system_exit_codes(self, code: object, expected: int) -> None:
        """sys.exit() in the target maps to the child's exit status."""

        def target(_proc: Process) -> None:
            sys.exit(code)  # type: ignore[arg-type]

        proc = spawn(Process(target))
        proc.wait()
        assert proc.exit_code == expected


class TestCooperativeShutdown:
    """Verify SIGTERM → flag → voluntary exit across a real fork."""

    def test_sigterm_stops_polling_child(self) -> None:
        """A child polling dispatch() exits cleanly after kill()."""
        read_fd, write_fd = os.pipe()

        def target(proc: Process) -> None:
            os.write(write_fd, b"r")
            for _ in range(500):
                if proc.dispatch().should_shutdown:
                    return
                time.sleep(0.01)
            sys.exit(3)

        proc = spawn(Process(target))
        os.close(write_fd)
        try:
            assert os.read(read_fd, 1) == b"r"
        finally:
            os.close(read_fd)
        successes: list[int] = []
        proc.on_success(lambda: successes.append(1))
        proc.kill().wait()
        assert proc.exit_code == 0
        assert successes == [1]

    def test_parent_flag_is_independent(self) -> None:
        """The child's shutdown request never reaches the parent's copy."""
        read_fd, write_fd = os.pipe()

        def target(proc: Process) -> None:
            os.write(write_fd, b"r")
            for _ in range(500):
                if proc.dispatch().should_shutdown:
                    return
                time.sleep(0.01)
            sys.exit(3)

        proc = spawn(Process(target))
        os.close(write_fd)
        try:
            os.read(read_fd, 1)
        finally:
            os.close(read_fd)
        proc.kill(signal.SIGTERM).wait()
        assert proc.is_success_exit() is True
        assert proc.should_shutdown is False
