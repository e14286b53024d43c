"""Tests for structured logging setup.

Modules log short event names with key-value context through
structlog.  ``configure_logging()`` routes those events into the
stdlib logging tree, where pytest's ``caplog`` can see them.
"""

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from py_ko.events import EventEmitter
from py_ko.log import configure_logging, get_logger
from py_ko.process import Process


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Return structlog and the root level to their defaults after each test."""
    root_level = logging.getLogger().level
    yield
    structlog.reset_defaults()
    logging.getLogger().setLevel(root_level)


class TestConfigureLogging:
    """Verify the stdlib routing and renderers."""

    def test_json_renderer(self, caplog: pytest.LogCaptureFixture) -> None:
        """JSON mode should emit one parseable object per event."""
        configure_logging("DEBUG", json=True)
        caplog.set_level(logging.INFO)
        get_logger("py_ko.tests").info("hello", pid=7)
        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["event"] == "hello"
        assert payload["pid"] == 7
        assert payload["level"] == "info"
        assert payload["logger"] == "py_ko.tests"
        assert "timestamp" in payload

    def test_level_filtering(self, caplog: pytest.LogCaptureFixture) -> None:
        """Events below the enabled level are dropped."""
        configure_logging(json=True)
        caplog.set_level(logging.WARNING)
        logger = get_logger("py_ko.tests")
        logger.info("quiet")
        logger.warning("loud")
        events = [json.loads(r.getMessage())["event"] for r in caplog.records]
        assert events == ["loud"]

    def test_level_applied_when_root_has_handlers(self) -> None:
        """The level is set even when basicConfig has nothing to do."""
        root = logging.getLogger()
        handler = logging.NullHandler()
        root.addHandler(handler)
        try:
            configure_logging("ERROR")
            assert root.level == logging.ERROR
        finally:
            root.removeHandler(handler)


class TestUnconfigured:
    """Verify that an unconfigured host gets no output on stdout."""

    def test_library_events_stay_off_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Debug events from the handle and emitter never reach stdout."""
        structlog.reset_defaults()
        EventEmitter().emit("nobody-listens")
        get_logger("py_ko.tests").debug("quiet", pid=1)
        Process(lambda _p: None).wait()
        assert capsys.readouterr().out == ""

    def test_logger_wraps_stdlib(self, caplog: pytest.LogCaptureFixture) -> None:
        """Without configure_logging events still flow into stdlib logging."""
        structlog.reset_defaults()
        caplog.set_level(logging.INFO, logger="py_ko.tests")
        get_logger("py_ko.tests").info("visible", pid=3)
        assert any("visible" in r.getMessage() for r in caplog.records)
        assert all(r.name == "py_ko.tests" for r in caplog.records)


class TestLibraryEvents:
    """Verify that the process handle logs its lifecycle."""

    def test_wait_failure_logged_as_warning(
        self,
        caplog: pytest.LogCaptureFixture,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A failed wait should produce a warning naming the pid."""
        configure_logging(json=True)
        caplog.set_level(logging.DEBUG)
        monkeypatch.setattr("os.waitpid", lambda pid, _options: (pid, 3 << 8))
        proc = Process(lambda _p: None)
        proc.pid = 4242
        proc.wait()
        warnings = [
            json.loads(r.getMessage()) for r in caplog.records if r.levelno == logging.WARNING
        ]
        assert warnings[-1]["event"] == "process_failed"
        assert warnings[-1]["pid"] == 4242
        assert warnings[-1]["exit_code"] == 3
