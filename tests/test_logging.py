"""
Tests for the logging configuration.
"""

import logging

import pytest
from rich.logging import RichHandler

from azreview.core.logging import NOISY_LOGGERS, LogContext, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Keep logging configuration from leaking between tests."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_handler(self):
        setup_logging(level="debug")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], RichHandler)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "azreview.log"
        setup_logging(level="INFO", log_file=str(log_file))
        logging.getLogger("azreview.test").info("scanning rg-test")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "scanning rg-test" in log_file.read_text(encoding="utf-8")

    def test_calling_twice_does_not_duplicate_handlers(self):
        setup_logging(level="INFO")
        setup_logging(level="WARNING")
        assert len(logging.getLogger().handlers) == 1

    def test_thread_name_in_debug_console_output(self):
        setup_logging(level="DEBUG")
        assert "threadName" in logging.getLogger().handlers[0].formatter._fmt

        setup_logging(level="INFO")
        assert "threadName" not in logging.getLogger().handlers[0].formatter._fmt

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="verbose"):
            setup_logging(level="verbose")

    def test_azure_loggers_are_quietened(self):
        setup_logging(level="DEBUG")
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestLogContext:
    """Tests for LogContext."""

    def test_level_restored(self):
        logger = logging.getLogger("azreview.test.context")
        logger.setLevel(logging.INFO)

        with LogContext(logger, "ERROR") as inner:
            assert inner is logger
            assert logger.level == logging.ERROR

        assert logger.level == logging.INFO

    def test_level_restored_on_error(self):
        logger = logging.getLogger("azreview.test.context")
        logger.setLevel(logging.WARNING)

        with pytest.raises(RuntimeError):
            with LogContext(logger, logging.DEBUG):
                raise RuntimeError("boom")

        assert logger.level == logging.WARNING
