"""Tests for logging setup."""

import logging

import pytest
from rich.logging import RichHandler

from garden_publisher.logger import setup_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_configures_root_and_file(self, root_logger, tmp_path, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        log_file = tmp_path / "publish.log"
        setup_logging("WARNING", log_file=str(log_file))
        assert root_logger.level == logging.WARNING
        assert any(isinstance(h, RichHandler) for h in root_logger.handlers)

        logging.getLogger("garden_publisher.tests.file").warning("written to file")
        for handler in root_logger.handlers:
            handler.flush()
        assert "written to file" in log_file.read_text()

    def test_level_from_environment(self, root_logger, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        setup_logging("DEBUG")
        assert root_logger.level == logging.ERROR

    def test_replaces_existing_handlers(self, root_logger, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging()
        setup_logging()
        assert len(root_logger.handlers) == 1
