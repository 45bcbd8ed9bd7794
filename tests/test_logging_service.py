"""
Tests for logging setup
"""
import logging

import pytest

from sitemark.services import logging_service
from sitemark.services.logging_service import (
    ENV_LOG_LEVEL,
    reset_logging,
    resolve_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def clean_logging(monkeypatch):
    monkeypatch.delenv(ENV_LOG_LEVEL, raising=False)
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    saved_flag = logging_service._logging_initialized
    root.handlers[:] = []
    logging_service._logging_initialized = False
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    logging_service._logging_initialized = saved_flag


class TestResolveLevel:
    """Tests for resolve_level"""

    def test_int_passthrough(self):
        assert resolve_level(logging.DEBUG) == logging.DEBUG

    def test_name(self):
        assert resolve_level("warning") == logging.WARNING

    def test_unknown_name(self):
        assert resolve_level("chatty") == logging.INFO

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv(ENV_LOG_LEVEL, "error")
        assert resolve_level(logging.DEBUG) == logging.ERROR

    def test_invalid_env_ignored(self, monkeypatch):
        monkeypatch.setenv(ENV_LOG_LEVEL, "loud")
        assert resolve_level(logging.DEBUG) == logging.DEBUG


class TestSetupLogging:
    """Tests for setup_logging"""

    def test_file_created(self, tmp_path):
        path = setup_logging(logging.DEBUG, log_dir=tmp_path / "logs")

        assert path is not None
        assert path.parent == tmp_path / "logs"
        assert path.name.startswith("sitemark_")
        logging.getLogger("sitemark.test").debug("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello" in path.read_text(encoding="utf-8")

    def test_console_only(self, tmp_path):
        assert setup_logging(log_to_file=False, log_dir=tmp_path) is None
        assert len(logging.getLogger().handlers) == 1

    def test_second_call_ignored(self, tmp_path):
        setup_logging(log_to_file=False)
        assert setup_logging(log_dir=tmp_path) is None
        assert list(tmp_path.iterdir()) == []

    def test_unwritable_dir_falls_back(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")

        assert setup_logging(log_dir=blocker / "logs") is None
        assert len(logging.getLogger().handlers) == 1

    def test_http_loggers_quieted(self):
        setup_logging(logging.DEBUG, log_to_file=False)
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_reset_allows_reconfigure(self, tmp_path):
        setup_logging(log_to_file=False)
        reset_logging()

        assert logging.getLogger().handlers == []
        assert setup_logging(log_dir=tmp_path) is not None
