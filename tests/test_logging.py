"""Tests for jh_cli.logging_setup."""

import logging

import pytest

from jh_cli.logging_setup import configure_logging, resolve_level


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger("jh_cli")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


class TestResolveLevel:
    def test_debug_flag(self, monkeypatch):
        monkeypatch.setenv("JH_LOG_LEVEL", "ERROR")

        assert resolve_level(debug=True) == logging.DEBUG

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("JH_LOG_LEVEL", "info")

        assert resolve_level() == logging.INFO

    def test_default_and_garbage(self, monkeypatch):
        monkeypatch.delenv("JH_LOG_LEVEL", raising=False)
        assert resolve_level() == logging.WARNING

        monkeypatch.setenv("JH_LOG_LEVEL", "chatty")
        assert resolve_level() == logging.WARNING


class TestConfigureLogging:
    def test_writes_to_rotating_file(self, tmp_path):
        path = configure_logging(logging.INFO, tmp_path)

        logging.getLogger("jh_cli.flows.start_work").info("Created branch %s", "PROJ-1/x")
        for handler in logging.getLogger("jh_cli").handlers:
            handler.flush()

        assert path == tmp_path / "jh.log"
        assert "Created branch PROJ-1/x" in path.read_text()

    def test_reconfiguring_replaces_handler(self, tmp_path):
        configure_logging(logging.INFO, tmp_path)
        configure_logging(logging.DEBUG, tmp_path)

        logger = logging.getLogger("jh_cli")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
