"""Tests for logging setup and the Loki handler."""

import logging
import threading

import pytest
import requests

from overseer import settings
from overseer.log import handler as handler_module
from overseer.log import setup_logging
from overseer.log.handler import LokiHandler
from overseer.log.setup import MainFormatter


@pytest.fixture
def root_logger():
    """Drops the handlers a test installs on the root logger and restores its level."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class FakeResponse:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        self.text = "body"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_only(self, root_logger, monkeypatch):
        monkeypatch.setattr(settings, "LOKI_ENABLED", False)
        setup_logging(logging.WARNING)
        assert len(root_logger.handlers) == 1
        assert root_logger.handlers[0].level == logging.WARNING
        assert isinstance(root_logger.handlers[0].formatter, MainFormatter)

    def test_log_file(self, root_logger, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "LOKI_ENABLED", False)
        log_path = tmp_path / "logs" / "overseer.log"
        setup_logging(logging.INFO, log_path=log_path)
        logging.getLogger("overseer.test").info("hello from the overseer")
        for handler in root_logger.handlers:
            handler.flush()
        assert "hello from the overseer" in log_path.read_text()

    def test_repeat_setup_does_not_duplicate(self, root_logger, monkeypatch):
        monkeypatch.setattr(settings, "LOKI_ENABLED", False)
        setup_logging()
        setup_logging()
        assert len(root_logger.handlers) == 1


class TestLokiHandler:
    """Tests for LokiHandler batching."""

    @pytest.fixture
    def posts(self, monkeypatch):
        calls = []

        def post(url, json=None, headers=None, timeout=None):
            calls.append({"url": url, "json": json, "headers": headers})
            return FakeResponse(204)

        monkeypatch.setattr(handler_module.requests, "post", post)
        monkeypatch.setattr(settings, "LOG_BUFFER_FLUSH_INTERVAL", 60)
        return calls

    def test_flush_sends_batch(self, posts):
        handler = LokiHandler("http://loki:3100/", org_id="tenant", role="worker")
        try:
            handler.emit(logging.makeLogRecord({"name": "overseer.pool", "levelname": "INFO", "msg": "spawned"}))
            handler.flush()
        finally:
            handler.close()

        assert len(posts) == 1
        assert posts[0]["url"] == "http://loki:3100/loki/api/v1/push"
        assert posts[0]["headers"]["X-Scope-OrgID"] == "tenant"
        stream = posts[0]["json"]["streams"][0]["stream"]
        assert stream["role"] == "worker"
        assert stream["level"] == "info"
        assert stream["job"] == settings.LOKI_JOB

    def test_empty_flush_sends_nothing(self, posts):
        handler = LokiHandler("http://loki:3100")
        handler.close()
        assert posts == []

    def test_send_failure_reported_to_stderr(self, monkeypatch, capsys):
        def fail(*args, **kwargs):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(handler_module.requests, "post", fail)
        monkeypatch.setattr(settings, "LOG_BUFFER_FLUSH_INTERVAL", 60)
        handler = LokiHandler("http://loki:3100")
        try:
            handler.emit(logging.makeLogRecord({"msg": "lost"}))
            handler.flush()
        finally:
            handler.close()
        assert "Failed to send 1 logs to Loki" in capsys.readouterr().err


def lose_flush_thread(handler: LokiHandler) -> None:
    """Leaves the handler as a fork does: buffer and unset stop event kept, flush thread gone."""
    handler.stop_event.set()
    handler.flush_thread.join(timeout=5)
    handler.stop_event = threading.Event()


class TestLokiHandlerAfterFork:
    """Tests for LokiHandler in a forked child."""

    @pytest.fixture
    def posts(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            handler_module.requests, "post",
            lambda url, json=None, headers=None, timeout=None: calls.append(json) or FakeResponse(204),
        )
        monkeypatch.setattr(settings, "LOG_BUFFER_FLUSH_INTERVAL", 60)
        return calls

    def test_restart_keeps_buffer(self, posts):
        handler = LokiHandler("http://loki:3100")
        lose_flush_thread(handler)
        handler.emit(logging.makeLogRecord({"msg": "queued before fork"}))
        assert not handler.flush_thread.is_alive()

        handler.restart_after_fork()
        try:
            assert handler.flush_thread.is_alive()
            assert len(handler.log_buffer) == 1
        finally:
            handler.close()
        assert len(posts) == 1

    def test_fork_hook_restarts_live_handlers(self, posts):
        handler = LokiHandler("http://loki:3100")
        lose_flush_thread(handler)
        handler_module._restart_handlers_after_fork()
        try:
            assert handler.flush_thread.is_alive()
        finally:
            handler.close()

    def test_closed_handler_is_not_restarted(self, posts):
        handler = LokiHandler("http://loki:3100")
        handler.close()
        handler_module._restart_handlers_after_fork()
        assert not handler.flush_thread.is_alive()

    def test_close_without_flush_thread_still_sends_tail(self, posts):
        handler = LokiHandler("http://loki:3100")
        lose_flush_thread(handler)
        handler.emit(logging.makeLogRecord({"msg": "last words"}))
        handler.close()
        assert len(posts) == 1
        assert "last words" in posts[0]["streams"][0]["values"][0][1]
