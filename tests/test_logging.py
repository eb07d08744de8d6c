"""
Tests for the logging module.

Tests verify:
- JSON and console renderers are selected correctly
- Service metadata and bound context appear in events
- DEBUG logs are suppressed at INFO level
"""

import json
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from jobqueue.logging import LogContext, configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    root.handlers[:] = handlers
    root.setLevel(level)


def _last_json_line(out: str) -> dict:
    lines = [line for line in out.splitlines() if line.startswith("{")]
    return json.loads(lines[-1])


class TestConfigureLogging:
    def test_json_renderer(self):
        configure_logging(json_format=True)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer(self):
        configure_logging(json_format=False)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_format_from_settings(self, monkeypatch):
        monkeypatch.setenv("JOBQUEUE_LOG_FORMAT", "json")
        configure_logging()
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_json_output_has_service_and_fields(self, capsys):
        configure_logging(level="INFO", json_format=True, service="batch-jobs")
        get_logger("test").info("runner.start", jobs=3)
        record = _last_json_line(capsys.readouterr().out)
        assert record["event"] == "runner.start"
        assert record["jobs"] == 3
        assert record["service.name"] == "batch-jobs"
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_debug_suppressed_at_info(self, capsys):
        configure_logging(level="INFO", json_format=True)
        get_logger("test").debug("hidden")
        assert "hidden" not in capsys.readouterr().out

    def test_debug_emitted_at_debug(self, capsys):
        configure_logging(level="DEBUG", json_format=True)
        get_logger("test").debug("shown")
        assert _last_json_line(capsys.readouterr().out)["event"] == "shown"


class TestLogContext:
    def test_binds_and_restores(self):
        with LogContext(run_id="abc"):
            assert structlog.contextvars.get_contextvars()["run_id"] == "abc"
        assert "run_id" not in structlog.contextvars.get_contextvars()

    def test_nested_restores_outer_value(self):
        with LogContext(run_id="outer"):
            with LogContext(run_id="inner"):
                assert structlog.contextvars.get_contextvars()["run_id"] == "inner"
            assert structlog.contextvars.get_contextvars()["run_id"] == "outer"

    @pytest.mark.asyncio
    async def test_async_form(self):
        async with LogContext(run_id="xyz"):
            assert structlog.contextvars.get_contextvars()["run_id"] == "xyz"
        assert "run_id" not in structlog.contextvars.get_contextvars()

    def test_context_in_json_output(self, capsys):
        configure_logging(level="INFO", json_format=True)
        with LogContext(run_id="r-1"):
            get_logger("test").info("inside")
        assert _last_json_line(capsys.readouterr().out)["run_id"] == "r-1"


def test_get_logger_is_capturable():
    with capture_logs() as logs:
        get_logger(__name__).warning("something", n=1)
    assert logs == [{"event": "something", "n": 1, "log_level": "warning"}]
