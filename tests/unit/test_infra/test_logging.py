"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from order_service.core.settings import LoggingSettings
from order_service.infra.logging import JSONFormatter, configure_logging, setup_logging, shutdown


def _record(msg: str = "Outbox batch dispatched", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="order_service.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield
    shutdown()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_formats_core_fields(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "order_service.test"
        assert data["message"] == "Outbox batch dispatched"
        assert data["timestamp"].endswith("Z")

    def test_includes_extra_and_static_fields(self):
        formatter = JSONFormatter(static={"service": "order-service"})

        data = json.loads(formatter.format(_record(delivered=3, event_id="abc")))

        assert data["service"] == "order-service"
        assert data["delivered"] == 3
        assert data["event_id"] == "abc"

    def test_non_serializable_extras_use_str(self):
        data = json.loads(JSONFormatter().format(_record(path=object())))

        assert data["path"].startswith("<object object")

    def test_exception_is_single_line(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        output = JSONFormatter().format(record)

        assert "\n" not in output
        assert "RuntimeError: boom" in json.loads(output)["exception"]


@pytest.mark.unit
class TestConfigureLogging:
    """Tests for configure_logging and setup_logging."""

    def test_writes_json_lines_to_file(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "service.jsonl"
        configure_logging(
            log_level="info",
            file_path=log_file,
            json_logs=True,
            console_enabled=False,
            service_name="order-service",
        )

        logging.getLogger("order_service.test").info("Order created", extra={"order_id": 7})
        shutdown()

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        entry = next(line for line in lines if line["message"] == "Order created")
        assert entry["order_id"] == 7
        assert entry["service"] == "order-service"
        assert logging.getLogger().level == logging.INFO

    def test_no_handlers_when_all_outputs_disabled(self, restore_root_logger):
        configure_logging(console_enabled=False, file_path=None)

        from order_service.infra.logging import config

        assert config._listener is None

    def test_setup_logging_runs_once_unless_forced(self, restore_root_logger, monkeypatch):
        from order_service.infra.logging import config

        calls: list[dict] = []
        monkeypatch.setattr(config, "_LOGGING_INITIALIZED", False)
        monkeypatch.setattr(config, "configure_logging", lambda **kw: calls.append(kw))
        settings = LoggingSettings(level="debug", json=False)

        setup_logging(settings)
        setup_logging(settings)
        setup_logging(settings, force=True, console_enabled=False)

        assert len(calls) == 2
        assert calls[0]["log_level"] == "DEBUG"
        assert calls[0]["json_logs"] is False
        assert calls[1]["console_enabled"] is False
