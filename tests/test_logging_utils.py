"""Tests for logging helpers."""
import json
import logging

from backend.calc_engine.utils.logging_utils import JsonFormatter, LoggerAdapter, setup_logging


def _record(msg="hello", level=logging.INFO):
    return logging.LogRecord("commission.test", level, __file__, 10, msg, None, None)


class TestJsonFormatter:
    def test_one_object_per_record(self):
        payload = json.loads(JsonFormatter().format(_record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "commission.test"
        assert payload["message"] == "hello"
        assert "exception" not in payload


class TestLoggerAdapter:
    def test_appends_context(self):
        adapter = LoggerAdapter(logging.getLogger("x"), {"sales": 3, "plans": 2})
        msg, _ = adapter.process("Starting", {})
        assert msg == "Starting [sales=3 plans=2]"

    def test_no_context(self):
        msg, _ = LoggerAdapter(logging.getLogger("x")).process("Starting", {})
        assert msg == "Starting"


class TestSetupLogging:
    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "engine.log"
        setup_logging("DEBUG", str(log_file), json_format=True)

        logging.getLogger("commission.test").debug("written")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "written"
        assert logging.getLogger().level == logging.DEBUG
