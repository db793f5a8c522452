"""Unit tests for logging configuration and correlation ids."""
import json
import logging

import pytest

from tablereader.core.logging_config import (
    CorrelationContext, CorrelationIDFilter, LoggingManager, StructuredFormatter,
    configure_logging, get_logger, logging_manager, set_correlation_id,
    get_correlation_id,
)


def make_record(msg="hello", **extra):
    record = logging.LogRecord("tablereader.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelation:
    def test_context_sets_and_restores(self):
        assert get_correlation_id() is None
        with CorrelationContext("abc") as corr_id:
            assert corr_id == "abc"
            assert get_correlation_id() == "abc"
        assert get_correlation_id() is None

    def test_context_generates_id(self):
        with CorrelationContext() as corr_id:
            assert len(corr_id) == 12

    def test_filter_tags_records(self):
        record = make_record()
        with CorrelationContext("req-1"):
            CorrelationIDFilter().filter(record)
        assert record.correlation_id == "req-1"

        other = make_record()
        CorrelationIDFilter().filter(other)
        assert other.correlation_id == "-"


class TestStructuredFormatter:
    def test_json_line_with_extras(self):
        record = make_record(region="seat1", correlation_id="x1")
        entry = json.loads(StructuredFormatter().format(record))
        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["correlation_id"] == "x1"
        assert entry["extra"] == {"region": "seat1"}


class TestLoggingManager:
    """Test suite for LoggingManager."""

    @pytest.fixture
    def manager(self):
        manager = LoggingManager()
        yield manager
        manager.shutdown()

    def test_file_logging(self, manager, temp_dir):
        manager.configure(log_level="DEBUG", log_dir=temp_dir, enable_file_logging=True,
                          enable_console_logging=False, structured_logging=True)
        logging.getLogger("tablereader.core").debug("written")
        for handler in logging.getLogger("tablereader").handlers:
            handler.flush()

        lines = (temp_dir / "table-reader.log").read_text(encoding="utf-8").splitlines()
        messages = [json.loads(line)["message"] for line in lines]
        assert "written" in messages

    def test_configure_is_idempotent(self, manager):
        manager.configure(enable_console_logging=True)
        count = len(logging.getLogger("tablereader").handlers)
        manager.configure(enable_console_logging=True)
        assert len(logging.getLogger("tablereader").handlers) == count
        assert manager.configured

    def test_shutdown_removes_handlers(self, manager):
        before = len(logging.getLogger("tablereader").handlers)
        manager.configure(enable_console_logging=True)
        manager.shutdown()
        assert len(logging.getLogger("tablereader").handlers) == before
        assert not manager.configured


def test_module_level_helpers(temp_dir):
    try:
        configure_logging(enable_console_logging=False, enable_file_logging=True, log_dir=temp_dir)
        assert logging_manager.configured
        assert get_logger("tablereader.x").name == "tablereader.x"
        corr_id = set_correlation_id()
        assert get_correlation_id() == corr_id
        logging_manager.clear_correlation_id()
        assert get_correlation_id() is None
    finally:
        logging_manager.shutdown()
