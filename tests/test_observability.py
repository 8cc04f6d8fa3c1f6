"""Tests for the observability module.

Tests for metrics collection, logging configuration, and error sanitization.
"""
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from noteboard.observability import (
    MetricsCollector,
    _sanitize_error_message,
    configure_logging,
    timed_operation,
)


class TestErrorMessageSanitization:
    """Tests for error message sanitization."""

    def test_sanitize_none_returns_none(self):
        """Sanitizing None should return None."""
        assert _sanitize_error_message(None) is None

    def test_sanitize_removes_home_directory(self):
        """Home directory paths should be replaced with ~."""
        home = str(Path.home())
        result = _sanitize_error_message(f"{home}/data/noteboard.db: locked")
        assert home not in result
        assert "~/data/noteboard.db" in result

    def test_sanitize_removes_newlines(self):
        """Newlines should be replaced with spaces."""
        assert _sanitize_error_message("Line 1\nLine 2\rLine 3") == "Line 1 Line 2 Line 3"

    def test_sanitize_truncates_long_messages(self):
        """Long messages should be truncated with ellipsis."""
        result = _sanitize_error_message("a" * 300)
        assert len(result) == 200
        assert result.endswith("...")


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    @pytest.fixture
    def metrics_collector(self):
        return MetricsCollector()

    def test_record_operations(self, metrics_collector):
        """Successes and failures are aggregated per operation."""
        metrics_collector.record_operation("commit_move", 10.0, True)
        metrics_collector.record_operation("commit_move", 30.0, False, "update failed")

        m = metrics_collector.get_metrics()["commit_move"]
        assert m["count"] == 2
        assert m["success_count"] == 1
        assert m["error_count"] == 1
        assert m["avg_duration_ms"] == 20.0
        assert m["last_error"] == "update failed"

    def test_counters(self, metrics_collector):
        """Event counters appear in the summary."""
        metrics_collector.increment("conflict_drop")
        metrics_collector.increment("conflict_drop", 2)
        assert metrics_collector.get_counter("conflict_drop") == 3
        assert metrics_collector.get_counter("unknown") == 0
        assert metrics_collector.get_summary()["counters"] == {"conflict_drop": 3}

    def test_summary_without_operations(self, metrics_collector):
        """An idle collector reports full health."""
        summary = metrics_collector.get_summary()
        assert summary["total_operations"] == 0
        assert summary["overall_success_rate"] == 1.0

    def test_reset(self, metrics_collector):
        """Reset clears operations and counters."""
        metrics_collector.record_operation("create_note", 1.0, True)
        metrics_collector.increment("degraded_placement")
        metrics_collector.reset()
        assert metrics_collector.get_metrics() == {}
        assert metrics_collector.get_counter("degraded_placement") == 0


class TestTimedOperation:
    """Tests for timed_operation context manager."""

    def test_timed_operation_records_success(self):
        """Successful operations are timed and recorded."""
        collector = MetricsCollector()
        with patch("noteboard.observability.metrics", collector):
            with timed_operation("create_note") as op:
                op["note_id"] = "n1"

        assert collector.get_metrics()["create_note"]["success_count"] == 1

    def test_timed_operation_records_failure(self):
        """Failed operations are recorded and the error propagates."""
        collector = MetricsCollector()
        with patch("noteboard.observability.metrics", collector):
            with pytest.raises(ValueError):
                with timed_operation("create_note"):
                    raise ValueError("Test error")

        m = collector.get_metrics()["create_note"]
        assert m["error_count"] == 1
        assert "Test error" in m["last_error"]


class TestConfigureLogging:
    """Tests for configure_logging function."""

    @pytest.fixture(autouse=True)
    def _restore_handlers(self):
        logger = logging.getLogger("noteboard")
        handlers, level = list(logger.handlers), logger.level
        yield
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers = handlers
        logger.setLevel(level)

    def test_configure_logging_creates_directory(self, tmp_path):
        """configure_logging creates the log directory and returns it."""
        log_dir = tmp_path / "logs"
        result = configure_logging(log_dir=log_dir, console=False)
        assert result == log_dir
        assert log_dir.is_dir()

    def test_configure_logging_sets_level(self, tmp_path):
        """configure_logging sets the level on the package logger."""
        configure_logging(log_dir=tmp_path, level=logging.DEBUG, console=False)
        assert logging.getLogger("noteboard").level == logging.DEBUG

    def test_module_loggers_write_to_file(self, tmp_path):
        """Module loggers inherit the rotating file handler."""
        configure_logging(log_dir=tmp_path, console=False)
        logging.getLogger("noteboard.sync.reconciliation").info("hello from the board")
        for handler in logging.getLogger("noteboard").handlers:
            handler.flush()
        assert "hello from the board" in (tmp_path / "noteboard.log").read_text()
