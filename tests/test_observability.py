"""Tests for the observability module.

Tests for metrics collection, timing and logging configuration.
"""
import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from notetree import observability
from notetree.observability import (
    ROOT_LOGGER_NAME,
    MetricsCollector,
    configure_logging,
    timed_operation,
    traced,
)


@pytest.fixture
def clean_logger():
    """Remove handlers added to the notetree logger during a test."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    before = list(root_logger.handlers)
    level = root_logger.level
    yield root_logger
    for handler in list(root_logger.handlers):
        if handler not in before:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)


@pytest.fixture
def fresh_metrics(monkeypatch):
    """Swap the process-wide collector for an empty one."""
    collector = MetricsCollector()
    monkeypatch.setattr(observability, "metrics", collector)
    return collector


class TestMetricsCollector:
    """Tests for MetricsCollector class."""

    def test_record_success_and_error(self):
        collector = MetricsCollector()
        collector.record_operation("create_folder", 10.0, True)
        collector.record_operation("create_folder", 30.0, False, "boom")

        snapshot = collector.get_metrics()["create_folder"]
        assert snapshot["count"] == 2
        assert snapshot["success_count"] == 1
        assert snapshot["error_count"] == 1
        assert snapshot["success_rate"] == 0.5
        assert snapshot["avg_duration_ms"] == 20.0
        assert snapshot["min_duration_ms"] == 10.0
        assert snapshot["max_duration_ms"] == 30.0
        assert snapshot["last_error"] == "boom"
        assert snapshot["last_error_time"] is not None

    def test_summary(self):
        collector = MetricsCollector()
        collector.record_operation("b_op", 1.0, True)
        collector.record_operation("a_op", 1.0, False, "err")

        summary = collector.get_summary()
        assert summary["total_operations"] == 2
        assert summary["total_success"] == 1
        assert summary["total_errors"] == 1
        assert summary["overall_success_rate"] == 0.5
        assert summary["operations_tracked"] == ["a_op", "b_op"]
        assert summary["uptime_seconds"] >= 0

    def test_empty_summary(self):
        summary = MetricsCollector().get_summary()
        assert summary["total_operations"] == 0
        assert summary["overall_success_rate"] == 1.0

    def test_reset(self):
        collector = MetricsCollector()
        collector.record_operation("op", 1.0, True)
        collector.reset()
        assert collector.get_metrics() == {}

    def test_save_without_file(self):
        assert MetricsCollector().save_metrics() is False

    def test_save_and_reload(self, tmp_path):
        """Counters written to the metrics file are picked up by a new collector."""
        metrics_file = tmp_path / "metrics" / "metrics.json"
        collector = MetricsCollector(metrics_file=metrics_file)
        collector.record_operation("rename_folder", 5.0, True)
        collector.record_operation("rename_folder", 7.0, False, "collision")
        assert collector.save_metrics()

        data = json.loads(metrics_file.read_text(encoding="utf-8"))
        assert data["operations"]["rename_folder"]["count"] == 2

        reloaded = MetricsCollector(metrics_file=metrics_file)
        snapshot = reloaded.get_metrics()["rename_folder"]
        assert snapshot["count"] == 2
        assert snapshot["error_count"] == 1
        assert snapshot["min_duration_ms"] == 5.0
        assert snapshot["last_error"] == "collision"

    def test_auto_save(self, tmp_path):
        metrics_file = tmp_path / "metrics.json"
        collector = MetricsCollector(metrics_file=metrics_file, auto_save_interval=2)
        collector.record_operation("op", 1.0, True)
        assert not metrics_file.exists()
        collector.record_operation("op", 1.0, True)
        assert metrics_file.exists()

    def test_unreadable_file_ignored(self, tmp_path):
        metrics_file = tmp_path / "metrics.json"
        metrics_file.write_text("not json", encoding="utf-8")
        collector = MetricsCollector(metrics_file=metrics_file)
        assert collector.get_metrics() == {}

    def test_set_metrics_file_loads_and_saves(self, tmp_path):
        """Attaching a file to a running collector picks up its counters."""
        metrics_file = tmp_path / "metrics.json"
        earlier = MetricsCollector(metrics_file=metrics_file)
        earlier.record_operation("move_folder", 3.0, True)
        earlier.save_metrics()

        collector = MetricsCollector()
        assert collector.get_metrics_file() is None
        collector.set_metrics_file(str(metrics_file))
        assert collector.get_metrics_file() == metrics_file
        assert collector.get_metrics()["move_folder"]["count"] == 1

        collector.record_operation("move_folder", 4.0, True)
        assert collector.save_metrics()
        data = json.loads(metrics_file.read_text(encoding="utf-8"))
        assert data["operations"]["move_folder"]["count"] == 2

    def test_set_metrics_file_none_disables_saving(self, tmp_path):
        collector = MetricsCollector(metrics_file=tmp_path / "metrics.json")
        collector.set_metrics_file(None)
        collector.record_operation("op", 1.0, True)
        assert collector.save_metrics() is False
        assert not (tmp_path / "metrics.json").exists()


class TestTimedOperation:
    """Tests for timed_operation and traced."""

    def test_records_success(self, fresh_metrics):
        with timed_operation("list_children", path="/root/") as op:
            op["result_count"] = 3
        snapshot = fresh_metrics.get_metrics()["list_children"]
        assert snapshot["success_count"] == 1

    def test_records_error_and_reraises(self, fresh_metrics):
        with pytest.raises(ValueError):
            with timed_operation("open_note"):
                raise ValueError("bad path")
        snapshot = fresh_metrics.get_metrics()["open_note"]
        assert snapshot["error_count"] == 1
        assert snapshot["last_error"] == "bad path"

    def test_traced_uses_function_name(self, fresh_metrics):
        @traced()
        def walk():
            return [1, 2]

        assert walk() == [1, 2]
        assert fresh_metrics.get_metrics()["walk"]["count"] == 1

    def test_traced_explicit_name(self, fresh_metrics):
        @traced("inspect")
        def check():
            return True

        check()
        assert "inspect" in fresh_metrics.get_metrics()


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_creates_log_file(self, tmp_path, clean_logger):
        log_dir = configure_logging(tmp_path / "logs", console=False)
        assert log_dir == tmp_path / "logs"
        logging.getLogger("notetree.test").info("hello from the test")
        for handler in clean_logger.handlers:
            handler.flush()
        content = (log_dir / "notetree.log").read_text(encoding="utf-8")
        assert "hello from the test" in content
        assert observability.is_logging_configured()

    def test_reconfigure_replaces_file_handler(self, tmp_path, clean_logger):
        configure_logging(tmp_path / "first", console=False)
        configure_logging(tmp_path / "second", console=False)
        file_handlers = [
            h for h in clean_logger.handlers if isinstance(h, RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert "second" in file_handlers[0].baseFilename

    def test_level_applied(self, tmp_path, clean_logger):
        configure_logging(tmp_path, level=logging.WARNING, console=False)
        assert clean_logger.level == logging.WARNING
