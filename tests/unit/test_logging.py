"""Unit tests for polyspec logging and observability.

This module tests the logging infrastructure, performance monitoring,
and observability hooks.
"""

import json
import logging
import pytest
from unittest.mock import patch, MagicMock

from polyspec.polyspec_logging import (
    LOG_FILE_ENV,
    LOG_LEVEL_ENV,
    setup_logging,
    JsonFormatter,
    PerformanceMonitor,
    log_performance,
    log_operation,
    ObservabilityHooks,
    log_error_with_context,
    log_parity_computed,
    log_project_extracted,
    log_spec_parsed,
    performance_monitor,
)


@pytest.fixture
def reset_polyspec_logger():
    """Close and drop handlers installed by setup_logging."""
    yield
    logger = logging.getLogger("polyspec")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


class TestJsonFormatter:
    """Test cases for JsonFormatter."""

    def test_json_formatter_basic(self):
        """Test basic JSON formatting."""
        formatter = JsonFormatter()

        logger = logging.getLogger("test")
        record = logger.makeRecord("test", logging.INFO, "polyspec.py", 10, "Test message", (), None)

        data = json.loads(formatter.format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert "module" in data
        assert "function" in data
        assert "line" in data

    def test_json_formatter_with_exception(self):
        """Test JSON formatting with exception info."""
        formatter = JsonFormatter()

        logger = logging.getLogger("test")
        try:
            raise ValueError("Test exception")
        except ValueError as error:
            exc_info = (type(error), error, error.__traceback__)
            record = logger.makeRecord("test", logging.ERROR, "polyspec.py", 10, "Test message", (), exc_info)

        data = json.loads(formatter.format(record))

        assert data["level"] == "ERROR"
        assert "exception" in data
        assert "ValueError" in data["exception"]

    def test_json_formatter_with_extra_fields(self):
        """Test JSON formatting with extra fields."""
        formatter = JsonFormatter()

        logger = logging.getLogger("test")
        record = logger.makeRecord("test", logging.INFO, "polyspec.py", 10, "Test message", (), None)
        record.extra_fields = {"spec_name": "TextUtils"}

        data = json.loads(formatter.format(record))

        assert data["spec_name"] == "TextUtils"


class TestPerformanceMonitor:
    """Test cases for PerformanceMonitor."""

    def test_record_metric(self):
        """Test recording a performance metric."""
        monitor = PerformanceMonitor()

        monitor.record_metric("parse_spec_duration", 0.5, {"status": "success"})

        metrics = monitor.get_metrics("parse_spec_duration")
        assert len(metrics["parse_spec_duration"]) == 1
        assert metrics["parse_spec_duration"][0]["value"] == 0.5
        assert metrics["parse_spec_duration"][0]["tags"]["status"] == "success"
        assert "timestamp" in metrics["parse_spec_duration"][0]

    def test_get_all_metrics_and_clear(self):
        """Test getting all metrics and clearing them."""
        monitor = PerformanceMonitor()

        monitor.record_metric("metric1", 1)
        monitor.record_metric("metric2", 2)
        monitor.record_metric("metric1", 3)

        all_metrics = monitor.get_metrics()
        assert len(all_metrics) == 2
        assert [m["value"] for m in all_metrics["metric1"]] == [1, 3]

        monitor.clear()
        assert monitor.get_metrics() == {}


class TestLogPerformance:
    """Test cases for log_performance decorator."""

    def setup_method(self):
        performance_monitor.clear()

    def test_log_performance_decorator(self):
        """Test the log_performance decorator records a success metric."""
        @log_performance("unit_operation")
        def operation():
            return "result"

        assert operation() == "result"

        metrics = performance_monitor.get_metrics("unit_operation_duration")["unit_operation_duration"]
        assert len(metrics) == 1
        assert metrics[0]["value"] >= 0
        assert metrics[0]["tags"]["status"] == "success"

    def test_log_performance_decorator_with_exception(self):
        """Test the log_performance decorator re-raises and records the error type."""
        @log_performance("unit_operation")
        def operation():
            raise ValueError("Test error")

        with pytest.raises(ValueError):
            operation()

        metrics = performance_monitor.get_metrics("unit_operation_duration")["unit_operation_duration"]
        assert metrics[0]["tags"]["status"] == "error"
        assert metrics[0]["tags"]["error_type"] == "ValueError"

    def test_parse_spec_is_timed(self):
        """Test that parsing a spec feeds the performance monitor."""
        from polyspec.parser import parse_spec

        parse_spec("# Timed\n")

        metrics = performance_monitor.get_metrics("parse_spec_duration")["parse_spec_duration"]
        assert metrics and metrics[-1]["tags"]["status"] == "success"


class TestLogOperation:
    """Test cases for log_operation context manager."""

    def test_log_operation_success(self):
        """Test successful operation logging."""
        with patch("polyspec.polyspec_logging.std_logging.getLogger") as mock_logger:
            mock_logger_instance = MagicMock()
            mock_logger.return_value = mock_logger_instance

            with log_operation("check_parity", spec="TextUtils"):
                pass

            assert mock_logger_instance.info.called
            assert mock_logger_instance.error.called is False
            fields = mock_logger_instance.info.call_args.kwargs["extra"]["extra_fields"]
            assert fields["status"] == "completed"
            assert fields["spec"] == "TextUtils"

    def test_log_operation_with_exception(self):
        """Test operation logging with exception."""
        with patch("polyspec.polyspec_logging.std_logging.getLogger") as mock_logger:
            mock_logger_instance = MagicMock()
            mock_logger.return_value = mock_logger_instance

            with pytest.raises(ValueError):
                with log_operation("check_parity"):
                    raise ValueError("Test error")

            assert mock_logger_instance.error.called
            assert "Test error" in str(mock_logger_instance.error.call_args)


class TestObservabilityHooks:
    """Test cases for ObservabilityHooks."""

    def test_register_and_trigger_hooks(self):
        """Test registering and triggering hooks."""
        hooks = ObservabilityHooks()
        received = {}

        def callback(**data):
            received.update(data)

        hooks.register_hook("spec_parsed", callback)
        hooks.trigger_hooks("spec_parsed", spec_name="TextUtils")

        assert received == {"spec_name": "TextUtils"}

    def test_log_pipeline_event_passes_timestamp(self):
        """Test that pipeline events reach hooks with a timestamp and without the event type."""
        hooks = ObservabilityHooks()
        received = {}
        hooks.register_hook("project_extracted", lambda **data: received.update(data))

        hooks.log_pipeline_event("project_extracted", project_name="demo", language="go")

        assert received["project_name"] == "demo"
        assert "timestamp" in received
        assert "event_type" not in received

    def test_hook_failure_handling(self):
        """Test that hook failures don't crash the pipeline."""
        hooks = ObservabilityHooks()

        def failing_callback(**data):
            raise ValueError("Hook failed")

        hooks.register_hook("spec_parsed", failing_callback)
        hooks.trigger_hooks("spec_parsed", spec_name="x")

    def test_clear_hooks(self):
        """Test clearing hooks for one event type."""
        hooks = ObservabilityHooks()
        hooks.register_hook("a", lambda **data: None)
        hooks.register_hook("b", lambda **data: None)

        hooks.clear_hooks("a")

        assert "a" not in hooks.hooks
        assert "b" in hooks.hooks


class TestLoggingFunctions:
    """Test cases for logging convenience functions."""

    def test_log_spec_parsed(self):
        """Test log_spec_parsed emits a spec_parsed pipeline event."""
        with patch("polyspec.polyspec_logging.observability_hooks") as mock_hooks:
            log_spec_parsed("TextUtils", functions=2)

            mock_hooks.log_pipeline_event.assert_called_once_with("spec_parsed", spec_name="TextUtils", functions=2)

    def test_log_project_extracted(self):
        """Test log_project_extracted emits a project_extracted pipeline event."""
        with patch("polyspec.polyspec_logging.observability_hooks") as mock_hooks:
            log_project_extracted("demo", "go", files=3)

            mock_hooks.log_pipeline_event.assert_called_once_with(
                "project_extracted", project_name="demo", language="go", files=3
            )

    def test_log_parity_computed(self):
        """Test log_parity_computed emits a parity_computed pipeline event."""
        with patch("polyspec.polyspec_logging.observability_hooks") as mock_hooks:
            log_parity_computed("go", 0.5, gaps=1)

            call = mock_hooks.log_pipeline_event.call_args
            assert call.args == ("parity_computed",)
            assert call.kwargs["reference_language"] == "go"
            assert call.kwargs["parity_score"] == 0.5
            assert call.kwargs["gaps"] == 1

    def test_log_error_with_context(self):
        """Test log_error_with_context function."""
        with patch("polyspec.polyspec_logging.std_logging.getLogger") as mock_logger:
            error = ValueError("Test error")
            context = {"operation": "parse_spec", "path": "spec.md"}

            log_error_with_context(error, context, extra_param="extra_value")

            assert mock_logger.return_value.error.called
            call_args = mock_logger.return_value.error.call_args
            assert "parse_spec" in call_args.args[0]
            fields = call_args.kwargs["extra"]["extra_fields"]
            assert fields["context"] == context
            assert fields["extra_param"] == "extra_value"
            assert fields["error_type"] == "ValueError"


class TestLoggingIntegration:
    """Integration tests for logging functionality."""

    def test_setup_logging(self, tmp_path, reset_polyspec_logger):
        """Test setting up logging with a JSON log file."""
        log_file = tmp_path / "polyspec.log"

        setup_logging(log_level=logging.DEBUG, log_file=log_file)
        logging.getLogger("polyspec.test").info("Test message")

        assert log_file.exists()
        content = log_file.read_text()
        assert "Test message" in content
        for line in content.strip().split("\n"):
            json.loads(line)

    def test_setup_logging_reads_environment(self, tmp_path, monkeypatch, reset_polyspec_logger):
        """Test that level and log file default to the environment variables."""
        log_file = tmp_path / "env.log"
        monkeypatch.setenv(LOG_LEVEL_ENV, "warning")
        monkeypatch.setenv(LOG_FILE_ENV, str(log_file))

        setup_logging()

        assert logging.getLogger("polyspec").level == logging.WARNING
        assert any(isinstance(h, logging.FileHandler) for h in logging.getLogger("polyspec").handlers)

    def test_end_to_end_logging_flow(self, tmp_path, reset_polyspec_logger):
        """Test that pipeline events and metrics reach the JSON log."""
        log_file = tmp_path / "flow.log"
        setup_logging(log_level=logging.DEBUG, log_file=log_file)

        log_spec_parsed("FlowSpec", functions=1)
        performance_monitor.record_metric("flow_metric", 42)

        content = log_file.read_text()
        assert "Pipeline event: spec_parsed" in content
        assert "FlowSpec" in content
        assert "Metric recorded: flow_metric=42" in content
