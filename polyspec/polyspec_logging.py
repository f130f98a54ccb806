"""Logging and observability utilities for polyspec.

Console output goes to stderr (stdout carries the MCP stdio transport); an
optional JSON-lines file receives everything at DEBUG. Parsing, extraction
and parity runs are timed into ``performance_monitor`` and announced as
pipeline events that ``observability_hooks`` callbacks can subscribe to.
"""

from __future__ import annotations

import json
import os
import time
import logging as std_logging
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

LOG_LEVEL_ENV = "POLYSPEC_LOG_LEVEL"
LOG_FILE_ENV = "POLYSPEC_LOG_FILE"

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def setup_logging(log_level: Union[str, int, None] = None, log_file: Optional[Path] = None) -> None:
    """Configure the ``polyspec`` logger tree.

    Omitted arguments fall back to ``POLYSPEC_LOG_LEVEL`` (default INFO) and
    ``POLYSPEC_LOG_FILE``. Calling this again replaces earlier handlers.
    """
    level = log_level if log_level is not None else os.getenv(LOG_LEVEL_ENV, "INFO").upper()
    if log_file is None and os.getenv(LOG_FILE_ENV):
        log_file = Path(os.environ[LOG_FILE_ENV]).expanduser()

    root = std_logging.getLogger("polyspec")
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = std_logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(std_logging.Formatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(console)

    if log_file:
        json_file = std_logging.FileHandler(log_file, encoding="utf-8")
        json_file.setLevel(std_logging.DEBUG)
        json_file.setFormatter(JsonFormatter())
        root.addHandler(json_file)

    root.info("polyspec logging initialized", extra={"extra_fields": {"log_file": str(log_file or "")}})


class JsonFormatter(std_logging.Formatter):
    """One JSON object per record; ``extra_fields`` are merged in at top level."""

    def format(self, record: std_logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(getattr(record, "extra_fields", {}))
        return json.dumps(entry, default=str)


class PerformanceMonitor:
    """In-memory store of named metric samples."""

    def __init__(self):
        self.metrics: Dict[str, List[Dict[str, Any]]] = {}

    def record_metric(self, name: str, value: Any, tags: Optional[Dict[str, str]] = None) -> None:
        sample = {"timestamp": _utcnow(), "name": name, "value": value, "tags": dict(tags or {})}
        self.metrics.setdefault(name, []).append(sample)
        std_logging.getLogger("polyspec.performance").debug(
            f"Metric recorded: {name}={value}", extra={"extra_fields": sample}
        )

    def get_metrics(self, name: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        """Samples for one metric, or a shallow copy of all of them."""
        if name:
            return {name: self.metrics.get(name, [])}
        return dict(self.metrics)

    def clear(self) -> None:
        self.metrics.clear()


performance_monitor = PerformanceMonitor()


def _finish(logger: std_logging.Logger, operation_name: str, started: float, fields: Dict[str, Any],
            error: Optional[BaseException] = None) -> float:
    """Log the outcome of a timed operation and return its duration."""
    duration = time.perf_counter() - started
    fields = {"operation": operation_name, "duration": duration, **fields}
    if error is None:
        logger.info(f"{operation_name} finished in {duration:.3f}s", extra={"extra_fields": fields})
    else:
        fields.update(error_type=type(error).__name__, error_message=str(error))
        logger.error(f"{operation_name} failed after {duration:.3f}s: {error}", extra={"extra_fields": fields})
    return duration


def log_performance(operation_name: str):
    """Decorator recording ``<operation_name>_duration`` for every call, including failed ones."""
    metric = f"{operation_name}_duration"

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = std_logging.getLogger("polyspec.performance")
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                tags = {"status": "error", "error_type": type(e).__name__}
                performance_monitor.record_metric(metric, _finish(logger, operation_name, started, tags, e), tags)
                raise
            tags = {"status": "success"}
            performance_monitor.record_metric(metric, _finish(logger, operation_name, started, tags), tags)
            return result

        return wrapper
    return decorator


@contextmanager
def log_operation(operation_name: str, **extra_fields):
    """Time a block and log its outcome with ``extra_fields`` attached."""
    logger = std_logging.getLogger("polyspec.operations")
    started = time.perf_counter()
    logger.debug(f"{operation_name} started",
                 extra={"extra_fields": {"operation": operation_name, "status": "started", **extra_fields}})
    try:
        yield
    except Exception as e:
        _finish(logger, operation_name, started, {"status": "failed", **extra_fields}, e)
        raise
    _finish(logger, operation_name, started, {"status": "completed", **extra_fields})


class ObservabilityHooks:
    """Callbacks keyed by pipeline event: spec_parsed, project_extracted and parity_computed."""

    def __init__(self):
        self.hooks: Dict[str, List[Callable[..., Any]]] = {}
        self.logger = std_logging.getLogger("polyspec.observability")

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        self.hooks.setdefault(event_type, []).append(callback)
        self.logger.debug(f"Registered hook for event: {event_type}")

    def clear_hooks(self, event_type: Optional[str] = None) -> None:
        if event_type is None:
            self.hooks.clear()
        else:
            self.hooks.pop(event_type, None)

    def trigger_hooks(self, event_type: str, **data) -> None:
        """Call every hook for ``event_type``; a failing hook is logged and skipped."""
        for hook in list(self.hooks.get(event_type, [])):
            try:
                hook(**data)
            except Exception as e:
                self.logger.error(f"Hook {getattr(hook, '__name__', hook)!s} failed for {event_type}: {e}")

    def log_pipeline_event(self, event_type: str, **data) -> None:
        payload = {"timestamp": _utcnow(), **data}
        self.logger.info(f"Pipeline event: {event_type}",
                         extra={"extra_fields": {"event_type": event_type, **payload}})
        self.trigger_hooks(event_type, **payload)


observability_hooks = ObservabilityHooks()


def log_error_with_context(error: Exception, context: Dict[str, Any], **extra_fields) -> None:
    """Log ``error`` with its traceback and the calling tool's context."""
    std_logging.getLogger("polyspec.errors").error(
        f"Error in {context.get('operation', 'unknown operation')}: {error}",
        extra={"extra_fields": {
            "timestamp": _utcnow(),
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context,
            **extra_fields,
        }},
        exc_info=error,
    )


def log_spec_parsed(spec_name: str, **counts):
    observability_hooks.log_pipeline_event("spec_parsed", spec_name=spec_name, **counts)


def log_project_extracted(project_name: str, language: str, **counts):
    observability_hooks.log_pipeline_event("project_extracted", project_name=project_name, language=language,
                                           **counts)


def log_parity_computed(reference_language: str, parity_score: float, **counts):
    observability_hooks.log_pipeline_event(
        "parity_computed", reference_language=reference_language, parity_score=parity_score, **counts
    )
