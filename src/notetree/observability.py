"""Logging and operation metrics for the NoteTree server.

Module loggers hang off the ``notetree`` logger hierarchy; ``configure_logging``
attaches a size-rotated log file (and optionally the console) to it.
``timed_operation`` times a block and feeds the process-wide ``metrics``.
"""
import functools
import json
import logging
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

ROOT_LOGGER_NAME = "notetree"
DEFAULT_LOG_DIR = Path.home() / ".notetree" / "logs"
LOG_FILE_NAME = "notetree.log"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar("F", bound=Callable[..., Any])

_logging_configured = False


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Attach a rotating log file to the ``notetree`` logger hierarchy.

    Calling it again replaces the file handler instead of stacking a second
    one, so the CLI and tests can reconfigure freely.

    Args:
        log_dir: Directory for log files. Defaults to ~/.notetree/logs/
        level: Logging level (default: INFO)
        max_bytes: Size at which the log file is rotated (default: 10 MB)
        backup_count: Number of rotated files to keep (default: 5)
        console: Also log to stderr (default: True)

    Returns:
        Path to the log directory
    """
    global _logging_configured

    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    for handler in list(root_logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            root_logger.removeHandler(handler)
            handler.close()

    log_file = log_path / LOG_FILE_NAME
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # stdout carries the MCP stdio transport, so the console handler uses stderr
    if console and not any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
        for h in root_logger.handlers
    ):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    _logging_configured = True
    root_logger.info(f"Logging configured: {log_file} (level {logging.getLevelName(level)})")
    return log_path


def is_logging_configured() -> bool:
    """Check if file logging has been configured."""
    return _logging_configured


@dataclass
class OperationMetrics:
    """Counters for one operation name."""
    count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: float = float("inf")
    max_duration_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "success_rate": self.success_count / self.count if self.count else 0,
            "avg_duration_ms": round(self.total_duration_ms / self.count, 2) if self.count else 0,
            "min_duration_ms": round(self.min_duration_ms, 2) if self.count else 0,
            "max_duration_ms": round(self.max_duration_ms, 2),
            "last_error": self.last_error,
            "last_error_time": (
                self.last_error_time.isoformat() if self.last_error_time else None
            ),
        }


class MetricsCollector:
    """Thread-safe per-operation timing and error counters.

    With a ``metrics_file`` the counters are loaded on start and written back
    every ``auto_save_interval`` operations and on ``save_metrics()``.
    """

    def __init__(
        self,
        metrics_file: Optional[Union[str, Path]] = None,
        auto_save_interval: int = 100,
    ):
        self._metrics: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self._lock = Lock()
        self._start_time = datetime.now(timezone.utc)
        self._metrics_file = Path(metrics_file) if metrics_file else None
        self._auto_save_interval = auto_save_interval
        self._since_save = 0

        if self._metrics_file is not None:
            self._load_metrics()

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        """Record one finished operation."""
        with self._lock:
            m = self._metrics[operation]
            m.count += 1
            m.total_duration_ms += duration_ms
            m.min_duration_ms = min(m.min_duration_ms, duration_ms)
            m.max_duration_ms = max(m.max_duration_ms, duration_ms)
            if success:
                m.success_count += 1
            else:
                m.error_count += 1
                m.last_error = error
                m.last_error_time = datetime.now(timezone.utc)

            self._since_save += 1
            if (
                self._metrics_file is not None
                and self._auto_save_interval > 0
                and self._since_save >= self._auto_save_interval
            ):
                self._save_unlocked()

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of the counters of every operation."""
        with self._lock:
            return {op: m.snapshot() for op, m in self._metrics.items()}

    def get_summary(self) -> Dict[str, Any]:
        """Aggregate counters over all operations."""
        with self._lock:
            total = sum(m.count for m in self._metrics.values())
            succeeded = sum(m.success_count for m in self._metrics.values())
            return {
                "uptime_seconds": (datetime.now(timezone.utc) - self._start_time).total_seconds(),
                "total_operations": total,
                "total_success": succeeded,
                "total_errors": total - succeeded,
                "overall_success_rate": succeeded / total if total else 1.0,
                "operations_tracked": sorted(self._metrics),
            }

    def reset(self) -> None:
        """Drop all counters."""
        with self._lock:
            self._metrics.clear()
            self._start_time = datetime.now(timezone.utc)
            self._since_save = 0

    def _load_metrics(self) -> bool:
        if not self._metrics_file.exists():
            return False
        try:
            with open(self._metrics_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._start_time = datetime.fromisoformat(data["start_time"])
            for op_name, saved in data.get("operations", {}).items():
                m = self._metrics[op_name]
                m.count = saved.get("count", 0)
                m.success_count = saved.get("success_count", 0)
                m.error_count = saved.get("error_count", 0)
                m.total_duration_ms = saved.get("total_duration_ms", 0.0)
                m.min_duration_ms = saved.get("min_duration_ms") or float("inf")
                m.max_duration_ms = saved.get("max_duration_ms", 0.0)
                m.last_error = saved.get("last_error")
                if saved.get("last_error_time"):
                    m.last_error_time = datetime.fromisoformat(saved["last_error_time"])
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning(f"Ignoring unreadable metrics file {self._metrics_file}: {e}")
            return False
        logger.debug(f"Loaded metrics from {self._metrics_file}")
        return True

    def _save_unlocked(self) -> bool:
        data = {
            "start_time": self._start_time.isoformat(),
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "operations": {
                op: {
                    "count": m.count,
                    "success_count": m.success_count,
                    "error_count": m.error_count,
                    "total_duration_ms": m.total_duration_ms,
                    "min_duration_ms": m.min_duration_ms if m.count else None,
                    "max_duration_ms": m.max_duration_ms,
                    "last_error": m.last_error,
                    "last_error_time": (
                        m.last_error_time.isoformat() if m.last_error_time else None
                    ),
                }
                for op, m in self._metrics.items()
            },
        }
        try:
            self._metrics_file.parent.mkdir(parents=True, exist_ok=True)
            temp_file = self._metrics_file.with_suffix(".tmp")
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            temp_file.replace(self._metrics_file)
        except OSError as e:
            logger.error(f"Failed to save metrics to {self._metrics_file}: {e}")
            return False
        self._since_save = 0
        return True

    def set_metrics_file(self, metrics_file: Optional[Union[str, Path]]) -> None:
        """Persist to ``metrics_file`` from now on, loading the counters it holds.

        None turns persistence off.
        """
        with self._lock:
            self._metrics_file = Path(metrics_file) if metrics_file else None
            self._since_save = 0
            if self._metrics_file is not None:
                self._load_metrics()

    def get_metrics_file(self) -> Optional[Path]:
        return self._metrics_file

    def save_metrics(self) -> bool:
        """Write the counters to ``metrics_file``. False if there is none."""
        if self._metrics_file is None:
            return False
        with self._lock:
            return self._save_unlocked()


# Process-wide collector fed by timed_operation
metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context):
    """Time a block, record it in ``metrics`` and log start and end.

    Yields a dict the block may fill with result details for the end log.

    Example:
        with timed_operation("nt_list_children", path=path) as op:
            entries = service.list_children(identity, path)
            op["result_count"] = len(entries)
    """
    correlation_id = uuid.uuid4().hex[:8]
    result_info: Dict[str, Any] = {}
    context_str = ", ".join(f"{k}={v}" for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    start = time.perf_counter()
    error_msg = None
    try:
        yield result_info
    except Exception as e:
        error_msg = str(e)
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        metrics.record_operation(operation, duration_ms, error_msg is None, error_msg)
        status = "OK" if error_msg is None else f"ERROR: {error_msg}"
        result_str = ", ".join(f"{k}={v}" for k, v in result_info.items())
        logger.debug(
            f"[{correlation_id}] END {operation} ({duration_ms:.2f}ms) [{status}] {result_str}"
        )


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Decorator form of ``timed_operation``.

    Example:
        @traced("validate_tree")
        def validate_tree(self) -> bool:
            ...
    """
    def decorator(func: F) -> F:
        op_name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with timed_operation(op_name) as op:
                result = func(*args, **kwargs)
                if isinstance(result, (list, tuple, dict)):
                    op["result_count"] = len(result)
                return result

        return wrapper  # type: ignore
    return decorator
