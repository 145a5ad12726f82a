"""
Structured logging for userstore.

Log lines go to stderr (and optionally a daily file) so command output on
stdout stays machine-readable. The logger also counts store operations and
their failures for the CLI's --metrics summary.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json

LINE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
FILE_LINE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class StructuredLogger:
    """
    Wraps a stdlib logger, appending keyword context as JSON and keeping
    per-operation call and failure counts.
    """

    def __init__(
        self,
        name: str = "userstore",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = False,
        enable_console: bool = True,
    ):
        """
        Args:
            name: Logger name
            level: Console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Where the daily log file goes (default: logs/)
            enable_file: Also write every record, DEBUG included, to a file
            enable_console: Write records at `level` and above to stderr
        """
        self.logger = logging.getLogger(name)
        self.logger.handlers.clear()

        self.metrics = {
            "operations": 0,
            "failures": 0,
            "operations_by_name": {},
            "failures_by_name": {},
            "errors_by_type": {},
        }

        if enable_console:
            console = logging.StreamHandler(sys.stderr)
            console.setFormatter(logging.Formatter(fmt=LINE_FORMAT, datefmt=DATE_FORMAT))
            self.logger.addHandler(console)

        if enable_file:
            log_dir = log_dir or Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / f"userstore_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(fmt=FILE_LINE_FORMAT, datefmt=DATE_FORMAT))
            self.logger.addHandler(file_handler)

        self.set_level(level)

    def set_level(self, level: str):
        """Change the logger level; the file handler keeps logging DEBUG."""
        numeric = getattr(logging, level.upper())
        self.logger.setLevel(logging.DEBUG if self._has_file_handler() else numeric)
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(numeric)

    def _has_file_handler(self) -> bool:
        return any(isinstance(h, logging.FileHandler) for h in self.logger.handlers)

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def error(self, message: str, **context):
        self._log(logging.ERROR, message, context)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metrics

    @staticmethod
    def _bump(counts: dict, key: str):
        counts[key] = counts.get(key, 0) + 1

    def record_operation(self, operation: str):
        """Count a store operation about to be issued."""
        self.metrics["operations"] += 1
        self._bump(self.metrics["operations_by_name"], operation)

    def record_failure(self, operation: str, error_type: str):
        """Count a failed operation, by name and by exception type."""
        self.metrics["failures"] += 1
        self._bump(self.metrics["failures_by_name"], operation)
        self._bump(self.metrics["errors_by_type"], error_type)

    def get_metrics(self) -> dict:
        metrics = dict(self.metrics)
        total = metrics["operations"]
        metrics["failure_rate"] = round(metrics["failures"] / total, 3) if total else 0
        return metrics

    def log_metrics_summary(self):
        metrics = self.get_metrics()

        self.info("=== Store Session Metrics ===")
        self.info(f"Operations: {metrics['operations']} ({metrics['failures']} failed)")
        for operation, count in metrics["operations_by_name"].items():
            failed = metrics["failures_by_name"].get(operation, 0)
            self.info(f"  {operation}: {count} ({failed} failed)")
        for error_type, count in metrics["errors_by_type"].items():
            self.info(f"  {error_type}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(name: str = "userstore", level: str = "INFO", **kwargs) -> StructuredLogger:
    """Return the process-wide logger, creating it on first use."""
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Forget the process-wide logger (used by tests)."""
    global _global_logger
    _global_logger = None
