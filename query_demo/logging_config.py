"""
Logging configuration for the Query Demo system.

This module provides structured logging with performance metrics, contextual
information, and configurable output formats.
"""

import logging
import logging.handlers
import json
import sys
import time
from datetime import datetime
from typing import Optional
from pathlib import Path
import psutil
import os

from .config import LoggingConfig


_RESERVED_RECORD_FIELDS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'exc_info', 'exc_text', 'stack_info',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'message',
    'taskName',
}

_PERFORMANCE_FIELDS = {
    'cpu_percent', 'memory_mb', 'uptime_seconds', 'process_id',
    'thread_id', 'iso_timestamp',
}


class PerformanceFilter(logging.Filter):
    """Filter to add performance metrics to log records."""

    def __init__(self):
        super().__init__()
        self.process = psutil.Process()
        self.start_time = time.time()

    def filter(self, record):
        """Add performance metrics to the log record."""
        try:
            record.cpu_percent = self.process.cpu_percent()
            record.memory_mb = self.process.memory_info().rss / 1024 / 1024
            record.uptime_seconds = time.time() - self.start_time
            record.process_id = os.getpid()
            record.thread_id = record.thread
            record.iso_timestamp = datetime.fromtimestamp(record.created).isoformat()
        except psutil.Error:
            # Metrics are best effort; the record itself still goes out
            pass

        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_performance=True):
        super().__init__()
        self.include_performance = include_performance

    def format(self, record):
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_FIELDS and key not in _PERFORMANCE_FIELDS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        if self.include_performance and hasattr(record, 'cpu_percent'):
            log_entry["performance"] = {
                "cpu_percent": getattr(record, 'cpu_percent', 0),
                "memory_mb": getattr(record, 'memory_mb', 0),
                "uptime_seconds": getattr(record, 'uptime_seconds', 0),
                "process_id": getattr(record, 'process_id', 0),
                "thread_id": getattr(record, 'thread_id', 0)
            }

        return json.dumps(log_entry, default=str)


class ContextualFormatter(logging.Formatter):
    """Human-readable formatter with contextual information."""

    def __init__(self, include_performance=True):
        super().__init__()
        self.include_performance = include_performance

        format_str = (
            "%(iso_timestamp)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d - %(message)s"
        )

        if include_performance:
            format_str += " [CPU: %(cpu_percent).1f%% MEM: %(memory_mb).1fMB]"

        self._formatter = logging.Formatter(format_str)

    def format(self, record):
        """Format log record with contextual information."""
        if not hasattr(record, 'iso_timestamp'):
            record.iso_timestamp = datetime.fromtimestamp(record.created).isoformat()
        if not hasattr(record, 'cpu_percent'):
            record.cpu_percent = 0.0
        if not hasattr(record, 'memory_mb'):
            record.memory_mb = 0.0

        return self._formatter.format(record)


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format.lower() == 'json' and config.structured:
        return JSONFormatter(include_performance=True)
    return ContextualFormatter(include_performance=True)


def setup_logging(config: LoggingConfig) -> None:
    """
    Set up logging for the CLI and the API server.

    Args:
        config: Logging configuration object
    """
    level = getattr(logging, config.level.upper())

    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    perf_filter = PerformanceFilter()

    # Log records go to stderr; stdout carries command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.addFilter(perf_filter)
    console_handler.setFormatter(_build_formatter(config))
    root_logger.addHandler(console_handler)

    if config.log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.log_file,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.addFilter(perf_filter)
        file_handler.setFormatter(_build_formatter(config))
        root_logger.addHandler(file_handler)

    _configure_library_loggers()

    logger = logging.getLogger(__name__)
    logger.info(
        "Logging system initialized",
        extra={
            "log_level": config.level,
            "log_format": config.format,
            "structured": config.structured,
            "file_logging": bool(config.log_file),
        }
    )


def _configure_library_loggers():
    """Configure logging levels for third-party libraries."""
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('uvicorn').setLevel(logging.INFO)
    logging.getLogger('fastapi').setLevel(logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def log_performance_metrics(logger: logging.Logger, operation: str, duration: float, **kwargs):
    """
    Log performance metrics for an operation.

    Args:
        logger: Logger instance
        operation: Operation name
        duration: Operation duration in seconds
        **kwargs: Additional metrics to log
    """
    logger.info(
        f"Performance: {operation} completed",
        extra={
            "operation": operation,
            "duration_seconds": duration,
            "duration_ms": duration * 1000,
            **kwargs
        }
    )


def log_export_operation(logger: logging.Logger, export_filename: str, row_count: int,
                         column_count: int, byte_count: Optional[int] = None,
                         error: Optional[str] = None, **kwargs):
    """
    Log a CSV export.

    Args:
        logger: Logger instance
        export_filename: Name the download is delivered under
        row_count: Number of data rows written
        column_count: Number of columns in the header
        byte_count: Size of the encoded payload
        error: Error message if the export failed
        **kwargs: Additional context
    """
    level = logging.ERROR if error else logging.INFO

    extra_data = {
        "export_filename": export_filename,
        "row_count": row_count,
        "column_count": column_count,
        **kwargs
    }
    if byte_count is not None:
        extra_data["byte_count"] = byte_count
    if error:
        extra_data["error"] = error

    message = f"CSV export {export_filename}"
    if error:
        message += f" failed: {error}"
    else:
        message += f" wrote {row_count} rows"

    logger.log(level, message, extra=extra_data)


def log_error_with_context(logger: logging.Logger, error: Exception,
                           operation: str, **context):
    """
    Log error with full context information.

    Args:
        logger: Logger instance
        error: Exception that occurred
        operation: Operation that failed
        **context: Additional context information
    """
    logger.error(
        f"Error in {operation}: {str(error)}",
        exc_info=True,
        extra={
            "operation": operation,
            "error_type": type(error).__name__,
            "error_message": str(error),
            **context
        }
    )
