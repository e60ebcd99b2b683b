"""
Error handling system for the Query Demo.

The search and CSV core have no failure modes: every input produces a
defined output. The errors here cover the environment around the core,
i.e. the host refusing to create a download or a broken configuration,
and give callers one place to classify, log and phrase a user notice.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from datetime import datetime


GENERIC_FAILURE_NOTICE = "Operation failed. Please try again."


class ErrorCategory(Enum):
    """Categories of errors that can occur in the system."""
    DOWNLOAD = "download"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Contextual information about an error."""
    operation: str
    filename: Optional[str] = None
    query: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    additional_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorInfo:
    """Complete information about an error occurrence."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    original_exception: Exception
    context: ErrorContext
    user_notice: str = GENERIC_FAILURE_NOTICE


class QueryDemoError(Exception):
    """Base exception class for Query Demo errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext(operation="unknown")
        self.original_exception = original_exception


class DownloadError(QueryDemoError):
    """The host could not create or deliver a download."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.DOWNLOAD,
            severity=ErrorSeverity.HIGH,
            context=context,
            original_exception=original_exception
        )


class ConfigurationError(QueryDemoError):
    """Errors related to system configuration."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            context=context,
            original_exception=original_exception
        )


class ErrorHandler:
    """
    Central error handler: classifies exceptions, logs them with context
    and keeps per-operation counts.
    """

    def __init__(self):
        """Initialize error handler with logger."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._error_counts = {}

    def classify_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Classify an exception.

        Args:
            exception: The exception to classify
            context: Contextual information about the error

        Returns:
            ErrorInfo with category, severity and the notice to show the user
        """
        if isinstance(exception, QueryDemoError):
            return ErrorInfo(
                category=exception.category,
                severity=exception.severity,
                message=exception.message,
                original_exception=exception,
                context=context
            )

        if isinstance(exception, OSError):
            category, severity = ErrorCategory.DOWNLOAD, ErrorSeverity.HIGH
        else:
            category, severity = ErrorCategory.UNKNOWN, ErrorSeverity.MEDIUM

        return ErrorInfo(
            category=category,
            severity=severity,
            message=str(exception),
            original_exception=exception,
            context=context
        )

    def handle_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Handle an error with appropriate logging and classification.

        Args:
            exception: The exception to handle
            context: Contextual information about the error

        Returns:
            ErrorInfo with handling details
        """
        error_info = self.classify_error(exception, context)

        error_key = f"{error_info.category.value}:{error_info.context.operation}"
        self._error_counts[error_key] = self._error_counts.get(error_key, 0) + 1

        self._log_error(error_info)

        return error_info

    def _log_error(self, error_info: ErrorInfo) -> None:
        """Log error with contextual information."""
        log_data = {
            "error_category": error_info.category.value,
            "error_severity": error_info.severity.value,
            "operation": error_info.context.operation,
            "export_filename": error_info.context.filename,
            "query": error_info.context.query,
            "error_timestamp": error_info.context.timestamp.isoformat(),
            "exception_type": type(error_info.original_exception).__name__,
            "exception_message": str(error_info.original_exception),
        }

        if error_info.context.additional_data:
            log_data.update(error_info.context.additional_data)

        if error_info.severity == ErrorSeverity.CRITICAL:
            self.logger.critical("Critical error occurred: %s", error_info.message, extra=log_data)
        elif error_info.severity == ErrorSeverity.HIGH:
            self.logger.error("High severity error: %s", error_info.message, extra=log_data)
        elif error_info.severity == ErrorSeverity.MEDIUM:
            self.logger.warning("Medium severity error: %s", error_info.message, extra=log_data)
        else:
            self.logger.info("Low severity error: %s", error_info.message, extra=log_data)

    def get_error_statistics(self) -> Dict[str, int]:
        """Get error count statistics."""
        return self._error_counts.copy()

    def reset_error_statistics(self) -> None:
        """Reset error count statistics."""
        self._error_counts.clear()


# Global error handler instance
_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler


def set_error_handler(handler: Optional[ErrorHandler]) -> None:
    """Set the global error handler instance."""
    global _error_handler
    _error_handler = handler


def handle_error(exception: Exception, context: ErrorContext) -> ErrorInfo:
    """Handle an error using the global error handler."""
    return get_error_handler().handle_error(exception, context)


def create_error_context(
    operation: str,
    filename: Optional[str] = None,
    query: Optional[str] = None,
    **additional_data
) -> ErrorContext:
    """
    Convenience function to create error context.

    Args:
        operation: Name of the operation being performed
        filename: Target export filename, if any
        query: Query text being served, if any
        **additional_data: Additional contextual data

    Returns:
        ErrorContext instance
    """
    return ErrorContext(
        operation=operation,
        filename=filename,
        query=query,
        additional_data=additional_data
    )
