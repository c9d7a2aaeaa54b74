"""
Error Handling Utilities for fprint-verify

Gives failures a consistent shape before they are reported:
1. Categories (device call, bus transport, config, audit file)
2. Severity derived from category and the failing remote method
3. One-line log message, stack trace at DEBUG

USAGE:
    from fprint_verify.utils.error_handling import handle_error, ErrorCategory

    try:
        device.open()
    except BusUnavailableError as e:
        handle_error(e, "open_device", ErrorCategory.TRANSPORT)
"""

import logging
import sys
import threading
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Where a failure came from."""
    # Remote device calls (Claim, VerifyStart, Release)
    DEVICE = "device"

    # Bus connection and signal delivery
    TRANSPORT = "transport"

    CONFIG = "configuration"

    # Audit/log files
    FILESYSTEM = "filesystem"

    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    FATAL = "fatal"

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self]


_LOG_LEVELS = {
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
    ErrorSeverity.FATAL: logging.CRITICAL,
}


@dataclass
class ErrorContext:
    """A reported failure with enough detail to diagnose it from the log."""
    error: BaseException
    category: ErrorCategory
    severity: ErrorSeverity
    operation: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    thread: str = field(default_factory=lambda: threading.current_thread().name)
    stack_trace: str = ""
    additional_context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.stack_trace and self.error.__traceback__ is not None:
            self.stack_trace = ''.join(traceback.format_exception(
                type(self.error), self.error, self.error.__traceback__))

    @property
    def remote_method(self) -> Optional[str]:
        """Device method that failed, for RemoteError"""
        return getattr(self.error, 'method', None)

    @property
    def remote_name(self) -> Optional[str]:
        """Bus error name supplied by the service, if any"""
        if self.remote_method is None:
            return None
        return getattr(self.error, 'name', None)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'error_type': type(self.error).__name__,
            'error_message': str(self.error),
            'category': self.category.value,
            'severity': self.severity.value,
            'operation': self.operation,
            'timestamp': self.timestamp,
            'thread': self.thread,
            'additional_context': self.additional_context,
            'platform': sys.platform,
        }
        if self.remote_method:
            data['remote_method'] = self.remote_method
            data['remote_name'] = self.remote_name
        return data

    def format_log_message(self) -> str:
        """
        e.g. 'release_device failed [device/critical] RemoteError: Release failed: gone (attempts=1)'
        """
        message = (f"{self.operation} failed [{self.category.value}/{self.severity.value}] "
                   f"{type(self.error).__name__}: {self.error}")
        if self.remote_name:
            message += f" <{self.remote_name}>"
        if self.additional_context:
            details = ", ".join(f"{k}={v}" for k, v in self.additional_context.items())
            message += f" ({details})"
        return message


def determine_severity(error: BaseException, category: ErrorCategory) -> ErrorSeverity:
    if isinstance(error, (SystemExit, KeyboardInterrupt)):
        return ErrorSeverity.FATAL

    # A failed release can leave the scanner claimed for other users
    if category == ErrorCategory.DEVICE and getattr(error, 'method', None) == 'Release':
        return ErrorSeverity.CRITICAL

    if category == ErrorCategory.CONFIG or isinstance(error, FileNotFoundError):
        return ErrorSeverity.WARNING

    return ErrorSeverity.ERROR


def handle_error(
    error: BaseException,
    operation: str,
    category: ErrorCategory = ErrorCategory.UNKNOWN,
    severity: Optional[ErrorSeverity] = None,
    additional_context: Optional[Dict[str, Any]] = None,
    reraise: bool = False,
) -> ErrorContext:
    """
    Log an error at a level matching its severity.

    Args:
        error: The exception to report
        operation: What was being done (e.g. 'release_device')
        category: Where the error came from
        severity: Overrides determine_severity() when given
        additional_context: Extra key/value pairs for the log line
        reraise: Re-raise the exception after logging

    Returns:
        The ErrorContext that was logged
    """
    context = ErrorContext(
        error=error,
        category=category,
        severity=severity or determine_severity(error, category),
        operation=operation,
        additional_context=additional_context or {},
    )

    logger.log(context.severity.log_level, context.format_log_message())
    if context.stack_trace:
        logger.debug(context.stack_trace)

    if reraise:
        raise error

    return context
