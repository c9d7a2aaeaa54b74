"""
Utility modules for fprint-verify.
"""

from .error_handling import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    determine_severity,
    handle_error,
)

__all__ = [
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorContext',
    'determine_severity',
    'handle_error',
]
