"""Utility modules for xrun."""

from .errors import (
    AssemblyExecutionError,
    ErrorCategory,
    ErrorInfo,
    InvalidArgumentError,
    ReportTransformError,
    XRunError,
    classify_exception,
    format_error,
    handle_exception,
    is_debug_mode,
    set_debug_mode,
)
from .logging import setup_logging

__all__ = [
    # Errors
    "XRunError",
    "InvalidArgumentError",
    "AssemblyExecutionError",
    "ReportTransformError",
    "ErrorCategory",
    "ErrorInfo",
    "classify_exception",
    "format_error",
    "handle_exception",
    "is_debug_mode",
    "set_debug_mode",
    # Logging
    "setup_logging",
]
