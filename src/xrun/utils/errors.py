"""Error types and error handling utilities for xrun.

Provides:
- The exception hierarchy raised by the filter engine, the run
  coordinator and the report writers
- Consistent CLI error formatting with suggestions
- Hidden stack traces (unless debug mode)
"""

from __future__ import annotations

import os
import sys
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rich.console import Console

# Debug mode enabled by XRUN_DEBUG=1 or --debug flag
_debug_mode = os.environ.get("XRUN_DEBUG", "0") == "1"


class XRunError(Exception):
    """Base class for all xrun errors."""


class InvalidArgumentError(XRunError, ValueError):
    """A required argument was missing or empty.

    Raised synchronously while building filters, never during a run.
    """

    def __init__(self, message: str, argument: str | None = None) -> None:
        self.argument = argument
        if argument:
            message = f"{message} ({argument})"
        super().__init__(message)


class AssemblyExecutionError(XRunError):
    """Discovery or execution of one assembly failed."""

    def __init__(self, assembly_path: str, cause: BaseException) -> None:
        self.assembly_path = assembly_path
        self.cause = cause
        super().__init__(f"Failed to run assembly '{assembly_path}': {cause}")


class ReportTransformError(XRunError):
    """A results tree could not be transformed into the requested dialect."""

    def __init__(self, jargon: str, message: str) -> None:
        self.jargon = jargon
        super().__init__(f"Cannot produce '{jargon}' report: {message}")


class ErrorCategory(str, Enum):
    """Categories of errors for consistent formatting."""

    CONFIG = "config"  # Configuration errors
    FILTER = "filter"  # Invalid filter rules
    ASSEMBLY = "assembly"  # Assembly loading/execution errors
    REPORT = "report"  # Report transform/writing errors
    FILE = "file"  # File not found, permission errors
    INTERNAL = "internal"  # Internal/unexpected errors


SUGGESTIONS = {
    ErrorCategory.CONFIG: "Run 'xrun config show' to view current configuration",
    ErrorCategory.FILTER: "Filter rules look like 'trait:Category=Slow' or '!class:My.Tests.FooTests'",
    ErrorCategory.ASSEMBLY: "Run 'xrun list <assembly>' to check that tests can be discovered",
    ErrorCategory.REPORT: "Use --jargon xunit to write the native report",
}


@dataclass
class ErrorInfo:
    """Structured error information for consistent display."""

    message: str
    category: ErrorCategory
    suggestion: str | None = None
    details: str | None = None
    original_error: Exception | None = None

    def __post_init__(self) -> None:
        if self.suggestion is None and self.category in SUGGESTIONS:
            self.suggestion = SUGGESTIONS[self.category]


def set_debug_mode(enabled: bool) -> None:
    """Enable or disable debug mode for verbose error output."""
    global _debug_mode
    _debug_mode = enabled


def is_debug_mode() -> bool:
    """Check if debug mode is enabled."""
    return _debug_mode


def format_error(error: ErrorInfo, console: Console) -> None:
    """Format and display an error with consistent styling.

    Args:
        error: Structured error information
        console: Rich console for output
    """
    console.print(f"[bold red]Error:[/bold red] {error.message}")

    if error.details:
        if _debug_mode or len(error.details) < 200:
            console.print(f"[dim]{error.details}[/dim]")

    if error.suggestion:
        console.print()
        console.print(f"[yellow]Suggestion:[/yellow] {error.suggestion}")

    if _debug_mode and error.original_error:
        console.print()
        console.print("[dim]Stack trace (debug mode):[/dim]")
        tb_lines = traceback.format_exception(
            type(error.original_error),
            error.original_error,
            error.original_error.__traceback__,
        )
        for line in tb_lines:
            console.print(f"[dim]{line.rstrip()}[/dim]")

    if not _debug_mode and error.original_error:
        console.print()
        console.print("[dim]Set XRUN_DEBUG=1 or use --debug for more details[/dim]")


def classify_exception(exception: Exception, context: str = "operation") -> ErrorInfo:
    """Classify an exception into an ErrorInfo.

    Args:
        exception: The exception to classify
        context: Description of what was being done

    Returns:
        ErrorInfo with appropriate categorization
    """
    if isinstance(exception, InvalidArgumentError):
        return ErrorInfo(
            message=f"Invalid filter: {exception}",
            category=ErrorCategory.FILTER,
            original_error=exception,
        )

    if isinstance(exception, AssemblyExecutionError):
        return ErrorInfo(
            message=str(exception),
            category=ErrorCategory.ASSEMBLY,
            original_error=exception,
        )

    if isinstance(exception, ReportTransformError):
        return ErrorInfo(
            message=str(exception),
            category=ErrorCategory.REPORT,
            original_error=exception,
        )

    if isinstance(exception, FileNotFoundError):
        path = exception.filename or str(exception)
        return ErrorInfo(
            message=f"{context.capitalize()} not found: {path}",
            category=ErrorCategory.FILE,
            suggestion="Check the path and ensure the file exists",
            original_error=exception,
        )

    if isinstance(exception, PermissionError):
        return ErrorInfo(
            message=f"Permission denied: {exception}",
            category=ErrorCategory.FILE,
            suggestion="Check file permissions or run with appropriate access",
            original_error=exception,
        )

    error_str = str(exception).lower()
    if any(word in error_str for word in ["config", "toml"]):
        return ErrorInfo(
            message=f"Configuration error: {exception}",
            category=ErrorCategory.CONFIG,
            original_error=exception,
        )

    return ErrorInfo(
        message=f"Internal error: {context}: {exception}",
        category=ErrorCategory.INTERNAL,
        suggestion="This may be a bug. Run again with --debug and report the trace",
        original_error=exception,
    )


def handle_exception(
    console: Console,
    exception: Exception,
    context: str = "operation",
    exit_code: int = 1,
    exit_on_error: bool = True,
) -> ErrorInfo:
    """Handle an exception and display a formatted error.

    Args:
        console: Rich console for output
        exception: The exception to handle
        context: Description of what was being done
        exit_code: Exit code to use if exit_on_error is True
        exit_on_error: Whether to exit after displaying the error

    Returns:
        ErrorInfo for the error (useful if not exiting)
    """
    error = classify_exception(exception, context)
    format_error(error, console)

    if exit_on_error:
        sys.exit(exit_code)

    return error
