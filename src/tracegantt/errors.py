"""tracegantt error kinds and CLI error code registry.

Provides exception types raised by the core plus structured error codes
with helpful messages and next steps for the CLI.
Each reported error has:
- Code: TG-EXXX format
- Message: Human-readable description
- Next step: Actionable command or instruction
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import sys


class ErrorCode(Enum):
    """tracegantt error codes."""

    # Configuration errors (E001-E099)
    E001 = "E001"  # Invalid configuration value
    E002 = "E002"  # Missing API URL for live mode

    # Trace errors (E100-E199)
    E100 = "E100"  # Trace payload invalid
    E101 = "E101"  # Trace is cyclic or too deep
    E102 = "E102"  # Trace fetch failed

    # Render errors (E200-E299)
    E200 = "E200"  # Drawing surface unavailable

    # File/IO errors (E300-E399)
    E300 = "E300"  # Trace file not found
    E301 = "E301"  # Cannot write file


class TraceGanttError(Exception):
    """Base class for errors raised by tracegantt."""

    code: ErrorCode = ErrorCode.E100


class InvalidTraceError(TraceGanttError):
    """The trace payload is missing or malformed."""

    code = ErrorCode.E100


class CyclicTraceError(TraceGanttError):
    """The span tree revisits an ancestor or exceeds the depth limit."""

    code = ErrorCode.E101


class TraceFetchError(TraceGanttError):
    """The trace API could not be reached or answered with an error."""

    code = ErrorCode.E102


class RenderTargetUnavailableError(TraceGanttError):
    """No usable drawing surface for a render call."""

    code = ErrorCode.E200


@dataclass
class ReportedError:
    """Structured error with code, message, and next step."""

    code: ErrorCode
    message: str
    next_step: str
    details: Optional[str] = None

    def __str__(self) -> str:
        lines = [
            f"TG-{self.code.value}: {self.message}",
        ]
        if self.details:
            lines.append(f"  Details: {self.details}")
        lines.append(f"  Next step: {self.next_step}")
        return "\n".join(lines)

    def print(self, file=None) -> None:
        """Print the error to stderr (or specified file)."""
        print(str(self), file=file or sys.stderr)


# (message_template, next_step)
ERROR_TEMPLATES: dict[ErrorCode, tuple[str, str]] = {
    ErrorCode.E001: (
        "Invalid configuration: {details}",
        "Check .env, TRACEGANTT_* variables and the options file, or run 'tracegantt show-config'"
    ),
    ErrorCode.E002: (
        "No trace API URL configured",
        "Pass --api-url or set TRACEGANTT_API_URL in .env"
    ),
    ErrorCode.E100: (
        "Trace payload is invalid: {details}",
        "Run 'tracegantt validate --trace <file>' to see schema errors"
    ),
    ErrorCode.E101: (
        "Span tree is cyclic or too deep: {details}",
        "Check parent/child links in the payload or raise TRACEGANTT_MAX_DEPTH"
    ),
    ErrorCode.E102: (
        "Trace fetch failed: {details}",
        "Check TRACEGANTT_API_URL and that the trace service is reachable"
    ),
    ErrorCode.E200: (
        "Drawing surface unavailable: {details}",
        "Check the --out path is writable"
    ),
    ErrorCode.E300: (
        "Trace file not found: {details}",
        "Check the --trace path"
    ),
    ErrorCode.E301: (
        "Cannot write file: {details}",
        "Check directory permissions"
    ),
}


def make_error(code: ErrorCode, details: Optional[str] = None) -> ReportedError:
    """Create a ReportedError from a code with optional details.

    Args:
        code: The error code
        details: Optional details to include in the message

    Returns:
        ReportedError instance ready to print
    """
    template = ERROR_TEMPLATES.get(code, ("Unknown error", "Run with --verbose"))
    message_template, next_step = template

    if details and "{details}" in message_template:
        message = message_template.format(details=details)
    elif details:
        message = f"{message_template}: {details}"
    else:
        message = message_template.replace(": {details}", "")

    return ReportedError(
        code=code,
        message=message,
        next_step=next_step,
        details=details if "{details}" not in message_template else None,
    )


def error_exit(code: ErrorCode, details: Optional[str] = None, exit_code: int = 1) -> None:
    """Print an error and exit with the specified code."""
    err = make_error(code, details)
    err.print()
    sys.exit(exit_code)


# Verbose mode flag (set by CLI)
_verbose_mode: bool = False


def set_verbose(verbose: bool) -> None:
    """Set verbose mode for error output."""
    global _verbose_mode
    _verbose_mode = verbose


def is_verbose() -> bool:
    """Check if verbose mode is enabled."""
    return _verbose_mode


def handle_exception(exc: Exception, code: Optional[ErrorCode] = None, details: Optional[str] = None) -> None:
    """Handle an exception with proper error formatting.

    In verbose mode, prints the full traceback.
    Otherwise, prints a formatted error message.

    Args:
        exc: The exception that occurred
        code: The error code to use (defaults to the exception's own code)
        details: Optional additional details
    """
    import traceback

    if code is None:
        code = getattr(exc, "code", ErrorCode.E100)
    err = make_error(code, details or str(exc))
    err.print()

    if _verbose_mode:
        print("\n--- Full Traceback ---", file=sys.stderr)
        traceback.print_exc()
