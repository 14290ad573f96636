"""
Exception types and error handling helpers.

This module holds the error taxonomy shared by the command executor and the
DNS filter controller, the single classifier that maps raw command failure
text onto that taxonomy, and the logging helpers used at every call site.
"""

import logging
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorKind(Enum):
    """Classification of a failed platform operation."""
    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission_denied"
    EXECUTION_FAILED = "execution_failed"
    UNKNOWN_PROFILE = "unknown_profile"


class ValidationError(Exception):
    """
    Exception raised when validation fails.

    Used for configuration values and for the built-in profile table.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class DNSFilterError(Exception):
    """Base class for failures surfaced by the DNS filter controller."""

    kind: ErrorKind = ErrorKind.EXECUTION_FAILED

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message)
        self.command = command


class UnsupportedPlatformError(DNSFilterError):
    """The current operating system has no implementation path."""

    kind = ErrorKind.UNSUPPORTED


class PermissionDeniedError(DNSFilterError):
    """The command failed because the agent is not running elevated."""

    kind = ErrorKind.PERMISSION_DENIED


class ExecutionFailedError(DNSFilterError):
    """The command ran but failed for a reason other than permissions."""

    kind = ErrorKind.EXECUTION_FAILED


class UnknownProfileError(DNSFilterError):
    """A filter name was requested that is not in the built-in table."""

    kind = ErrorKind.UNKNOWN_PROFILE


# Lowercased fragments that OS tools print when elevation is missing.
_PERMISSION_MARKERS = (
    "access denied",
    "access is denied",
    "requires elevation",
    "run as administrator",
    "cim resource",
    "operation not permitted",
    "permission denied",
    "must be run as root",
    "not authorized",
)

PERMISSION_MESSAGE = (
    "NetFast needs administrator privileges to change DNS settings. "
    "Please re-run NetFast as administrator (or with sudo)."
)
GENERIC_MESSAGE = (
    "Something went wrong while updating your protection. "
    "Please try again, or contact support if the problem persists."
)


def classify_error(raw_error: str) -> ErrorKind:
    """
    Classify raw command failure text.

    OS network tools do not report a structured permission error, so this
    falls back to matching elevation-related phrases in the output.

    Args:
        raw_error: Combined stderr/stdout text of the failed command

    Returns:
        ErrorKind.PERMISSION_DENIED if an elevation phrase is present,
        otherwise ErrorKind.EXECUTION_FAILED
    """
    text = (raw_error or "").lower()
    if any(marker in text for marker in _PERMISSION_MARKERS):
        return ErrorKind.PERMISSION_DENIED
    return ErrorKind.EXECUTION_FAILED


def error_from_output(raw_error: str, command: Optional[str] = None) -> DNSFilterError:
    """Build the typed error for a failed command's output."""
    if classify_error(raw_error) is ErrorKind.PERMISSION_DENIED:
        return PermissionDeniedError(PERMISSION_MESSAGE, command=command)
    detail = (raw_error or "").strip() or "command returned a non-zero exit status"
    return ExecutionFailedError(detail, command=command)


def user_message_for(error: BaseException) -> str:
    """Return the message shown to the user for a failed operation."""
    if isinstance(error, PermissionDeniedError):
        return PERMISSION_MESSAGE
    return GENERIC_MESSAGE


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_file_error(error: Exception, context: str, **kwargs) -> None:
    """Handle file-related errors."""
    handle_error(error, f"file {context}", **kwargs)


def handle_subprocess_error(error: Exception, command: str, **kwargs) -> None:
    """Handle subprocess-related errors."""
    handle_error(error, f"subprocess command '{command}'", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Handle CLI-related errors by logging and exiting."""
    exit_code = kwargs.pop('exit_code', 1)
    include_traceback = kwargs.pop('include_traceback', False)

    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    if include_traceback:
        severity = ErrorSeverity.CRITICAL
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)

    import sys
    sys.exit(exit_code)
