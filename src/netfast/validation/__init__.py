"""
Validation and error handling for the netfast package.

This module provides input validation, the DNS error taxonomy and
consistent error reporting across the agent.
"""

from .exceptions import (
    GENERIC_MESSAGE,
    PERMISSION_MESSAGE,
    DNSFilterError,
    ErrorKind,
    ErrorSeverity,
    ExecutionFailedError,
    PermissionDeniedError,
    UnknownProfileError,
    UnsupportedPlatformError,
    ValidationError,
    classify_error,
    error_from_output,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_file_error,
    handle_subprocess_error,
    user_message_for,
)

from .validators import (
    validate_boolean,
    validate_email,
    validate_enum_choice,
    validate_ip_address,
    validate_positive_float,
    validate_positive_integer,
    validate_profile_name,
)

__all__ = [
    # Errors
    "DNSFilterError",
    "ErrorKind",
    "ErrorSeverity",
    "ExecutionFailedError",
    "PermissionDeniedError",
    "UnknownProfileError",
    "UnsupportedPlatformError",
    "ValidationError",
    "GENERIC_MESSAGE",
    "PERMISSION_MESSAGE",
    "classify_error",
    "error_from_output",
    "user_message_for",
    # Handlers
    "handle_error",
    "handle_config_error",
    "handle_file_error",
    "handle_subprocess_error",
    "handle_cli_error",
    # Validators
    "validate_boolean",
    "validate_email",
    "validate_enum_choice",
    "validate_ip_address",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_profile_name",
]
