"""
Validation functions for configuration values and profile data.
"""

import ipaddress
import re
from typing import Any, List, Optional

from .exceptions import ValidationError


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is a positive integer.

    Fractional numbers are rejected rather than truncated.

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, (bool, float)):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a positive float.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated float value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_boolean(value: Any, field_name: str = "value") -> bool:
    """Validate that a value is a real boolean (TOML true/false)."""
    if not isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be true or false, got {value!r}",
            field_name=field_name,
            value=value
        )
    return value


def validate_profile_name(name: Any, field_name: str = "profile_name") -> str:
    """
    Validate a filter profile name format.

    Only the format is checked here; membership in the built-in table is
    checked by the profile registry.
    """
    if not name or not isinstance(name, str):
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=name
        )
    if not re.match(r'^[a-zA-Z0-9_-]+$', name):
        raise ValidationError(
            f"{field_name} must contain only alphanumeric characters, underscores, and hyphens: {name}",
            field_name=field_name,
            value=name
        )
    return name


def validate_ip_address(address: Any, field_name: str = "address") -> str:
    """Validate an IPv4 or IPv6 address string."""
    try:
        return str(ipaddress.ip_address(str(address).strip()))
    except ValueError:
        raise ValidationError(
            f"{field_name} must be a valid IP address, got {address!r}",
            field_name=field_name,
            value=address
        )


def validate_email(value: Any, field_name: str = "email") -> str:
    """Loose email check; delivery is owned by the sponsor service."""
    if not isinstance(value, str) or not re.match(r'^[^@\s]+@[^@\s]+\.[^@\s]+$', value):
        raise ValidationError(
            f"{field_name} must be an email address, got {value!r}",
            field_name=field_name,
            value=value
        )
    return value


def validate_enum_choice(
    value: Any,
    choices: List[str],
    field_name: str = "value",
    case_sensitive: bool = True
) -> str:
    """
    Validate that a value is one of the allowed choices.

    Args:
        value: Value to validate
        choices: List of allowed choices
        field_name: Name of the field being validated
        case_sensitive: Whether the comparison should be case-sensitive

    Returns:
        Validated choice, in the spelling used by ``choices``

    Raises:
        ValidationError: If value is not in choices
    """
    str_value = str(value)

    if case_sensitive:
        if str_value not in choices:
            raise ValidationError(
                f"{field_name} must be one of {choices}, got {value}",
                field_name=field_name,
                value=value
            )
        return str_value

    lower_choices = [choice.lower() for choice in choices]
    lower_value = str_value.lower()
    if lower_value not in lower_choices:
        raise ValidationError(
            f"{field_name} must be one of {choices}, got {value}",
            field_name=field_name,
            value=value
        )
    return choices[lower_choices.index(lower_value)]
