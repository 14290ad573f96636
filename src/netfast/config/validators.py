"""
Configuration validation utilities.

This module turns raw TOML tables into validated configuration dataclasses.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.config import (
    DEFAULT_STATE_FILE,
    AgentSettings,
    AppConfig,
    MonitoringConfig,
    SponsorSettings,
)
from ..validation import (
    ValidationError,
    validate_boolean,
    validate_email,
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
    validate_profile_name,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_MONITORING_FLAGS = {
    "auto_start_on_boot": "auto_start_on_boot",
    "background_service": "background_service",
    "usage_monitoring": "usage_monitoring",
    "screenshot_detection": "screenshot_detection",
    "proxy_vpn_detection": "proxy_vpn_detection",
    # Spelling used by the dashboard.
    "autoStartOnBoot": "auto_start_on_boot",
    "backgroundService": "background_service",
    "usageMonitoring": "usage_monitoring",
    "screenshotDetection": "screenshot_detection",
    "proxyVpnDetection": "proxy_vpn_detection",
}


def validate_agent_settings(agent_data: Dict[str, Any], config_dir: Optional[Path] = None) -> AgentSettings:
    """
    Validate the `[agent]` table.

    Args:
        agent_data: Raw agent configuration from TOML
        config_dir: Directory of the config file, for relative paths

    Returns:
        Validated AgentSettings instance

    Raises:
        ValidationError: If validation fails
    """
    default_profile = validate_profile_name(
        agent_data.get("default_profile", "opendns"),
        field_name="agent.default_profile",
    )

    state_file = Path(agent_data.get("state_file", DEFAULT_STATE_FILE)).expanduser()
    if not state_file.is_absolute() and config_dir is not None:
        state_file = config_dir / state_file

    settle_delay = validate_positive_float(
        agent_data.get("settle_delay", 2.0),
        min_value=0.0,
        max_value=30.0,
        field_name="agent.settle_delay",
    )
    command_timeout = validate_positive_float(
        agent_data.get("command_timeout", 30.0),
        min_value=1.0,
        max_value=300.0,
        field_name="agent.command_timeout",
    )
    worker_threads = validate_positive_integer(
        agent_data.get("worker_threads", 3),
        min_value=1,
        max_value=16,
        field_name="agent.worker_threads",
    )
    log_level = validate_enum_choice(
        agent_data.get("log_level", "INFO"),
        choices=LOG_LEVELS,
        field_name="agent.log_level",
        case_sensitive=False,
    )

    return AgentSettings(
        default_profile=default_profile,
        state_file=state_file,
        settle_delay=settle_delay,
        command_timeout=command_timeout,
        worker_threads=worker_threads,
        log_level=log_level,
    )


def validate_monitoring_config(
    monitoring_data: Dict[str, Any],
    base: Optional[MonitoringConfig] = None,
) -> MonitoringConfig:
    """
    Validate monitoring options on top of ``base``.

    Accepts both snake_case (TOML) and camelCase (dashboard) option names.
    Unknown keys are rejected so typos do not silently disable a check.

    Raises:
        ValidationError: If validation fails
    """
    base = base or MonitoringConfig()
    changes: Dict[str, Any] = {}

    for key, value in monitoring_data.items():
        if key in _MONITORING_FLAGS:
            changes[_MONITORING_FLAGS[key]] = validate_boolean(value, field_name=f"monitoring.{key}")
        elif key in ("dns_check_interval", "vpn_check_interval", "usage_check_interval"):
            changes[key] = validate_positive_float(
                value, min_value=1.0, max_value=3600.0, field_name=f"monitoring.{key}"
            )
        elif key == "browser_names":
            if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
                raise ValidationError(
                    "monitoring.browser_names must be a list of non-empty strings",
                    field_name="monitoring.browser_names",
                    value=value,
                )
            changes[key] = list(value)
        else:
            raise ValidationError(
                f"Unknown monitoring option: {key}",
                field_name=f"monitoring.{key}",
                value=value,
            )

    return base.with_changes(**changes)


def validate_sponsor_settings(sponsor_data: Dict[str, Any]) -> Optional[SponsorSettings]:
    """Validate the optional `[sponsor]` table; an empty table means no sponsor."""
    if not sponsor_data:
        return None

    name = sponsor_data.get("name")
    if not name or not isinstance(name, str):
        raise ValidationError("sponsor.name must be a non-empty string", field_name="sponsor.name", value=name)
    email = validate_email(sponsor_data.get("email"), field_name="sponsor.email")
    total_days = validate_positive_integer(
        sponsor_data.get("total_days", 40),
        min_value=1,
        max_value=3650,
        field_name="sponsor.total_days",
    )
    return SponsorSettings(name=name, email=email, total_days=total_days)


def validate_app_config(data: Dict[str, Any], config_dir: Optional[Path] = None) -> AppConfig:
    """Validate a whole parsed configuration file."""
    return AppConfig(
        agent=validate_agent_settings(data.get("agent", {}), config_dir),
        monitoring=validate_monitoring_config(data.get("monitoring", {})),
        sponsor=validate_sponsor_settings(data.get("sponsor", {})),
    )
