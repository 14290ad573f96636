"""
Configuration management for the netfast package.

This module provides a clean interface for loading, validating, and accessing
the agent configuration from a TOML file.
"""

# Main configuration interface
from .manager import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    set_config_path,
)

# For advanced usage - direct access to loaders and validators
from .loader import load_main_config, load_toml_file
from .validators import (
    validate_agent_settings,
    validate_app_config,
    validate_monitoring_config,
    validate_sponsor_settings,
)

__all__ = [
    # Main interface
    "get_config",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "get_config_info",
    # Advanced interface
    "load_toml_file",
    "load_main_config",
    "validate_agent_settings",
    "validate_app_config",
    "validate_monitoring_config",
    "validate_sponsor_settings",
]
