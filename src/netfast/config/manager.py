"""
Configuration management and singleton pattern.

This module provides the main configuration loading and management interface,
caching the loaded configuration so it is read only once per process.
"""

import logging
from pathlib import Path
from typing import Optional

from ..models.config import AppConfig
from ..validation import handle_config_error, ErrorSeverity
from .loader import load_main_config
from .validators import validate_app_config

logger = logging.getLogger(__name__)

# --- Global Singleton for Configuration ---

_CONFIG: Optional[AppConfig] = None

# Default path to the configuration file, relative to this script's location.
# The CLI overrides it with `--config`.
_CONFIG_FILE_PATH = Path(__file__).parent.parent.parent.parent / "conf" / "config.toml"


def set_config_path(config_path: Path) -> None:
    """
    Set a custom configuration file path.

    Clears any cached configuration so the next `get_config()` reloads
    from the new location.

    Args:
        config_path: Path to a config.toml file
    """
    global _CONFIG_FILE_PATH, _CONFIG
    _CONFIG_FILE_PATH = Path(config_path)
    _CONFIG = None
    logger.info(f"Configuration path set to: {config_path}")


def clear_config_cache() -> None:
    """
    Clear the cached configuration, forcing a reload on next access.
    """
    global _CONFIG
    _CONFIG = None
    logger.debug("Configuration cache cleared")


def _load_config(config_path: Path) -> AppConfig:
    """
    Load and validate the application configuration.

    A missing file yields the built-in defaults.

    Raises:
        ValidationError: If configuration validation fails
        tomllib.TOMLDecodeError: If the TOML file is malformed
    """
    try:
        data = load_main_config(config_path)
        app_config = validate_app_config(data, config_path.parent)
        sponsor = app_config.sponsor.name if app_config.sponsor else "none"
        logger.info(
            f"Loaded configuration: default profile {app_config.agent.default_profile}, sponsor {sponsor}"
        )
        return app_config
    except Exception as e:
        handle_config_error(
            error=e,
            context="processing configuration",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def get_config() -> AppConfig:
    """
    Get the global application configuration, loading it if necessary.

    Returns:
        The cached AppConfig instance
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _load_config(_CONFIG_FILE_PATH)
    return _CONFIG


def is_config_loaded() -> bool:
    return _CONFIG is not None


def get_config_info() -> dict:
    """
    Get information about the current configuration state.
    """
    return {
        "config_loaded": is_config_loaded(),
        "config_path": str(_CONFIG_FILE_PATH),
        "has_sponsor": bool(_CONFIG and _CONFIG.sponsor),
    }
