"""
System interaction utilities.

This module provides the pieces of the agent that talk to the operating system:

- Command execution with typed failures
- Platform detection and elevation checks
- Network interface and process inspection
- Launch-at-login registration
"""

from .autostart import set_autostart
from .commands import (
    CommandSpec,
    current_platform,
    elevation_prompt_command,
    is_elevated,
    run_command,
)
from .network import find_browser_processes, find_tunnel_interfaces, is_tunnel_interface

__all__ = [
    # Commands
    "CommandSpec",
    "current_platform",
    "elevation_prompt_command",
    "is_elevated",
    "run_command",
    # Network
    "find_browser_processes",
    "find_tunnel_interfaces",
    "is_tunnel_interface",
    # Autostart
    "set_autostart",
]
