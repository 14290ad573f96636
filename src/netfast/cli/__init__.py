"""
Command-line interface for the netfast package.

This module provides the main CLI entry point for the agent.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
