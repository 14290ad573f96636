"""
Orchestration for the netfast agent.

Components:
- Agent: Dependency container and UI-facing handlers
- SignalHandler: Graceful shutdown on SIGINT/SIGTERM
"""

from .agent import Agent
from .signal_handler import SignalHandler

__all__ = [
    "Agent",
    "SignalHandler",
]
