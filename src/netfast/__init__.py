"""
NetFast: local DNS-filter enforcement agent.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Input validation and error handling
- system: Command execution, network/process inspection, launch at login
- dns: Filter profiles, platform backends and the DNS filter controller
- executor: Worker pool for periodic checks
- monitoring: Integrity checks and the monitor that schedules them
- escalation: Violation warning/termination state machine
- accountability: Sponsor notifications and progress tracking
- orchestration: Agent container and UI-facing handlers
- cli: Command-line interface

Usage:
    From command line:
        netfast status
        netfast apply opendns
        netfast monitor

    Programmatically:
        from netfast import Agent, get_config
        agent = Agent.from_config(get_config())
        agent.apply_filter("opendns")
"""

# Main interfaces
from .config import get_config, clear_config_cache, set_config_path
from .orchestration import Agent
from .cli import main_cli

# Core components
from .dns import DNSFilterController, ProfileRegistry
from .escalation import EscalationStateMachine
from .monitoring import IntegrityMonitor

# Model classes for external use
from .models import (
    AppConfig,
    AgentSettings,
    MonitoringConfig,
    SponsorSettings,
    FilterProfile,
    DNSObservation,
    ViolationEvent,
    EscalationState,
)

# Validation utilities
from .validation import (
    DNSFilterError,
    PermissionDeniedError,
    ValidationError,
    user_message_for,
)

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "Agent",
    "main_cli",
    # Core components
    "DNSFilterController",
    "ProfileRegistry",
    "EscalationStateMachine",
    "IntegrityMonitor",
    # Models
    "AppConfig",
    "AgentSettings",
    "MonitoringConfig",
    "SponsorSettings",
    "FilterProfile",
    "DNSObservation",
    "ViolationEvent",
    "EscalationState",
    # Validation
    "DNSFilterError",
    "PermissionDeniedError",
    "ValidationError",
    "user_message_for",
]
