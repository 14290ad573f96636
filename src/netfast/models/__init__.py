"""
Data models for the netfast package.
"""

from .config import AgentSettings, AppConfig, MonitoringConfig, SponsorSettings
from .dns import AppliedResult, DNSObservation, FilterProfile, RemovedResult
from .escalation import (
    MAX_VIOLATIONS,
    EscalationPhase,
    EscalationState,
    EscalationTransition,
    TransitionKind,
    ViolationEvent,
    WarningChoice,
)

__all__ = [
    # Configuration
    "AgentSettings",
    "AppConfig",
    "MonitoringConfig",
    "SponsorSettings",
    # DNS
    "AppliedResult",
    "DNSObservation",
    "FilterProfile",
    "RemovedResult",
    # Escalation
    "MAX_VIOLATIONS",
    "EscalationPhase",
    "EscalationState",
    "EscalationTransition",
    "TransitionKind",
    "ViolationEvent",
    "WarningChoice",
]
