"""
Violation escalation for the netfast package.
"""

from .machine import EscalationStateMachine, terminate_process

__all__ = [
    "EscalationStateMachine",
    "terminate_process",
]
