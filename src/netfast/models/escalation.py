"""
Escalation data models.

Violation events flow from the integrity monitor into the escalation state
machine, which publishes transitions to whoever renders them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

MAX_VIOLATIONS = 2  # one warning, then termination


class EscalationPhase(Enum):
    CLEAN = "clean"
    WARNED = "warned"
    TERMINATED = "terminated"


class TransitionKind(Enum):
    WARNING = "warning"
    TERMINATION = "termination"
    RESTORED = "restored"
    # A violation that arrived after termination was already decided.
    IGNORED = "ignored"


class WarningChoice(Enum):
    ACKNOWLEDGE = "acknowledge"
    RESTORE = "restore"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ViolationEvent:
    """A detected tampering attempt."""

    reason: str
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {"reason": self.reason, "timestamp": self.timestamp.isoformat()}


@dataclass
class EscalationState:
    """
    Bounded violation counter.
    """

    violation_count: int = 0
    max_violations: int = MAX_VIOLATIONS
    phase: EscalationPhase = EscalationPhase.CLEAN

    @property
    def remaining_warnings(self) -> int:
        return max(0, self.max_violations - self.violation_count)

    def snapshot(self) -> "EscalationState":
        return EscalationState(self.violation_count, self.max_violations, self.phase)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "violationCount": self.violation_count,
            "maxViolations": self.max_violations,
            "remainingWarnings": self.remaining_warnings,
            "phase": self.phase.value,
        }


@dataclass(frozen=True)
class EscalationTransition:
    """Message published to subscribers after each escalation decision."""

    kind: TransitionKind
    event: ViolationEvent
    # Copy of the state right after the transition was decided.
    state: EscalationState
    title: str = ""
    message: str = ""
