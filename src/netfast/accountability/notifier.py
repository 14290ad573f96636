"""
Accountability notifier boundary.

Formats violation alerts and progress reports for the sponsor and hands them
to a delivery channel (the email service lives outside this agent). Every
call is attempted at most once; failures are logged and never reach the
enforcement path.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..models.escalation import ViolationEvent
from ..validation import ErrorSeverity, handle_error

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SponsorContact:
    name: str
    email: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "email": self.email}


@dataclass(frozen=True)
class StrengthMoment:
    moment: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, str]:
        return {"moment": self.moment, "timestamp": self.timestamp.isoformat()}


@dataclass
class ProgressSummary:
    """Snapshot of the fast, as sent in progress reports."""

    start_date: datetime
    total_days: int
    days_completed: int
    violation_count: int = 0
    last_violation: Optional[datetime] = None
    strength_moments: List[StrengthMoment] = field(default_factory=list)

    @property
    def completion_percentage(self) -> int:
        if self.total_days <= 0:
            return 0
        return round(min(self.days_completed, self.total_days) / self.total_days * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startDate": self.start_date.isoformat(),
            "daysCompleted": self.days_completed,
            "totalDays": self.total_days,
            "completionPercentage": self.completion_percentage,
            "violationCount": self.violation_count,
            "lastViolation": self.last_violation.isoformat() if self.last_violation else None,
            "strengthMoments": [moment.to_dict() for moment in self.strength_moments],
        }


class DeliveryChannel(ABC):
    """Hands a formatted payload to the external delivery service."""

    @abstractmethod
    def deliver(self, payload: Dict[str, Any]) -> None:
        pass


class LoggingDeliveryChannel(DeliveryChannel):
    """Delivery channel that only logs the payload."""

    def deliver(self, payload: Dict[str, Any]) -> None:
        logger.info(f"Sponsor notification: {json.dumps(payload, sort_keys=True)}")


class AccountabilityNotifier:
    """
    Tracks progress data and notifies the accountability sponsor.

    Args:
        sponsor: Who to notify; with no sponsor nothing is sent
        channel: Delivery collaborator
        total_days: Length of the fast, for progress reports
        start_date: When the fast started; defaults to now
        clock: Source of the current time
    """

    def __init__(
        self,
        sponsor: Optional[SponsorContact] = None,
        channel: Optional[DeliveryChannel] = None,
        total_days: int = 40,
        start_date: Optional[datetime] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.sponsor = sponsor
        self.channel = channel or LoggingDeliveryChannel()
        self.total_days = total_days
        self._clock = clock
        self.start_date = start_date or clock()

        self._lock = threading.Lock()
        self._violation_count = 0
        self._last_violation: Optional[datetime] = None
        self._strength_moments: List[StrengthMoment] = []

    def add_strength_moment(self, moment: str) -> None:
        with self._lock:
            self._strength_moments.append(StrengthMoment(moment, self._clock()))

    def progress_summary(self) -> ProgressSummary:
        with self._lock:
            days = max(0, (self._clock() - self.start_date).days)
            return ProgressSummary(
                start_date=self.start_date,
                total_days=self.total_days,
                days_completed=days,
                violation_count=self._violation_count,
                last_violation=self._last_violation,
                strength_moments=list(self._strength_moments),
            )

    def _deliver(self, payload: Dict[str, Any], context: str) -> bool:
        try:
            self.channel.deliver(payload)
            return True
        except Exception as e:
            handle_error(
                error=e,
                context=context,
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )
            return False

    def notify_violation(self, event: ViolationEvent) -> bool:
        """
        Record a violation and alert the sponsor once.

        Returns:
            True if the delivery channel accepted the alert
        """
        with self._lock:
            self._violation_count += 1
            self._last_violation = event.timestamp

        if self.sponsor is None:
            logger.debug("No sponsor configured; skipping violation alert")
            return False

        logger.info(f"Notifying sponsor {self.sponsor.name} about: {event.reason}")
        payload = {
            "type": "violation",
            "sponsorContact": self.sponsor.to_dict(),
            "violationReason": event.reason,
            "timestamp": event.timestamp.isoformat(),
        }
        return self._deliver(payload, "sponsor violation alert")

    def send_progress_report(self, summary: Optional[ProgressSummary] = None) -> bool:
        """
        Send a progress report to the sponsor once.

        Returns:
            True if the delivery channel accepted the report
        """
        if self.sponsor is None:
            logger.debug("No sponsor configured; skipping progress report")
            return False

        summary = summary or self.progress_summary()
        logger.info(f"Sending progress report to {self.sponsor.name} (day {summary.days_completed})")
        payload = {
            "type": "progress",
            "sponsorContact": self.sponsor.to_dict(),
            "progressSummary": summary.to_dict(),
            "timestamp": self._clock().isoformat(),
        }
        return self._deliver(payload, "sponsor progress report")
