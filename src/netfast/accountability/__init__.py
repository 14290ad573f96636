"""
Sponsor accountability for the netfast package.
"""

from .notifier import (
    AccountabilityNotifier,
    DeliveryChannel,
    LoggingDeliveryChannel,
    ProgressSummary,
    SponsorContact,
    StrengthMoment,
)

__all__ = [
    "AccountabilityNotifier",
    "DeliveryChannel",
    "LoggingDeliveryChannel",
    "ProgressSummary",
    "SponsorContact",
    "StrengthMoment",
]
