"""
Integrity monitoring for the netfast package.
"""

from .checks import (
    DNS_MODIFIED,
    VPN_DETECTED,
    DNSIntegrityCheck,
    UsageSamplingCheck,
    VPNDetectionCheck,
)
from .monitor import IntegrityMonitor, MonitorState
from .scheduler import PeriodicTask

__all__ = [
    "DNS_MODIFIED",
    "VPN_DETECTED",
    "DNSIntegrityCheck",
    "UsageSamplingCheck",
    "VPNDetectionCheck",
    "IntegrityMonitor",
    "MonitorState",
    "PeriodicTask",
]
