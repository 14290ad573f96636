"""
Integrity checks run by the monitor.

Each check is a callable object. The DNS and VPN checks reduce to a single
`on_violation(event)` signal; usage sampling only records data points.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional

from ..dns.controller import DNSFilterController
from ..models.escalation import ViolationEvent
from ..system.network import find_browser_processes, find_tunnel_interfaces

logger = logging.getLogger(__name__)

DNS_MODIFIED = "DNS settings were modified"
VPN_DETECTED = "VPN/Proxy connection detected"

ViolationSink = Callable[[ViolationEvent], Any]


class DNSIntegrityCheck:
    """Raises a violation when the live resolvers no longer match a profile."""

    name = "dns-integrity"

    def __init__(self, controller: DNSFilterController, on_violation: ViolationSink):
        self.controller = controller
        self.on_violation = on_violation

    def __call__(self) -> None:
        observation = self.controller.check_current()
        if observation.read_failed:
            # An unreadable configuration is not evidence of tampering.
            logger.warning("DNS integrity check skipped: resolver read failed")
            return
        if not observation.is_filtered:
            logger.warning(f"DNS integrity check failed, resolvers: {observation.raw_server_list}")
            self.on_violation(ViolationEvent(DNS_MODIFIED))
            return
        logger.debug(f"DNS integrity ok ({observation.matched_profile.name})")


class VPNDetectionCheck:
    """Raises a violation when a tunnel-type interface is up."""

    name = "vpn-detection"

    def __init__(self, on_violation: ViolationSink,
                 finder: Callable[[], List[str]] = find_tunnel_interfaces):
        self.on_violation = on_violation
        self.finder = finder

    def __call__(self) -> None:
        tunnels = self.finder()
        if tunnels:
            logger.warning(f"Tunnel interfaces detected: {', '.join(tunnels)}")
            self.on_violation(ViolationEvent(VPN_DETECTED))


class UsageSamplingCheck:
    """
    Records which known browsers are running.

    Presence is a neutral data point handed to ``recorder``; this check
    never raises a violation.
    """

    name = "usage-sampling"

    def __init__(self, browser_names: Iterable[str],
                 recorder: Optional[Callable[[str], Any]] = None,
                 finder: Callable[[Iterable[str]], List[str]] = find_browser_processes):
        self.browser_names = list(browser_names)
        self.recorder = recorder
        self.finder = finder

    def __call__(self) -> None:
        browsers = self.finder(self.browser_names)
        if not browsers:
            return
        moment = f"Browsing while protected: {', '.join(browsers)}"
        logger.info(moment)
        if self.recorder is not None:
            self.recorder(moment)
