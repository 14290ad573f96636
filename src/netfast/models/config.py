"""
Configuration data models.

This module contains the configuration structures loaded from `config.toml`:
agent-wide settings, monitoring options and the accountability sponsor.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_STATE_FILE = Path.home() / ".netfast" / "filter_state.json"


@dataclass(frozen=True)
class MonitoringConfig:
    """
    Monitoring options, loaded from the `[monitoring]` section.

    Frozen so a running monitor can never observe a half-updated copy;
    use `with_changes` to derive a new one.
    """

    # Register the agent to launch at OS login.
    auto_start_on_boot: bool = True
    # Keep enforcing after the UI window closes.
    background_service: bool = True
    # Sample running processes for browsers.
    usage_monitoring: bool = False
    # Reserved; accepted but no check is scheduled.
    screenshot_detection: bool = False
    # Enable the VPN/tunnel-interface check.
    proxy_vpn_detection: bool = True

    # Check periods in seconds.
    dns_check_interval: float = 30.0
    vpn_check_interval: float = 15.0
    usage_check_interval: float = 60.0

    # Executable names counted by usage sampling.
    browser_names: List[str] = field(default_factory=lambda: [
        "chrome", "chrome.exe", "google chrome",
        "firefox", "firefox.exe",
        "msedge", "msedge.exe", "microsoft edge",
        "safari", "brave", "brave.exe", "opera", "opera.exe",
    ])

    _UI_KEYS = {
        "autoStartOnBoot": "auto_start_on_boot",
        "backgroundService": "background_service",
        "usageMonitoring": "usage_monitoring",
        "screenshotDetection": "screenshot_detection",
        "proxyVpnDetection": "proxy_vpn_detection",
    }

    def with_changes(self, **changes: Any) -> "MonitoringConfig":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {ui_key: getattr(self, attr) for ui_key, attr in self._UI_KEYS.items()}


@dataclass
class AgentSettings:
    """
    Agent-wide settings, loaded from the `[agent]` section.
    """

    # Profile applied by `netfast apply` without an argument and by "restore".
    default_profile: str = "opendns"
    # Where the last-known filter type is persisted.
    state_file: Path = DEFAULT_STATE_FILE
    # Seconds to wait after a DNS change before reading it back.
    settle_delay: float = 2.0
    # Timeout for a single external command.
    command_timeout: float = 30.0
    # Worker threads that run the periodic checks.
    worker_threads: int = 3
    log_level: str = "INFO"


@dataclass
class SponsorSettings:
    """
    Accountability sponsor, loaded from the optional `[sponsor]` section.
    """

    name: str
    email: str
    # Length of the fast in days, used by progress reports.
    total_days: int = 40


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    agent: AgentSettings = field(default_factory=AgentSettings)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    sponsor: Optional[SponsorSettings] = None
