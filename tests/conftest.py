"""
Pytest configuration and shared fixtures for the NetFast test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the NetFast project.
"""

import shutil
import sys
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from netfast.dns.backends import DNSBackend  # noqa: E402
from netfast.dns.controller import DNSFilterController  # noqa: E402
from netfast.dns.state_store import FilterStateStore  # noqa: E402


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


# ============================================================================
# Fake DNS backend
# ============================================================================


AUTOMATIC_SERVERS = {4: ["192.168.1.1"], 6: ["fe80::1"]}


class FakeDNSBackend(DNSBackend):
    """
    In-memory resolver configuration for one interface.

    Knobs:
        ignore_native: native set/reset "succeeds" but changes nothing
        native_error / fallback_error / read_error: raised by those paths
    """

    platform = "fake"

    def __init__(self, interface: str = "eth0"):
        super().__init__(runner=self._no_commands)
        self.interface = interface
        self.servers: Dict[int, List[str]] = {
            family: list(addresses) for family, addresses in AUTOMATIC_SERVERS.items()
        }
        self.ignore_native = False
        self.native_error: Optional[Exception] = None
        self.fallback_error: Optional[Exception] = None
        self.read_error: Optional[Exception] = None
        self.calls: List[str] = []

    @staticmethod
    def _no_commands(spec):
        raise AssertionError(f"Fake backend must not run commands: {spec.display()}")

    def active_interface(self) -> str:
        self.calls.append("active_interface")
        return self.interface

    def read_servers(self, interface: Optional[str] = None) -> List[str]:
        self.calls.append("read_servers")
        if self.read_error is not None:
            raise self.read_error
        return [f"nameserver {address}" for family in sorted(self.servers)
                for address in self.servers[family]]

    def set_servers(self, interface: str, servers: Dict[int, List[str]]) -> None:
        self.calls.append("set_servers")
        if self.native_error is not None:
            raise self.native_error
        if not self.ignore_native:
            for family, addresses in servers.items():
                self.servers[family] = list(addresses)

    def set_servers_fallback(self, interface: str, servers: Dict[int, List[str]]) -> None:
        self.calls.append("set_servers_fallback")
        if self.fallback_error is not None:
            raise self.fallback_error
        for family, addresses in servers.items():
            self.servers[family] = list(addresses)

    def reset_servers(self, interface: str, families: Iterable[int]) -> None:
        self.calls.append("reset_servers")
        if self.native_error is not None:
            raise self.native_error
        if not self.ignore_native:
            self._reset(families)

    def reset_servers_fallback(self, interface: str, families: Iterable[int]) -> None:
        self.calls.append("reset_servers_fallback")
        if self.fallback_error is not None:
            raise self.fallback_error
        self._reset(families)

    def _reset(self, families: Iterable[int]) -> None:
        for family in families:
            self.servers[family] = list(AUTOMATIC_SERVERS.get(family, []))

    def flush_cache(self) -> None:
        self.calls.append("flush_cache")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def fake_backend():
    """In-memory DNS backend starting on automatic resolvers."""
    return FakeDNSBackend()


@pytest.fixture
def state_store(temp_dir):
    """Filter state store writing into the temporary directory."""
    return FilterStateStore(temp_dir / "filter_state.json")


@pytest.fixture
def controller(fake_backend, state_store):
    """DNS filter controller over the fake backend, without settle delay."""
    return DNSFilterController(fake_backend, state_store, settle_delay=0)


@pytest.fixture
def sample_config_data(temp_dir):
    """Sample configuration data for testing."""
    return {
        "agent": {
            "default_profile": "cleanBrowsing",
            "state_file": str(temp_dir / "state.json"),
            "settle_delay": 0.0,
            "command_timeout": 10.0,
            "worker_threads": 2,
            "log_level": "debug",
        },
        "monitoring": {
            "auto_start_on_boot": False,
            "background_service": True,
            "usage_monitoring": True,
            "proxy_vpn_detection": False,
            "dns_check_interval": 5.0,
        },
        "sponsor": {
            "name": "Sam Rivera",
            "email": "sam@example.com",
            "total_days": 30,
        },
    }
