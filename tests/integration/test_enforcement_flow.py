"""
Integration tests for the enforcement flow.

The whole agent is wired from configuration over the in-memory DNS backend;
only the OS commands and the process exit are replaced.
"""

import time
from unittest.mock import Mock

import pytest

from netfast.dns.profiles import BUILTIN_PROFILES
from netfast.models import (
    AgentSettings,
    AppConfig,
    EscalationPhase,
    MonitoringConfig,
    TransitionKind,
    WarningChoice,
)
from netfast.monitoring.checks import DNS_MODIFIED, DNSIntegrityCheck, VPNDetectionCheck
from netfast.orchestration import Agent


@pytest.fixture
def terminator():
    return Mock()


@pytest.fixture
def agent(temp_dir, fake_backend, terminator):
    config = AppConfig(
        agent=AgentSettings(state_file=temp_dir / "state.json", settle_delay=0),
        monitoring=MonitoringConfig(dns_check_interval=0.05, proxy_vpn_detection=False),
    )
    agent = Agent.from_config(config, backend=fake_backend, terminator=terminator, autostart=Mock())
    yield agent
    agent.shutdown()


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.mark.integration
class TestFilterRoundTrip:
    """Apply/remove properties over every built-in profile."""

    @pytest.mark.parametrize("profile", [p.name for p in BUILTIN_PROFILES])
    def test_apply_then_check(self, agent, profile):
        """Test that every profile verifies after apply and clears after remove."""
        assert agent.apply_filter(profile)["success"]
        status = agent.check_status()["result"]
        assert status["isFiltered"] is True
        assert status["matchedProfile"] == profile

        assert agent.apply_filter(profile)["success"]
        assert agent.check_status()["result"] == status

        assert agent.remove_filter()["success"]
        assert agent.check_status()["result"]["isFiltered"] is False


@pytest.mark.integration
class TestEscalationScenarios:
    """Tampering, warning, restore and termination end to end."""

    def test_tamper_warn_restore(self, agent, fake_backend):
        """Test tampering followed by the user choosing restore."""
        agent.apply_filter("opendns")
        fake_backend.servers[4] = ["8.8.8.8"]
        transitions = []
        agent.escalation.subscribe(transitions.append)

        DNSIntegrityCheck(agent.controller, agent.escalation.on_violation)()

        assert transitions[0].kind is TransitionKind.WARNING
        assert transitions[0].event.reason == DNS_MODIFIED
        assert agent.get_escalation_status()["result"]["violationCount"] == 1

        assert agent.restore_protection()["success"]
        assert agent.get_escalation_status()["result"]["violationCount"] == 0
        assert agent.check_status()["result"]["matchedProfile"] == "opendns"

    def test_tamper_then_vpn_terminates(self, agent, fake_backend, terminator):
        """Test that a second violation removes the filter and ends the process."""
        agent.apply_filter("opendns")
        fake_backend.servers[4] = ["8.8.8.8"]

        DNSIntegrityCheck(agent.controller, agent.escalation.on_violation)()
        VPNDetectionCheck(agent.escalation.on_violation, finder=lambda: ["utun4"])()

        assert agent.escalation.status().phase is EscalationPhase.TERMINATED
        assert "reset_servers" in fake_backend.calls
        assert agent.controller.applied_profile is None
        terminator.assert_called_once()

    def test_running_monitor_restores_on_warning(self, agent, fake_backend, terminator):
        """Test the scheduled DNS check with a dashboard that chooses restore."""
        handler = Mock(return_value=WarningChoice.RESTORE)
        agent.escalation.set_warning_handler(handler)
        agent.apply_filter("cleanBrowsing")
        agent.start_protection()

        fake_backend.servers[4] = ["8.8.8.8"]

        assert _wait_for(lambda: handler.called)
        assert _wait_for(lambda: agent.check_status()["result"]["isFiltered"])
        time.sleep(0.2)
        assert handler.call_count == 1
        assert agent.get_escalation_status()["result"]["violationCount"] == 0
        terminator.assert_not_called()
