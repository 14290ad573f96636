"""
Unit tests for the DNS filter controller.

Scenarios run against the in-memory fake backend from conftest.
"""

import threading

import pytest

from netfast.dns.controller import DNSFilterController
from netfast.models.config import AgentSettings
from netfast.validation import (
    ExecutionFailedError,
    PermissionDeniedError,
    UnknownProfileError,
)


@pytest.mark.unit
class TestApply:
    """Test cases for applying a filter profile."""

    def test_apply_from_clean_state(self, controller, fake_backend, state_store):
        """Test that a clean system ends up filtered and persisted."""
        result = controller.apply("cleanBrowsing")

        assert result.profile.name == "cleanBrowsing"
        assert result.interface == "eth0"
        assert result.used_fallback is False
        assert fake_backend.servers[4] == ["185.228.168.168", "185.228.169.168"]
        assert controller.applied_profile.name == "cleanBrowsing"
        assert state_store.load().filter_type == "cleanBrowsing"

        observation = controller.check_current()
        assert observation.is_filtered
        assert observation.matched_profile.name == "cleanBrowsing"

    def test_apply_is_idempotent(self, controller, fake_backend):
        """Test that applying twice leaves exactly the profile's resolvers."""
        controller.apply("opendns")
        controller.apply("opendns")

        assert fake_backend.servers[4] == ["208.67.222.222", "208.67.220.220"]
        assert fake_backend.calls.count("set_servers_fallback") == 0

    def test_switching_profiles(self, controller, fake_backend, state_store):
        """Test that a new profile replaces the previous one."""
        controller.apply("opendns")
        controller.apply("cloudflareFamily")

        assert fake_backend.servers[4] == ["1.1.1.3", "1.0.0.3"]
        assert controller.check_current().matched_profile.name == "cloudflareFamily"
        assert state_store.load().filter_type == "cloudflareFamily"

    def test_unknown_profile(self, controller, fake_backend):
        """Test that an unknown name fails before any command runs."""
        with pytest.raises(UnknownProfileError):
            controller.apply("adguard")
        assert fake_backend.calls == []

    def test_falls_back_when_native_does_not_verify(self, controller, fake_backend):
        """Test that the scripting host is used when the native set is a no-op."""
        fake_backend.ignore_native = True

        result = controller.apply("opendns")

        assert result.used_fallback is True
        assert "set_servers_fallback" in fake_backend.calls
        assert controller.check_current().is_filtered

    def test_falls_back_when_native_fails(self, controller, fake_backend):
        """Test that a native execution failure goes to the fallback path."""
        fake_backend.native_error = ExecutionFailedError("netsh failed")

        result = controller.apply("opendns")

        assert result.used_fallback is True

    def test_permission_error_is_not_retried(self, controller, fake_backend):
        """Test that a permission failure surfaces without trying the fallback."""
        fake_backend.native_error = PermissionDeniedError("Access is denied.")

        with pytest.raises(PermissionDeniedError):
            controller.apply("opendns")
        assert "set_servers_fallback" not in fake_backend.calls
        assert controller.applied_profile is None

    def test_fails_when_nothing_verifies(self, controller, fake_backend, state_store):
        """Test that an unverifiable apply raises and records nothing."""
        fake_backend.ignore_native = True
        fake_backend.fallback_error = ExecutionFailedError("nmcli failed")

        with pytest.raises(ExecutionFailedError):
            controller.apply("opendns")
        assert controller.applied_profile is None
        assert state_store.load() is None

    def test_settle_delay_is_honoured(self, fake_backend, state_store):
        """Test that the controller waits before reading back."""
        sleeps = []
        controller = DNSFilterController(fake_backend, state_store, settle_delay=2.0, sleep=sleeps.append)

        controller.apply("opendns")

        assert sleeps == [2.0]

    def test_concurrent_applies_are_serialized(self, controller, fake_backend):
        """Test that parallel applies leave one consistent profile."""
        threads = [
            threading.Thread(target=controller.apply, args=(name,))
            for name in ("opendns", "cleanBrowsing", "cloudflareFamily")
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        applied = controller.applied_profile
        assert fake_backend.servers[4] == list(applied.resolver_addresses)


@pytest.mark.unit
class TestRemove:
    """Test cases for removing the filter."""

    def test_remove_restores_automatic(self, controller, fake_backend, state_store):
        """Test the apply/remove round trip."""
        controller.apply("opendns")

        result = controller.remove()

        assert result.families == [4]
        assert fake_backend.servers[4] == ["192.168.1.1"]
        assert not result.observation.is_filtered
        assert controller.applied_profile is None
        assert state_store.load() is None
        assert not controller.check_current().is_filtered

    def test_remove_in_fresh_process_resets_both_families(self, controller, fake_backend):
        """Test that without a recorded apply both families are reset."""
        fake_backend.servers[4] = ["1.1.1.3"]

        result = controller.remove()

        assert result.families == [4, 6]
        assert not controller.check_current().is_filtered

    def test_remove_falls_back(self, controller, fake_backend):
        """Test that a native reset that does not take effect uses the fallback."""
        controller.apply("opendns")
        fake_backend.ignore_native = True

        controller.remove()

        assert "reset_servers_fallback" in fake_backend.calls
        assert fake_backend.servers[4] == ["192.168.1.1"]

    def test_remove_fails_when_filter_stays(self, controller, fake_backend):
        """Test that a filter surviving both paths is an error."""
        controller.apply("opendns")
        fake_backend.ignore_native = True
        fake_backend.fallback_error = ExecutionFailedError("nmcli failed")

        with pytest.raises(ExecutionFailedError):
            controller.remove()
        assert controller.applied_profile.name == "opendns"


@pytest.mark.unit
class TestCheckCurrent:
    """Test cases for reading the live configuration."""

    def test_unfiltered_system(self, controller):
        """Test a system that never had a filter."""
        observation = controller.check_current()

        assert not observation.is_filtered
        assert observation.last_known_filter_type is None
        assert "192.168.1.1" in observation.to_dict()["currentDNS"]

    def test_tampered_system_reports_last_known(self, controller, fake_backend):
        """Test that a reverted filter shows the last known type but is not filtered."""
        controller.apply("cleanBrowsing")
        fake_backend.servers[4] = ["8.8.8.8"]

        observation = controller.check_current()

        assert not observation.is_filtered
        assert observation.last_known_filter_type == "cleanBrowsing"
        assert observation.to_dict()["filterType"] == "cleanBrowsing"
        assert observation.to_dict()["isFiltered"] is False

    def test_externally_applied_filter_is_detected(self, controller, fake_backend, state_store):
        """Test that a filter set by someone else is matched and persisted."""
        fake_backend.servers[4] = ["1.1.1.3", "1.0.0.3"]

        observation = controller.check_current()

        assert observation.matched_profile.name == "cloudflareFamily"
        assert state_store.load().filter_type == "cloudflareFamily"

    def test_read_failure_never_raises(self, controller, fake_backend):
        """Test that a failing read yields an unfiltered placeholder."""
        controller.apply("opendns")
        fake_backend.read_error = ExecutionFailedError("scutil failed")

        observation = controller.check_current()

        assert observation.read_failed is True
        assert not observation.is_filtered
        assert observation.last_known_filter_type == "opendns"

    def test_last_known_profile_name(self, controller, fake_backend, state_store):
        """Test the restore target precedence."""
        assert controller.last_known_profile_name("opendns") == "opendns"

        state_store.save("cloudflareFamily")
        assert controller.last_known_profile_name("opendns") == "cloudflareFamily"

        controller.apply("cleanBrowsing")
        assert controller.last_known_profile_name("opendns") == "cleanBrowsing"

    def test_from_settings(self, fake_backend, temp_dir):
        """Test construction from agent settings."""
        settings = AgentSettings(state_file=temp_dir / "s.json", settle_delay=0.5)
        controller = DNSFilterController.from_settings(settings, backend=fake_backend)

        assert controller.backend is fake_backend
        assert controller.settle_delay == 0.5
        assert controller.state_store.path == temp_dir / "s.json"
