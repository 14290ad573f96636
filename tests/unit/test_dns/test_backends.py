"""
Unit tests for the per-platform DNS backends.

The backends are driven with a scripted command runner, so these tests pin
the exact commands issued on each platform without touching the system.
"""

from typing import Dict, List, Tuple

import pytest

from netfast.dns.backends import (
    LinuxDNSBackend,
    MacOSDNSBackend,
    WindowsDNSBackend,
    choose_interface,
    create_backend,
)
from netfast.validation import ExecutionFailedError, PermissionDeniedError, UnsupportedPlatformError


class ScriptedRunner:
    """Returns canned output keyed by argv prefix and records every call."""

    def __init__(self, responses: Dict[Tuple[str, ...], object] = None):
        self.responses = responses or {}
        self.calls: List[List[str]] = []

    def __call__(self, spec) -> str:
        argv = list(spec.argv)
        self.calls.append(argv)
        best = None
        for prefix in self.responses:
            if tuple(argv[:len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return ""
        response = self.responses[best]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.mark.unit
class TestChooseInterface:
    """Test cases for active interface selection."""

    def test_dual_stack_interface_wins(self):
        """Test that an interface up in both families is preferred."""
        assert choose_interface(["eth0", "wlan0"], ["wlan0"]) == "wlan0"

    def test_ipv4_then_ipv6(self):
        """Test the single-family fallbacks."""
        assert choose_interface(["eth0"], ["wlan0"]) == "eth0"
        assert choose_interface([], ["wlan0"]) == "wlan0"

    def test_no_interface(self):
        """Test that no candidates is an execution failure."""
        with pytest.raises(ExecutionFailedError):
            choose_interface([], [])


NETSH_INTERFACES_V4 = """
Idx     Met         MTU          State                Name
---  ----------  ----------  ------------  ---------------------------
  1          75  4294967295  connected     Loopback Pseudo-Interface 1
 12          25        1500  connected     Wi-Fi
 15           5        1500  disconnected  Ethernet 2
"""

NETSH_INTERFACES_V6 = """
Idx     Met         MTU          State                Name
---  ----------  ----------  ------------  ---------------------------
  1          75  4294967295  connected     Loopback Pseudo-Interface 1
 12          25        1500  connected     Wi-Fi
"""


@pytest.mark.unit
class TestWindowsBackend:
    """Test cases for the netsh/PowerShell backend."""

    def test_active_interface(self):
        """Test parsing of netsh interface tables."""
        runner = ScriptedRunner({
            ("netsh", "interface", "ipv4", "show", "interfaces"): NETSH_INTERFACES_V4,
            ("netsh", "interface", "ipv6", "show", "interfaces"): NETSH_INTERFACES_V6,
        })
        assert WindowsDNSBackend(runner=runner).active_interface() == "Wi-Fi"

    def test_set_servers_replaces_then_adds(self):
        """Test the static primary plus indexed secondary commands."""
        runner = ScriptedRunner()
        WindowsDNSBackend(runner=runner).set_servers("Wi-Fi", {4: ["208.67.222.222", "208.67.220.220"]})

        assert runner.calls == [
            ["netsh", "interface", "ipv4", "set", "dnsservers", "Wi-Fi",
             "static", "208.67.222.222", "primary", "validate=no"],
            ["netsh", "interface", "ipv4", "add", "dnsservers", "Wi-Fi",
             "208.67.220.220", "index=2", "validate=no"],
        ]

    def test_fallback_quotes_interface(self):
        """Test the PowerShell fallback and its quoting."""
        runner = ScriptedRunner()
        WindowsDNSBackend(runner=runner).set_servers_fallback("Bob's Wi-Fi", {4: ["1.1.1.3", "1.0.0.3"]})

        script = runner.calls[0][-1]
        assert runner.calls[0][0] == "powershell"
        assert "-InterfaceAlias 'Bob''s Wi-Fi'" in script
        assert "-ServerAddresses ('1.1.1.3','1.0.0.3')" in script

    def test_read_servers_tolerates_missing_ipv6(self):
        """Test that an IPv6 read failure does not fail the whole read."""
        runner = ScriptedRunner({
            ("netsh", "interface", "ipv4", "show", "dnsservers"):
                "Configuration for interface \"Wi-Fi\"\n    Statically Configured DNS Servers:    1.1.1.3\n",
            ("netsh", "interface", "ipv6", "show", "dnsservers"): ExecutionFailedError("no ipv6"),
        })
        lines = WindowsDNSBackend(runner=runner).read_servers("Wi-Fi")
        assert any("1.1.1.3" in line for line in lines)

    def test_read_servers_permission_error_propagates(self):
        """Test that permission failures are never swallowed."""
        runner = ScriptedRunner({("netsh",): PermissionDeniedError("denied")})
        with pytest.raises(PermissionDeniedError):
            WindowsDNSBackend(runner=runner).read_servers()

    def test_reset_and_flush(self):
        """Test DHCP reset per family and cache flush."""
        runner = ScriptedRunner()
        backend = WindowsDNSBackend(runner=runner)
        backend.reset_servers("Wi-Fi", [4, 6])
        backend.flush_cache()

        assert runner.calls == [
            ["netsh", "interface", "ipv4", "set", "dnsservers", "Wi-Fi", "dhcp"],
            ["netsh", "interface", "ipv6", "set", "dnsservers", "Wi-Fi", "dhcp"],
            ["ipconfig", "/flushdns"],
        ]


NETWORK_SERVICE_ORDER = """An asterisk (*) denotes that a network service is disabled.
(1) USB 10/100/1000 LAN
(Hardware Port: USB 10/100/1000 LAN, Device: en7)

(2) Wi-Fi
(Hardware Port: Wi-Fi, Device: en0)
"""


@pytest.mark.unit
class TestMacOSBackend:
    """Test cases for the networksetup/osascript backend."""

    def test_active_interface_maps_device_to_service(self):
        """Test that the default-route device is mapped to its service name."""
        runner = ScriptedRunner({
            ("route", "-n", "get", "default"): "   route to: default\n  interface: en0\n",
            ("route", "-n", "get", "-inet6"): ExecutionFailedError("no ipv6 route"),
            ("networksetup", "-listnetworkserviceorder"): NETWORK_SERVICE_ORDER,
        })
        assert MacOSDNSBackend(runner=runner).active_interface() == "Wi-Fi"

    def test_read_servers_keeps_nameserver_lines(self):
        """Test scutil output filtering."""
        runner = ScriptedRunner({
            ("scutil", "--dns"): "resolver #1\n  nameserver[0] : 1.1.1.3\n  flags : Request A records\n",
        })
        assert MacOSDNSBackend(runner=runner).read_servers() == ["  nameserver[0] : 1.1.1.3"]

    def test_set_and_reset(self):
        """Test networksetup set and Empty reset."""
        runner = ScriptedRunner()
        backend = MacOSDNSBackend(runner=runner)
        backend.set_servers("Wi-Fi", {4: ["1.1.1.3", "1.0.0.3"]})
        backend.reset_servers("Wi-Fi", [4])

        assert runner.calls == [
            ["networksetup", "-setdnsservers", "Wi-Fi", "1.1.1.3", "1.0.0.3"],
            ["networksetup", "-setdnsservers", "Wi-Fi", "Empty"],
        ]

    def test_fallback_uses_administrator_privileges(self):
        """Test the osascript fallback command."""
        runner = ScriptedRunner()
        MacOSDNSBackend(runner=runner).set_servers_fallback("Wi-Fi", {4: ["1.1.1.3"]})

        argv = runner.calls[0]
        assert argv[:2] == ["osascript", "-e"]
        assert "with administrator privileges" in argv[2]
        assert "networksetup -setdnsservers Wi-Fi 1.1.1.3" in argv[2]


@pytest.mark.unit
class TestLinuxBackend:
    """Test cases for the resolvectl/nmcli backend."""

    def test_active_interface(self):
        """Test default route parsing."""
        runner = ScriptedRunner({
            ("ip", "-o", "-4"): "default via 192.168.1.1 dev wlp3s0 proto dhcp metric 600\n",
            ("ip", "-o", "-6"): "",
        })
        assert LinuxDNSBackend(runner=runner).active_interface() == "wlp3s0"

    def test_set_servers_routes_all_domains(self):
        """Test resolvectl dns plus the catch-all routing domain."""
        runner = ScriptedRunner()
        LinuxDNSBackend(runner=runner).set_servers("eth0", {4: ["208.67.222.222", "208.67.220.220"]})

        assert runner.calls == [
            ["resolvectl", "dns", "eth0", "208.67.222.222", "208.67.220.220"],
            ["resolvectl", "domain", "eth0", "~."],
        ]

    def test_read_falls_back_to_resolv_conf(self, temp_dir):
        """Test that hosts without resolvectl read /etc/resolv.conf."""
        resolv_conf = temp_dir / "resolv.conf"
        resolv_conf.write_text("# generated\nnameserver 185.228.168.168\nsearch lan\n", encoding="utf-8")
        runner = ScriptedRunner({("resolvectl",): ExecutionFailedError("not found")})

        backend = LinuxDNSBackend(runner=runner, resolv_conf=resolv_conf)
        assert backend.read_servers("eth0") == ["nameserver 185.228.168.168"]

    def test_fallback_and_reset_with_nmcli(self):
        """Test the NetworkManager fallback commands."""
        runner = ScriptedRunner()
        backend = LinuxDNSBackend(runner=runner)
        backend.set_servers_fallback("eth0", {4: ["1.1.1.3", "1.0.0.3"]})
        backend.reset_servers_fallback("eth0", [4])

        assert runner.calls == [
            ["nmcli", "device", "modify", "eth0", "ipv4.dns", "1.1.1.3 1.0.0.3", "ipv4.ignore-auto-dns", "yes"],
            ["nmcli", "device", "modify", "eth0", "ipv4.dns", "", "ipv4.ignore-auto-dns", "no"],
        ]

    def test_flush_failure_is_ignored(self):
        """Test that a missing resolver cache does not fail the operation."""
        runner = ScriptedRunner({("resolvectl", "flush-caches"): ExecutionFailedError("no resolved")})
        LinuxDNSBackend(runner=runner).flush_cache()


@pytest.mark.unit
class TestCreateBackend:
    """Test cases for the backend factory."""

    @pytest.mark.parametrize("platform, backend_class", [
        ("windows", WindowsDNSBackend),
        ("darwin", MacOSDNSBackend),
        ("linux", LinuxDNSBackend),
    ])
    def test_known_platforms(self, platform, backend_class):
        """Test that each platform gets its backend."""
        backend = create_backend(platform, command_timeout=5.0)
        assert isinstance(backend, backend_class)
        assert backend.command_timeout == 5.0

    def test_unknown_platform(self):
        """Test that other platforms are unsupported."""
        with pytest.raises(UnsupportedPlatformError):
            create_backend("plan9")
