"""
Per-platform DNS command paths.

Each backend knows how to find the active interface, read the configured
resolvers, replace or reset them and flush the resolver cache on one OS.
Mutating operations come in two flavours: the native CLI tool and a
scripting-host fallback that the controller tries when the native path does
not verify.
"""

import logging
import re
import shlex
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ..system.commands import DEFAULT_TIMEOUT, CommandSpec, current_platform, run_command
from ..validation import (
    ExecutionFailedError,
    UnsupportedPlatformError,
)

logger = logging.getLogger(__name__)

CommandRunner = Callable[[CommandSpec], str]
FAMILIES = (4, 6)


def choose_interface(ipv4: Sequence[str], ipv6: Sequence[str]) -> str:
    """
    Pick the active interface from per-family candidates.

    An interface that is up in both address families wins; otherwise the
    first IPv4 candidate, then the first IPv6 candidate.

    Raises:
        ExecutionFailedError: If neither family has a candidate
    """
    for name in ipv4:
        if name in ipv6:
            return name
    if ipv4:
        return ipv4[0]
    if ipv6:
        return ipv6[0]
    raise ExecutionFailedError("Could not determine active network interface")


class DNSBackend(ABC):
    """
    Abstract base class for platform DNS backends.
    """

    platform: str = ""

    def __init__(self, runner: CommandRunner = run_command, command_timeout: float = DEFAULT_TIMEOUT):
        self.runner = runner
        self.command_timeout = command_timeout

    def _run(self, argv: Sequence[str], description: str = "", stdin: Optional[str] = None) -> str:
        return self.runner(
            CommandSpec(tuple(argv), stdin=stdin, timeout=self.command_timeout, description=description)
        )

    def _run_optional_family(self, argv: Sequence[str], description: str) -> str:
        """Run a per-family read whose failure only means the family is absent."""
        try:
            return self._run(argv, description)
        except ExecutionFailedError as e:
            logger.debug(f"{description} unavailable: {e}")
            return ""

    @abstractmethod
    def active_interface(self) -> str:
        """Return the name the platform tools use for the active adapter."""

    @abstractmethod
    def read_servers(self, interface: Optional[str] = None) -> List[str]:
        """Return raw resolver lines, across both address families."""

    @abstractmethod
    def set_servers(self, interface: str, servers: Dict[int, List[str]]) -> None:
        """Replace the resolvers of each given family using the native CLI."""

    @abstractmethod
    def set_servers_fallback(self, interface: str, servers: Dict[int, List[str]]) -> None:
        """Replace the resolvers using the scripting host."""

    @abstractmethod
    def reset_servers(self, interface: str, families: Iterable[int]) -> None:
        """Restore automatic (DHCP) resolvers using the native CLI."""

    @abstractmethod
    def reset_servers_fallback(self, interface: str, families: Iterable[int]) -> None:
        """Restore automatic resolvers using the scripting host."""

    @abstractmethod
    def flush_cache(self) -> None:
        """Flush the local resolver cache."""


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class WindowsDNSBackend(DNSBackend):
    """netsh first, PowerShell DnsClient cmdlets as the fallback."""

    platform = "windows"

    def _connected_interfaces(self, family: int) -> List[str]:
        output = self._run_optional_family(
            ["netsh", "interface", f"ipv{family}", "show", "interfaces"],
            f"list ipv{family} interfaces",
        )
        names = []
        for line in output.splitlines():
            # Idx  Met  MTU  State  Name
            parts = line.split(None, 4)
            if len(parts) < 5 or not parts[0].isdigit():
                continue
            state, name = parts[3].lower(), parts[4].strip()
            if state == "connected" and not name.lower().startswith("loopback"):
                names.append(name)
        return names

    def active_interface(self) -> str:
        return choose_interface(self._connected_interfaces(4), self._connected_interfaces(6))

    def read_servers(self, interface: Optional[str] = None) -> List[str]:
        lines: List[str] = []
        for family in FAMILIES:
            argv = ["netsh", "interface", f"ipv{family}", "show", "dnsservers"]
            if interface:
                argv.append(interface)
            if family == 4:
                output = self._run(argv, "read ipv4 resolvers")
            else:
                output = self._run_optional_family(argv, "read ipv6 resolvers")
            lines.extend(output.splitlines())
        return lines

    def set_servers(self, interface: str, servers: Dict[int, List[str]]) -> None:
        for family, addresses in servers.items():
            # "static" replaces the whole list, so repeated applies never duplicate.
            self._run(
                ["netsh", "interface", f"ipv{family}", "set", "dnsservers", interface,
                 "static", addresses[0], "primary", "validate=no"],
                f"set ipv{family} primary resolver",
            )
            if len(addresses) > 1:
                self._run(
                    ["netsh", "interface", f"ipv{family}", "add", "dnsservers", interface,
                     addresses[1], "index=2", "validate=no"],
                    f"add ipv{family} secondary resolver",
                )

    def _powershell(self, script: str, description: str) -> str:
        return self._run(
            ["powershell", "-NoProfile", "-NonInteractive", "-Command", script],
            description,
        )

    def set_servers_fallback(self, interface: str, servers: Dict[int, List[str]]) -> None:
        addresses = [address for family in sorted(servers) for address in servers[family][:2]]
        joined = ",".join(_ps_quote(address) for address in addresses)
        self._powershell(
            f"Set-DnsClientServerAddress -InterfaceAlias {_ps_quote(interface)} "
            f"-ServerAddresses ({joined})",
            "set resolvers via PowerShell",
        )

    def reset_servers(self, interface: str, families: Iterable[int]) -> None:
        for family in families:
            self._run(
                ["netsh", "interface", f"ipv{family}", "set", "dnsservers", interface, "dhcp"],
                f"reset ipv{family} resolvers",
            )

    def reset_servers_fallback(self, interface: str, families: Iterable[int]) -> None:
        # The cmdlet resets both families at once.
        self._powershell(
            f"Set-DnsClientServerAddress -InterfaceAlias {_ps_quote(interface)} -ResetServerAddresses",
            "reset resolvers via PowerShell",
        )

    def flush_cache(self) -> None:
        self._run(["ipconfig", "/flushdns"], "flush resolver cache")


def _applescript_quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class MacOSDNSBackend(DNSBackend):
    """networksetup first, osascript with administrator privileges as the fallback."""

    platform = "darwin"

    _ROUTE_INTERFACE = re.compile(r"interface:\s*(\S+)")
    _SERVICE_HEADER = re.compile(r"^\(\d+\)\s+\*?(.+)$")
    _SERVICE_DEVICE = re.compile(r"Device:\s*([^)]+)\)")

    def _default_route_device(self, family: int) -> List[str]:
        argv = ["route", "-n", "get"]
        if family == 6:
            argv.append("-inet6")
        argv.append("default")
        match = self._ROUTE_INTERFACE.search(
            self._run_optional_family(argv, f"ipv{family} default route")
        )
        return [match.group(1)] if match else []

    def _service_for_device(self, device: str) -> str:
        output = self._run(["networksetup", "-listnetworkserviceorder"], "list network services")
        service = None
        for line in output.splitlines():
            line = line.strip()
            header = self._SERVICE_HEADER.match(line)
            if header:
                service = header.group(1).strip()
                continue
            found = self._SERVICE_DEVICE.search(line)
            if found and found.group(1).strip() == device and service:
                return service
        raise ExecutionFailedError(f"No network service found for device {device}")

    def active_interface(self) -> str:
        device = choose_interface(self._default_route_device(4), self._default_route_device(6))
        return self._service_for_device(device)

    def read_servers(self, interface: Optional[str] = None) -> List[str]:
        output = self._run(["scutil", "--dns"], "read resolvers")
        return [line for line in output.splitlines() if "nameserver" in line]

    @staticmethod
    def _flatten(servers: Dict[int, List[str]]) -> List[str]:
        # networksetup takes one list for both families.
        return [address for family in sorted(servers) for address in servers[family][:2]]

    def set_servers(self, interface: str, servers: Dict[int, List[str]]) -> None:
        self._run(
            ["networksetup", "-setdnsservers", interface, *self._flatten(servers)],
            "set resolvers",
        )

    def _osascript(self, argv: Sequence[str], description: str) -> str:
        shell_command = shlex.join(argv)
        script = f"do shell script {_applescript_quote(shell_command)} with administrator privileges"
        return self._run(["osascript", "-e", script], description)

    def set_servers_fallback(self, interface: str, servers: Dict[int, List[str]]) -> None:
        self._osascript(
            ["/usr/sbin/networksetup", "-setdnsservers", interface, *self._flatten(servers)],
            "set resolvers via osascript",
        )

    def reset_servers(self, interface: str, families: Iterable[int]) -> None:
        self._run(["networksetup", "-setdnsservers", interface, "Empty"], "reset resolvers")

    def reset_servers_fallback(self, interface: str, families: Iterable[int]) -> None:
        self._osascript(
            ["/usr/sbin/networksetup", "-setdnsservers", interface, "Empty"],
            "reset resolvers via osascript",
        )

    def flush_cache(self) -> None:
        self._run(["dscacheutil", "-flushcache"], "flush directory cache")
        self._run(["killall", "-HUP", "mDNSResponder"], "restart mDNSResponder")


class LinuxDNSBackend(DNSBackend):
    """resolvectl (systemd-resolved) first, NetworkManager nmcli as the fallback."""

    platform = "linux"

    _ROUTE_DEVICE = re.compile(r"\bdev\s+(\S+)")

    def __init__(self, runner: CommandRunner = run_command, command_timeout: float = DEFAULT_TIMEOUT,
                 resolv_conf: Path = Path("/etc/resolv.conf")):
        super().__init__(runner, command_timeout)
        self.resolv_conf = resolv_conf

    def _default_route_devices(self, family: int) -> List[str]:
        output = self._run_optional_family(
            ["ip", "-o", f"-{family}", "route", "show", "default"],
            f"ipv{family} default route",
        )
        devices = []
        for line in output.splitlines():
            match = self._ROUTE_DEVICE.search(line)
            if match and match.group(1) not in devices:
                devices.append(match.group(1))
        return devices

    def active_interface(self) -> str:
        return choose_interface(self._default_route_devices(4), self._default_route_devices(6))

    def _read_resolv_conf(self) -> List[str]:
        try:
            text = self.resolv_conf.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ExecutionFailedError(f"Cannot read {self.resolv_conf}: {e}") from e
        return [line for line in text.splitlines() if line.strip().startswith("nameserver")]

    def read_servers(self, interface: Optional[str] = None) -> List[str]:
        argv = ["resolvectl", "dns"]
        if interface:
            argv.append(interface)
        try:
            return self._run(argv, "read resolvers").splitlines()
        except ExecutionFailedError as e:
            logger.debug(f"resolvectl unavailable, reading {self.resolv_conf}: {e}")
            return self._read_resolv_conf()

    def set_servers(self, interface: str, servers: Dict[int, List[str]]) -> None:
        addresses = [address for family in sorted(servers) for address in servers[family][:2]]
        self._run(["resolvectl", "dns", interface, *addresses], "set resolvers")
        # Route every lookup through this link so other links cannot bypass it.
        self._run(["resolvectl", "domain", interface, "~."], "set routing domain")

    def set_servers_fallback(self, interface: str, servers: Dict[int, List[str]]) -> None:
        argv = ["nmcli", "device", "modify", interface]
        for family in sorted(servers):
            argv += [f"ipv{family}.dns", " ".join(servers[family][:2]),
                     f"ipv{family}.ignore-auto-dns", "yes"]
        self._run(argv, "set resolvers via nmcli")

    def reset_servers(self, interface: str, families: Iterable[int]) -> None:
        # revert drops every per-link setting, whatever the family.
        self._run(["resolvectl", "revert", interface], "reset resolvers")

    def reset_servers_fallback(self, interface: str, families: Iterable[int]) -> None:
        argv = ["nmcli", "device", "modify", interface]
        for family in sorted(families):
            argv += [f"ipv{family}.dns", "", f"ipv{family}.ignore-auto-dns", "no"]
        self._run(argv, "reset resolvers via nmcli")

    def flush_cache(self) -> None:
        try:
            self._run(["resolvectl", "flush-caches"], "flush resolver cache")
        except ExecutionFailedError as e:
            # Hosts without systemd-resolved have no local cache to flush.
            logger.debug(f"Resolver cache flush skipped: {e}")


_BACKENDS = {
    "windows": WindowsDNSBackend,
    "darwin": MacOSDNSBackend,
    "linux": LinuxDNSBackend,
}


def create_backend(platform: Optional[str] = None, **kwargs) -> DNSBackend:
    """
    Create the DNS backend for a platform.

    Args:
        platform: Platform key; detected when omitted
        **kwargs: Passed to the backend constructor (runner, command_timeout)

    Raises:
        UnsupportedPlatformError: If no backend exists for the platform
    """
    platform = platform or current_platform()
    backend_class = _BACKENDS.get(platform)
    if backend_class is None:
        raise UnsupportedPlatformError(f"DNS filtering is not supported on {platform}")
    logger.debug(f"Using {backend_class.__name__}")
    return backend_class(**kwargs)
