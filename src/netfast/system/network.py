"""
Network interface and process inspection using psutil.
"""

import logging
import re
import socket
from typing import Iterable, List

import psutil

logger = logging.getLogger(__name__)

# Interface names used by VPN clients and tunnel drivers across platforms.
TUNNEL_INTERFACE_PATTERN = re.compile(
    r"^(tun|tap|utun|ppp|wg|ipsec|gpd|vpn)\d*"
    r"|vpn|wireguard|tailscale|zerotier|openvpn|tap-windows|wintun",
    re.IGNORECASE,
)


def is_tunnel_interface(name: str) -> bool:
    return TUNNEL_INTERFACE_PATTERN.search(name) is not None


def find_tunnel_interfaces() -> List[str]:
    """
    Return the names of active tunnel-type interfaces.

    Interfaces that are down are not reported. macOS keeps several utun
    interfaces up for system services with only IPv6 link-local addresses,
    so a utun counts only once it carries an IPv4 address.
    """
    stats = psutil.net_if_stats()
    addrs = psutil.net_if_addrs()
    found = []
    for name, stat in stats.items():
        if not stat.isup or not is_tunnel_interface(name):
            continue
        if name.lower().startswith("utun"):
            families = {addr.family for addr in addrs.get(name, [])}
            if socket.AF_INET not in families:
                continue
        found.append(name)
    if found:
        logger.debug(f"Tunnel interfaces up: {found}")
    return found


def find_browser_processes(browser_names: Iterable[str]) -> List[str]:
    """
    Return the names of running processes that match a known browser.

    Args:
        browser_names: Executable names to look for (case-insensitive)

    Returns:
        Sorted, de-duplicated list of matched process names
    """
    wanted = {name.lower() for name in browser_names}
    found = set()
    for proc in psutil.process_iter(["pid", "name"]):
        try:
            name = (proc.info.get("name") or "").lower()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        if name in wanted:
            found.add(name)
    return sorted(found)
