"""
DNS data models.

This module contains the filter profile definition and the results produced
by the DNS filter controller when it reads, applies or removes a profile.
"""

import ipaddress
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class FilterProfile:
    """
    A named filtering provider and its resolver addresses.
    """

    # Unique key, e.g. "opendns".
    name: str
    # Ordered resolver addresses; the first one is the primary.
    resolver_addresses: Tuple[str, ...]
    # Human-readable notes shown by `netfast profiles`.
    description: str = ""

    @property
    def primary(self) -> str:
        return self.resolver_addresses[0]

    @property
    def secondary(self) -> Optional[str]:
        return self.resolver_addresses[1] if len(self.resolver_addresses) > 1 else None

    def addresses_by_family(self) -> Dict[int, List[str]]:
        """Group addresses by IP version (4 or 6), preserving order."""
        families: Dict[int, List[str]] = {}
        for address in self.resolver_addresses:
            version = ipaddress.ip_address(address).version
            families.setdefault(version, []).append(address)
        return families

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "resolverAddresses": list(self.resolver_addresses),
            "description": self.description,
        }


@dataclass
class DNSObservation:
    """
    A point-in-time read of the system's configured resolvers.
    """

    # Raw resolver lines as reported by the OS (IPv4 and IPv6 mixed).
    raw_server_list: List[str] = field(default_factory=list)
    # The profile whose address was found in the live read, if any.
    matched_profile: Optional[FilterProfile] = None
    # Last persisted provider name; for display only, never for is_filtered.
    last_known_filter_type: Optional[str] = None
    # Set when the underlying read failed and the observation is a placeholder.
    read_failed: bool = False

    @property
    def is_filtered(self) -> bool:
        return self.matched_profile is not None

    @property
    def display_filter_type(self) -> Optional[str]:
        if self.matched_profile is not None:
            return self.matched_profile.name
        return self.last_known_filter_type

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentDNS": "\n".join(self.raw_server_list),
            "isFiltered": self.is_filtered,
            "matchedProfile": self.matched_profile.name if self.matched_profile else None,
            "filterType": self.display_filter_type,
            "readFailed": self.read_failed,
        }


@dataclass
class AppliedResult:
    """Outcome of a successful `apply`."""

    profile: FilterProfile
    interface: str
    observation: DNSObservation
    # True when the native CLI path did not verify and the scripting host was used.
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filterType": self.profile.name,
            "appliedServers": list(self.profile.resolver_addresses),
            "interface": self.interface,
            "usedFallback": self.used_fallback,
            "observation": self.observation.to_dict(),
        }


@dataclass
class RemovedResult:
    """Outcome of a successful `remove`."""

    interface: str
    # IP versions that were reset to automatic configuration.
    families: List[int]
    observation: DNSObservation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": "DNS filter removed, restored to automatic",
            "interface": self.interface,
            "families": [f"ipv{family}" for family in self.families],
            "observation": self.observation.to_dict(),
        }
