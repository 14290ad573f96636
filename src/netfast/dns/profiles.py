"""
Built-in filter profiles and resolver matching.

The profile table is fixed at process start. `ProfileRegistry` builds the
address index once and is the only place raw resolver output is matched
against known providers.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ..models.dns import FilterProfile
from ..validation import UnknownProfileError, ValidationError, validate_ip_address

logger = logging.getLogger(__name__)

# Table order is match order.
BUILTIN_PROFILES: Sequence[FilterProfile] = (
    FilterProfile(
        name="opendns",
        resolver_addresses=("208.67.222.222", "208.67.220.220"),
        description="Family Shield (adult content + malware)",
    ),
    FilterProfile(
        name="cleanBrowsing",
        resolver_addresses=("185.228.168.168", "185.228.169.168"),
        description="Adult content filtering",
    ),
    FilterProfile(
        name="cloudflareFamily",
        resolver_addresses=("1.1.1.3", "1.0.0.3"),
        description="Family protection",
    ),
)


def normalize_server_list(raw: Iterable[str]) -> List[str]:
    """Split raw resolver output on line boundaries, trim, drop empties."""
    lines: List[str] = []
    for chunk in raw:
        for line in str(chunk).splitlines():
            line = line.strip()
            if line:
                lines.append(line)
    return lines


class ProfileRegistry:
    """
    Immutable lookup over the filter profile table.

    Raises:
        ValidationError: At construction, if a name or an address is
            duplicated or an address is not a valid IP
    """

    def __init__(self, profiles: Sequence[FilterProfile] = BUILTIN_PROFILES):
        self._profiles: Dict[str, FilterProfile] = {}
        self._address_index: Dict[str, str] = {}

        for profile in profiles:
            if profile.name in self._profiles:
                raise ValidationError(
                    f"Duplicate filter profile name: {profile.name}",
                    field_name="profiles", value=profile.name,
                )
            if not profile.resolver_addresses:
                raise ValidationError(
                    f"Filter profile '{profile.name}' has no resolver addresses",
                    field_name="profiles", value=profile.name,
                )
            for address in profile.resolver_addresses:
                validate_ip_address(address, field_name=f"profiles.{profile.name}")
                owner = self._address_index.get(address)
                if owner is not None:
                    raise ValidationError(
                        f"Resolver {address} is shared by profiles '{owner}' and '{profile.name}'",
                        field_name="profiles", value=address,
                    )
                self._address_index[address] = profile.name
            self._profiles[profile.name] = profile

        logger.debug(f"Loaded {len(self._profiles)} filter profiles")

    def __iter__(self):
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, name: str) -> bool:
        return name in self._profiles

    @property
    def names(self) -> List[str]:
        return list(self._profiles)

    @property
    def address_index(self) -> Dict[str, str]:
        return dict(self._address_index)

    def get(self, name: str) -> FilterProfile:
        try:
            return self._profiles[name]
        except KeyError:
            raise UnknownProfileError(
                f"Unknown filter type: {name}. Available: {', '.join(self._profiles)}"
            ) from None

    def match_servers(self, raw_server_list: Iterable[str]) -> Optional[FilterProfile]:
        """
        Find the profile whose address appears in the resolver output.

        Each address is tested as a substring of every normalized line, in
        profile-table order; the first hit wins.
        """
        lines = normalize_server_list(raw_server_list)
        if not lines:
            return None
        for address, name in self._address_index.items():
            if any(address in line for line in lines):
                return self._profiles[name]
        return None
