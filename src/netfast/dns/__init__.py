"""
DNS filtering for the netfast package.

This module provides the filter profile table, the per-platform command
backends, the filter state store and the controller that ties them together.
"""

from .backends import (
    DNSBackend,
    LinuxDNSBackend,
    MacOSDNSBackend,
    WindowsDNSBackend,
    choose_interface,
    create_backend,
)
from .controller import DNSFilterController
from .profiles import BUILTIN_PROFILES, ProfileRegistry, normalize_server_list
from .state_store import FilterStateRecord, FilterStateStore

__all__ = [
    # Backends
    "DNSBackend",
    "LinuxDNSBackend",
    "MacOSDNSBackend",
    "WindowsDNSBackend",
    "choose_interface",
    "create_backend",
    # Controller
    "DNSFilterController",
    # Profiles
    "BUILTIN_PROFILES",
    "ProfileRegistry",
    "normalize_server_list",
    # State
    "FilterStateRecord",
    "FilterStateStore",
]
