"""
DNS filter controller.

Applies, removes and verifies filter profiles on the active network
interface. All OS interaction goes through a `DNSBackend`; this module owns
the verification-with-fallback flow, the "currently applied" cache and the
filter state store.
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Set

from ..models.config import AgentSettings
from ..models.dns import AppliedResult, DNSObservation, FilterProfile, RemovedResult
from ..validation import (
    ErrorSeverity,
    ExecutionFailedError,
    handle_error,
)
from .backends import FAMILIES, DNSBackend, create_backend
from .profiles import ProfileRegistry, normalize_server_list
from .state_store import FilterStateStore

logger = logging.getLogger(__name__)


class DNSFilterController:
    """
    Controls the system resolver configuration.

    `apply` and `remove` are serialized with each other and surface typed
    errors. `check_current` is safe to call from polling loops: it never
    raises.
    """

    def __init__(
        self,
        backend: DNSBackend,
        state_store: FilterStateStore,
        registry: Optional[ProfileRegistry] = None,
        settle_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.backend = backend
        self.state_store = state_store
        self.registry = registry or ProfileRegistry()
        self.settle_delay = settle_delay
        self._sleep = sleep

        self._mutation_lock = threading.Lock()
        # Guards the fields below, which polling threads read.
        self._state_lock = threading.Lock()
        self._applied_profile: Optional[FilterProfile] = None
        self._interface: Optional[str] = None
        self._touched_families: Set[int] = set()
        self._persisted_type: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: AgentSettings, backend: Optional[DNSBackend] = None) -> "DNSFilterController":
        backend = backend or create_backend(command_timeout=settings.command_timeout)
        return cls(
            backend=backend,
            state_store=FilterStateStore(settings.state_file),
            settle_delay=settings.settle_delay,
        )

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    @property
    def applied_profile(self) -> Optional[FilterProfile]:
        with self._state_lock:
            return self._applied_profile

    def last_known_profile_name(self, default: str) -> str:
        """Profile to re-apply on "restore": live cache, then persisted record, then default."""
        applied = self.applied_profile
        if applied is not None:
            return applied.name
        record = self.state_store.load()
        if record is not None and record.filter_type in self.registry:
            return record.filter_type
        return default

    def _read(self, interface: Optional[str]) -> List[str]:
        return normalize_server_list(self.backend.read_servers(interface))

    def _observe(self, raw: List[str]) -> DNSObservation:
        matched = self.registry.match_servers(raw)
        observation = DNSObservation(raw_server_list=raw, matched_profile=matched)
        if matched is not None:
            self._persist(matched.name)
        elif self._filter_expected():
            record = self.state_store.load()
            observation.last_known_filter_type = record.filter_type if record else None
        return observation

    def _filter_expected(self) -> bool:
        with self._state_lock:
            if self._applied_profile is not None:
                return True
        return self.state_store.path.exists()

    def _persist(self, filter_type: str) -> None:
        with self._state_lock:
            if self._persisted_type == filter_type:
                return
            self._persisted_type = filter_type
        self.state_store.save(filter_type)

    def check_current(self) -> DNSObservation:
        """
        Read the configured resolvers and match them against known profiles.

        A failed read is logged and reported as unfiltered.
        """
        with self._state_lock:
            interface = self._interface
        try:
            raw = self._read(interface)
        except Exception as e:
            handle_error(
                error=e,
                context="reading current DNS servers",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )
            observation = DNSObservation(read_failed=True)
            if self._filter_expected():
                record = self.state_store.load()
                observation.last_known_filter_type = record.filter_type if record else None
            return observation
        return self._observe(raw)

    # ------------------------------------------------------------------
    # Mutating
    # ------------------------------------------------------------------

    def _settle_and_verify(self, interface: str) -> DNSObservation:
        if self.settle_delay > 0:
            self._sleep(self.settle_delay)
        return self._observe(self._read(interface))

    @staticmethod
    def _verifies(observation: DNSObservation, profile: FilterProfile) -> bool:
        if observation.matched_profile != profile:
            return False
        lines = observation.raw_server_list
        return all(any(address in line for line in lines) for address in profile.resolver_addresses)

    def apply(self, profile_name: str) -> AppliedResult:
        """
        Apply a filter profile to the active interface and verify it.

        Raises:
            UnknownProfileError: ``profile_name`` is not a built-in profile
            UnsupportedPlatformError, PermissionDeniedError, ExecutionFailedError
        """
        profile = self.registry.get(profile_name)
        servers: Dict[int, List[str]] = {
            family: addresses[:2] for family, addresses in profile.addresses_by_family().items()
        }

        with self._mutation_lock:
            interface = self.backend.active_interface()
            logger.info(f"Applying '{profile.name}' {profile.resolver_addresses} to '{interface}'")
            with self._state_lock:
                self._interface = interface
                self._touched_families.update(servers)

            native_error: Optional[ExecutionFailedError] = None
            try:
                self.backend.set_servers(interface, servers)
                self.backend.flush_cache()
            except ExecutionFailedError as e:
                native_error = e

            if native_error is None:
                observation = self._settle_and_verify(interface)
                if self._verifies(observation, profile):
                    return self._applied(profile, interface, observation, used_fallback=False)
                logger.warning(
                    f"Resolvers did not verify after native command "
                    f"(read {observation.raw_server_list}); trying scripting host"
                )
            else:
                logger.warning(f"Native DNS command failed ({native_error}); trying scripting host")

            self.backend.set_servers_fallback(interface, servers)
            self.backend.flush_cache()
            observation = self._settle_and_verify(interface)
            if not self._verifies(observation, profile):
                raise ExecutionFailedError(
                    f"DNS servers for '{profile.name}' did not take effect on '{interface}'"
                )
            return self._applied(profile, interface, observation, used_fallback=True)

    def _applied(self, profile: FilterProfile, interface: str,
                 observation: DNSObservation, used_fallback: bool) -> AppliedResult:
        with self._state_lock:
            self._applied_profile = profile
        logger.info(f"DNS filter '{profile.name}' active on '{interface}'")
        return AppliedResult(profile, interface, observation, used_fallback)

    def remove(self) -> RemovedResult:
        """
        Restore automatic resolvers on every family touched by `apply`.

        Raises:
            UnsupportedPlatformError, PermissionDeniedError, ExecutionFailedError
        """
        with self._mutation_lock:
            interface = self.backend.active_interface()
            with self._state_lock:
                # Nothing recorded means a fresh process; reset both families.
                families = sorted(self._touched_families) or list(FAMILIES)
            logger.info(f"Removing DNS filter from '{interface}' (ipv{families})")

            native_ok = True
            try:
                self.backend.reset_servers(interface, families)
                self.backend.flush_cache()
            except ExecutionFailedError as e:
                logger.warning(f"Native DNS reset failed ({e}); trying scripting host")
                native_ok = False

            observation = self._settle_and_verify(interface) if native_ok else None
            if observation is None or observation.is_filtered:
                self.backend.reset_servers_fallback(interface, families)
                self.backend.flush_cache()
                observation = self._settle_and_verify(interface)
                if observation.is_filtered:
                    raise ExecutionFailedError(
                        f"Filter '{observation.matched_profile.name}' still active on '{interface}'"
                    )

            with self._state_lock:
                self._applied_profile = None
                self._touched_families.clear()
                self._persisted_type = None
            self.state_store.clear()
            logger.info("DNS filter removed, restored to automatic")
            return RemovedResult(interface, families, observation)

