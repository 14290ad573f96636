"""
Integrity monitor.

Owns the periodic checks and the worker pool they run on. The monitor is
either stopped or running with exactly one configuration: settings updates
stop every timer, swap the configuration and start again under one lock.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..accountability.notifier import AccountabilityNotifier
from ..dns.controller import DNSFilterController
from ..escalation.machine import EscalationStateMachine
from ..executor import ManagedThreadPoolExecutor, ThreadPoolConfig
from ..models.config import MonitoringConfig
from ..system.autostart import set_autostart
from ..validation import ErrorSeverity, handle_error
from .checks import DNSIntegrityCheck, UsageSamplingCheck, VPNDetectionCheck
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)


class MonitorState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class IntegrityMonitor:
    """
    Schedules integrity checks and routes their violations to escalation.

    Args:
        controller: DNS filter controller read by the DNS integrity check
        escalation: Receives every violation event
        notifier: Receives usage-sampling data points
        config: Initial monitoring configuration
        pool_config: Worker pool settings
        autostart: Registers/unregisters launch at login
    """

    def __init__(
        self,
        controller: DNSFilterController,
        escalation: EscalationStateMachine,
        notifier: Optional[AccountabilityNotifier] = None,
        config: Optional[MonitoringConfig] = None,
        pool_config: Optional[ThreadPoolConfig] = None,
        autostart: Callable[[bool], None] = set_autostart,
    ):
        self.controller = controller
        self.escalation = escalation
        self.notifier = notifier
        self.pool_config = pool_config or ThreadPoolConfig()
        self.autostart = autostart

        self._lock = threading.RLock()
        self._config = config or MonitoringConfig()
        self._state = MonitorState.STOPPED
        self._tasks: Dict[str, PeriodicTask] = {}
        self._pool: Optional[ManagedThreadPoolExecutor] = None

    @property
    def config(self) -> MonitoringConfig:
        with self._lock:
            return self._config

    @property
    def state(self) -> MonitorState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state is MonitorState.RUNNING

    @property
    def task_names(self) -> List[str]:
        with self._lock:
            return list(self._tasks)

    def start(self, config: Optional[MonitoringConfig] = None) -> None:
        """Start one periodic task per enabled check; no-op if already running."""
        with self._lock:
            if self._state is MonitorState.RUNNING:
                logger.debug("Monitoring already active")
                return
            if config is not None:
                self._config = config
            self._start_locked()

    def stop(self) -> None:
        """Cancel every periodic task. Safe to call in any state."""
        with self._lock:
            self._stop_locked()

    def update_settings(self, new_config: MonitoringConfig) -> None:
        """Replace the configuration; a running monitor is restarted with it."""
        with self._lock:
            old_config = self._config
            was_running = self._state is MonitorState.RUNNING
            if was_running:
                self._stop_locked()
            self._config = new_config
            if was_running:
                self._start_locked()
            logger.info(f"Monitoring settings updated: {new_config.to_dict()}")

        if new_config.auto_start_on_boot != old_config.auto_start_on_boot:
            self.sync_autostart()

    def sync_autostart(self) -> None:
        """Apply the current `auto_start_on_boot` setting; failures are logged."""
        enabled = self.config.auto_start_on_boot
        try:
            self.autostart(enabled)
        except Exception as e:
            handle_error(
                error=e,
                context="updating launch-at-login registration",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )

    def _build_tasks(self, config: MonitoringConfig, pool: ManagedThreadPoolExecutor) -> List[PeriodicTask]:
        tasks = [
            PeriodicTask(
                DNSIntegrityCheck.name,
                config.dns_check_interval,
                DNSIntegrityCheck(self.controller, self.escalation.on_violation),
                pool,
            )
        ]
        if config.proxy_vpn_detection:
            tasks.append(PeriodicTask(
                VPNDetectionCheck.name,
                config.vpn_check_interval,
                VPNDetectionCheck(self.escalation.on_violation),
                pool,
            ))
        if config.usage_monitoring:
            recorder = self.notifier.add_strength_moment if self.notifier is not None else None
            tasks.append(PeriodicTask(
                UsageSamplingCheck.name,
                config.usage_check_interval,
                UsageSamplingCheck(config.browser_names, recorder),
                pool,
            ))
        if config.screenshot_detection:
            logger.info("Screenshot detection is reserved and has no check yet")
        return tasks

    def _start_locked(self) -> None:
        config = self._config
        pool = ManagedThreadPoolExecutor(self.pool_config)
        pool.start()
        tasks = self._build_tasks(config, pool)
        for task in tasks:
            task.start()
        self._pool = pool
        self._tasks = {task.name: task for task in tasks}
        self._state = MonitorState.RUNNING
        logger.info(f"NetFast protection monitoring started: {', '.join(self._tasks)}")

    def _stop_locked(self) -> None:
        if self._state is MonitorState.STOPPED and self._pool is None:
            return
        for task in self._tasks.values():
            task.cancel(wait=True, timeout=1.0)
        if self._pool is not None:
            # A check already running may finish; it cannot schedule a successor.
            self._pool.shutdown(wait=False, cancel_futures=True)
        self._tasks = {}
        self._pool = None
        self._state = MonitorState.STOPPED
        logger.info("NetFast protection monitoring stopped")
