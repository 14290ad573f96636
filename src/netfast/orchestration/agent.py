"""
Agent container and UI-facing handlers.

`Agent` is built once per process from the loaded configuration and owns
every long-lived collaborator: the DNS filter controller, the escalation
state machine, the integrity monitor and the accountability notifier. The
handler methods are what a dashboard calls; each returns an envelope of the
form ``{"success": True, "result": ...}`` or ``{"success": False, "error": ...}``
and never raises.
"""

import logging
from typing import Any, Callable, Dict, Optional

from ..accountability import AccountabilityNotifier, SponsorContact
from ..config import validate_monitoring_config
from ..dns import DNSBackend, DNSFilterController
from ..escalation import EscalationStateMachine, terminate_process
from ..executor import ThreadPoolConfig
from ..models.config import AppConfig
from ..monitoring import IntegrityMonitor
from ..system import elevation_prompt_command, is_elevated, run_command
from ..validation import (
    DNSFilterError,
    ErrorSeverity,
    ValidationError,
    handle_error,
    user_message_for,
)

logger = logging.getLogger(__name__)

Envelope = Dict[str, Any]


def _ok(result: Any) -> Envelope:
    return {"success": True, "result": result}


def _fail(error: Exception) -> Envelope:
    if isinstance(error, ValidationError):
        message = str(error)
    else:
        message = user_message_for(error)
    envelope: Envelope = {"success": False, "error": message}
    if isinstance(error, DNSFilterError):
        envelope["errorKind"] = error.kind.value
    return envelope


class Agent:
    """
    Dependency container for one running agent process.

    Args:
        config: The validated application configuration
        controller: DNS filter controller
        escalation: Violation escalation state machine
        monitor: Integrity monitor driving the periodic checks
        notifier: Accountability notifier
        runner: Executes the elevation prompt command
    """

    def __init__(
        self,
        config: AppConfig,
        controller: DNSFilterController,
        escalation: EscalationStateMachine,
        monitor: IntegrityMonitor,
        notifier: AccountabilityNotifier,
        runner: Callable = run_command,
    ):
        self.config = config
        self.controller = controller
        self.escalation = escalation
        self.monitor = monitor
        self.notifier = notifier
        self._runner = runner

    @classmethod
    def from_config(
        cls,
        app_config: AppConfig,
        backend: Optional[DNSBackend] = None,
        terminator: Callable[[], None] = terminate_process,
        autostart: Optional[Callable[[bool], None]] = None,
    ) -> "Agent":
        """Wire every collaborator from configuration."""
        agent_settings = app_config.agent
        controller = DNSFilterController.from_settings(agent_settings, backend=backend)

        sponsor = None
        total_days = 40
        if app_config.sponsor is not None:
            sponsor = SponsorContact(app_config.sponsor.name, app_config.sponsor.email)
            total_days = app_config.sponsor.total_days
        notifier = AccountabilityNotifier(sponsor=sponsor, total_days=total_days)

        escalation = EscalationStateMachine(
            controller,
            notifier=notifier,
            default_profile=agent_settings.default_profile,
            terminator=terminator,
        )

        monitor_kwargs: Dict[str, Any] = {}
        if autostart is not None:
            monitor_kwargs["autostart"] = autostart
        monitor = IntegrityMonitor(
            controller,
            escalation,
            notifier=notifier,
            config=app_config.monitoring,
            pool_config=ThreadPoolConfig(max_workers=agent_settings.worker_threads),
            **monitor_kwargs,
        )

        logger.info(
            f"Agent ready: profiles {', '.join(controller.registry.names)}, "
            f"default {agent_settings.default_profile}"
        )
        return cls(app_config, controller, escalation, monitor, notifier)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_protection(self) -> None:
        """Register launch at login as configured and start monitoring."""
        self.monitor.sync_autostart()
        self.monitor.start()

    def shutdown(self) -> None:
        self.monitor.stop()
        logger.info("Agent shut down")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def check_status(self) -> Envelope:
        observation = self.controller.check_current()
        return _ok(observation.to_dict())

    def apply_filter(self, filter_type: Optional[str] = None) -> Envelope:
        name = filter_type or self.config.agent.default_profile
        try:
            result = self.controller.apply(name)
        except DNSFilterError as e:
            handle_error(e, f"applying filter '{name}'", severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
            return _fail(e)
        return _ok(result.to_dict())

    def remove_filter(self) -> Envelope:
        try:
            result = self.controller.remove()
        except DNSFilterError as e:
            handle_error(e, "removing filter", severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
            return _fail(e)
        return _ok(result.to_dict())

    def restore_protection(self) -> Envelope:
        """Re-apply the last known profile and clear the violation count."""
        try:
            transition = self.escalation.restore_protection()
        except DNSFilterError as e:
            handle_error(e, "restoring protection", severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
            return _fail(e)
        if transition is None:
            return {"success": False, "error": "Protection cannot be restored after termination."}
        return _ok(transition.state.to_dict())

    def request_elevated_privileges(self) -> Envelope:
        if is_elevated():
            return _ok({"elevated": True})
        try:
            self._runner(elevation_prompt_command())
        except DNSFilterError as e:
            handle_error(e, "requesting administrator rights", severity=ErrorSeverity.WARNING, reraise=False, logger=logger)
            return _fail(e)
        return _ok({"elevated": False, "granted": True})

    def update_monitoring_settings(self, settings: Dict[str, Any]) -> Envelope:
        try:
            new_config = validate_monitoring_config(settings, base=self.monitor.config)
        except ValidationError as e:
            handle_error(e, "monitoring settings update", severity=ErrorSeverity.WARNING, reraise=False, logger=logger)
            return _fail(e)
        self.monitor.update_settings(new_config)
        return _ok(new_config.to_dict())

    def get_escalation_status(self) -> Envelope:
        return _ok(self.escalation.status().to_dict())

    def list_profiles(self) -> Envelope:
        return _ok([profile.to_dict() for profile in self.controller.registry])

    def get_progress(self) -> Envelope:
        return _ok(self.notifier.progress_summary().to_dict())

    def on_ui_closed(self) -> Envelope:
        """The dashboard closed; keep enforcing only in background-service mode."""
        if not self.monitor.config.background_service:
            logger.info("UI closed and background service disabled; stopping monitoring")
            self.monitor.stop()
        return _ok({"monitoring": self.monitor.is_running})
