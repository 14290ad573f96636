"""
Violation escalation state machine.

Clean -> Warned -> Terminated. Violations may arrive from several timer
threads at once, so the increment and the phase decision happen in one
critical section; side effects (sponsor notification, warning, filter
removal, process exit) run outside it.
"""

import logging
import os
import signal
import threading
from typing import Any, Callable, List, Optional

from ..accountability.notifier import AccountabilityNotifier
from ..dns.controller import DNSFilterController
from ..models.escalation import (
    MAX_VIOLATIONS,
    EscalationPhase,
    EscalationState,
    EscalationTransition,
    TransitionKind,
    ViolationEvent,
    WarningChoice,
)
from ..validation import ErrorSeverity, handle_error

logger = logging.getLogger(__name__)

Subscriber = Callable[[EscalationTransition], Any]
WarningHandler = Callable[[EscalationTransition], WarningChoice]

WARNING_TITLE = "NetFast - Gentle Reminder"
WARNING_TEXT = (
    "We noticed an attempt to modify your digital discipline settings ({reason}).\n\n"
    "Remember, you chose this path for your spiritual growth and inner peace.\n\n"
    "This is your compassionate reminder - we believe in your strength to honor "
    "your commitment.\n\n"
    "One more attempt to bypass your protection will unfortunately require us to "
    "end your sacred journey with NetFast."
)
FINAL_TITLE = "NetFast - Journey Complete"
FINAL_TEXT = (
    "We understand that the path of digital discipline is challenging.\n\n"
    "Your subscription has been terminated due to repeated attempts to bypass "
    "your protection ({reason}).\n\n"
    "When you're ready to commit fully to your spiritual growth, we'll be here "
    "to welcome you back with open arms.\n\n"
    "May you find peace in your choices."
)
RESTORED_TITLE = "NetFast - Protection Restored"
RESTORED_TEXT = "Your protection is active again. Thank you for honoring your commitment."


def terminate_process() -> None:
    """Ask the hosting process to shut down through its SIGTERM handler."""
    logger.critical("Terminating NetFast agent after final violation")
    os.kill(os.getpid(), signal.SIGTERM)


class EscalationStateMachine:
    """
    Bounded warning/termination policy over violation events.

    Args:
        controller: Used to restore the filter and to remove it on termination
        notifier: Sponsor notification boundary; failures never block escalation
        max_violations: Violations that end the fast (one warning, then termination)
        default_profile: Profile restored when no applied profile is known
        terminator: Ends the hosting process
    """

    def __init__(
        self,
        controller: DNSFilterController,
        notifier: Optional[AccountabilityNotifier] = None,
        max_violations: int = MAX_VIOLATIONS,
        default_profile: str = "opendns",
        terminator: Callable[[], None] = terminate_process,
    ):
        if max_violations < 1:
            raise ValueError(f"max_violations must be >= 1, got {max_violations}")
        self.controller = controller
        self.notifier = notifier
        self.default_profile = default_profile
        self.terminator = terminator

        self._lock = threading.Lock()
        self._state = EscalationState(max_violations=max_violations)
        self._subscribers: List[Subscriber] = []
        self._warning_handler: Optional[WarningHandler] = None

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a transition listener; returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def set_warning_handler(self, handler: Optional[WarningHandler]) -> None:
        """Install the UI decision for warnings (acknowledge or restore)."""
        self._warning_handler = handler

    def _publish(self, transition: EscalationTransition) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(transition)
            except Exception as e:
                handle_error(
                    error=e,
                    context=f"escalation subscriber {getattr(callback, '__name__', callback)!r}",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger,
                )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def status(self) -> EscalationState:
        with self._lock:
            return self._state.snapshot()

    @property
    def is_terminated(self) -> bool:
        with self._lock:
            return self._state.phase is EscalationPhase.TERMINATED

    def on_violation(self, event: ViolationEvent) -> EscalationTransition:
        """
        Consume one violation and drive the resulting side effects.

        Returns:
            The transition that was decided for this event
        """
        with self._lock:
            state = self._state
            if state.phase is EscalationPhase.TERMINATED:
                kind = TransitionKind.IGNORED
            else:
                state.violation_count += 1
                if state.violation_count >= state.max_violations:
                    state.phase = EscalationPhase.TERMINATED
                    kind = TransitionKind.TERMINATION
                else:
                    state.phase = EscalationPhase.WARNED
                    kind = TransitionKind.WARNING
            snapshot = state.snapshot()

        if kind is TransitionKind.IGNORED:
            logger.info(f"Violation after termination ignored: {event.reason}")
            return EscalationTransition(kind, event, snapshot)

        logger.warning(
            f"Violation detected: {event.reason} "
            f"({snapshot.violation_count}/{snapshot.max_violations})"
        )
        if self.notifier is not None:
            try:
                self.notifier.notify_violation(event)
            except Exception as e:
                handle_error(
                    error=e,
                    context="sponsor violation alert",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger,
                )

        if kind is TransitionKind.WARNING:
            transition = EscalationTransition(
                kind, event, snapshot,
                title=WARNING_TITLE,
                message=WARNING_TEXT.format(reason=event.reason),
            )
            self._warn(transition)
        else:
            transition = EscalationTransition(
                kind, event, snapshot,
                title=FINAL_TITLE,
                message=FINAL_TEXT.format(reason=event.reason),
            )
            self._terminate(transition)
        return transition

    def _warn(self, transition: EscalationTransition) -> None:
        self._publish(transition)

        choice = WarningChoice.ACKNOWLEDGE
        handler = self._warning_handler
        if handler is not None:
            try:
                choice = handler(transition)
            except Exception as e:
                handle_error(
                    error=e,
                    context="warning handler",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger,
                )

        if choice is WarningChoice.RESTORE:
            try:
                self.restore_protection()
            except Exception as e:
                handle_error(
                    error=e,
                    context="restoring protection after warning",
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger,
                )
        else:
            logger.info("Warning acknowledged; protection left as is")

    def restore_protection(self) -> Optional[EscalationTransition]:
        """
        Re-apply the last-known profile and reset the violation count.

        Returns:
            The RESTORED transition, or None if escalation already terminated

        Raises:
            DNSFilterError: If the profile could not be applied; the count
                is left unchanged
        """
        if self.is_terminated:
            logger.warning("Restore requested after termination; ignoring")
            return None

        profile_name = self.controller.last_known_profile_name(self.default_profile)
        logger.info(f"Restoring protection with profile '{profile_name}'")
        self.controller.apply(profile_name)

        with self._lock:
            terminated = self._state.phase is EscalationPhase.TERMINATED
            if not terminated:
                self._state.violation_count = 0
                self._state.phase = EscalationPhase.CLEAN
                snapshot = self._state.snapshot()

        if terminated:
            # A final violation won the race; its removal may predate this apply.
            logger.warning("Escalation terminated during restore; removing filter again")
            try:
                self.controller.remove()
            except Exception as e:
                handle_error(
                    error=e,
                    context="removing DNS filter after late restore",
                    severity=ErrorSeverity.CRITICAL,
                    reraise=False,
                    logger=logger,
                )
            return None

        transition = EscalationTransition(
            TransitionKind.RESTORED,
            ViolationEvent(f"Protection restored with {profile_name}"),
            snapshot,
            title=RESTORED_TITLE,
            message=RESTORED_TEXT,
        )
        self._publish(transition)
        return transition

    def _terminate(self, transition: EscalationTransition) -> None:
        self._publish(transition)
        try:
            self.controller.remove()
        except Exception as e:
            # The intent to stop is unconditional at this point.
            handle_error(
                error=e,
                context="removing DNS filter during termination",
                severity=ErrorSeverity.CRITICAL,
                reraise=False,
                logger=logger,
            )
        self.terminator()
