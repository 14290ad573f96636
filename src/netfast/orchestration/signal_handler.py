"""
Signal handling for the foreground agent.

SIGINT and SIGTERM both request a graceful shutdown by setting an event the
CLI loop waits on. The escalation machine's terminator uses SIGTERM too, so
a final violation goes through the same shutdown path.
"""

import logging
import signal
import threading
from typing import Any, Optional

logger = logging.getLogger(__name__)


class SignalHandler:
    """
    Manages SIGINT/SIGTERM registration and restores the previous handlers.
    """

    def __init__(self, shutdown_requested: Optional[threading.Event] = None):
        self.shutdown_requested = shutdown_requested or threading.Event()
        self._original_sigint_handler = None
        self._original_sigterm_handler = None
        self._signal_handlers_set = False

    def setup_signal_handlers(self) -> None:
        """Install handlers; must run on the main thread."""
        try:
            self._original_sigint_handler = signal.signal(signal.SIGINT, self._handle_signal)
            self._original_sigterm_handler = signal.signal(signal.SIGTERM, self._handle_signal)
            self._signal_handlers_set = True
            logger.debug("Signal handlers installed")
        except Exception as e:
            logger.warning(f"Failed to set up signal handlers: {e}")

    def cleanup_signal_handlers(self) -> None:
        """Restore original signal handlers."""
        if not self._signal_handlers_set:
            return

        try:
            if self._original_sigint_handler is not None:
                signal.signal(signal.SIGINT, self._original_sigint_handler)
            if self._original_sigterm_handler is not None:
                signal.signal(signal.SIGTERM, self._original_sigterm_handler)
            logger.debug("Signal handlers restored")
        except Exception as e:
            logger.warning(f"Failed to restore signal handlers: {e}")
        finally:
            self._signal_handlers_set = False

    def _handle_signal(self, signum: int, frame: Any) -> None:
        if self.shutdown_requested.is_set():
            logger.warning("Shutdown already in progress. Please be patient.")
            return
        logger.info(f"Signal {signal.strsignal(signum)} received. Initiating graceful shutdown...")
        self.shutdown_requested.set()

    def wait(self, poll_interval: float = 1.0) -> None:
        """Block until a shutdown is requested."""
        while not self.shutdown_requested.wait(poll_interval):
            pass
