"""
Independent periodic tasks.

Each `PeriodicTask` owns a timer thread that only schedules: on every tick it
submits the check to the shared worker pool, so a slow external command can
delay its own check but never another timer.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Callable, Optional

from ..executor import ManagedThreadPoolExecutor
from ..validation import ErrorSeverity, handle_error

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs ``fn`` every ``interval`` seconds on a worker pool.

    A tick is skipped while the previous run is still in flight. After
    `cancel` no further run is scheduled; a run already in progress is
    allowed to finish.
    """

    def __init__(self, name: str, interval: float, fn: Callable[[], None],
                 pool: ManagedThreadPoolExecutor):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.fn = fn
        self.pool = pool
        self.runs = 0
        self.skipped = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._in_flight: Optional[Future] = None

    @property
    def is_active(self) -> bool:
        return self._thread is not None and not self._stop_event.is_set()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"Periodic task '{self.name}' already started")
        self._thread = threading.Thread(
            target=self._loop, name=f"Timer-{self.name}", daemon=True
        )
        self._thread.start()
        logger.debug(f"Periodic task '{self.name}' started (every {self.interval}s)")

    def cancel(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.debug(f"Periodic task '{self.name}' cancelled")

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self._tick()

    def _tick(self) -> None:
        if self._in_flight is not None and not self._in_flight.done():
            self.skipped += 1
            logger.debug(f"Skipping '{self.name}' tick; previous run still in progress")
            return
        try:
            self._in_flight = self.pool.submit(self.run_once)
        except RuntimeError as e:
            # Pool went away underneath us; stop() is in progress.
            logger.debug(f"Could not schedule '{self.name}': {e}")

    def run_once(self) -> None:
        """Run the task body, logging instead of propagating failures."""
        if self._stop_event.is_set() and self._thread is not None:
            return
        try:
            self.fn()
        except Exception as e:
            handle_error(
                error=e,
                context=f"periodic task '{self.name}'",
                severity=ErrorSeverity.ERROR,
                reraise=False,
                logger=logger,
            )
        finally:
            self.runs += 1
