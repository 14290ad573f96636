"""
Worker thread pool for integrity checks.

Checks block on external commands, so they never run on the timer threads
themselves; the timers submit them here.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set

from ..validation import ErrorSeverity, handle_error

logger = logging.getLogger(__name__)


@dataclass
class ThreadPoolConfig:
    """Configuration for the check worker pool."""

    max_workers: int = 3
    thread_name_prefix: str = "CheckWorker"


class ManagedThreadPoolExecutor:
    """
    ThreadPoolExecutor with lifecycle guards and task statistics.
    """

    def __init__(self, config: Optional[ThreadPoolConfig] = None):
        """
        Initialize the managed thread pool executor.

        Args:
            config: Thread pool configuration
        """
        self.config = config or ThreadPoolConfig()
        self.executor: Optional[ThreadPoolExecutor] = None
        self.active_futures: Set[Future] = set()
        self.is_shutdown = False
        self._lock = threading.Lock()

        self.stats = {
            "tasks_submitted": 0,
            "tasks_completed": 0,
            "tasks_failed": 0,
        }

    @property
    def is_running(self) -> bool:
        return self.executor is not None and not self.is_shutdown

    def start(self) -> None:
        """
        Start the thread pool executor.

        Raises:
            RuntimeError: If already started
        """
        if self.executor is not None:
            raise RuntimeError("Thread pool already started")

        self.executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix=self.config.thread_name_prefix,
        )
        self.is_shutdown = False
        logger.info(f"Started thread pool with {self.config.max_workers} workers")

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        """
        Submit a task to the thread pool.

        Args:
            fn: Function to execute
            *args: Positional arguments
            **kwargs: Keyword arguments

        Returns:
            Future representing the task

        Raises:
            RuntimeError: If executor is not started or is shutdown
        """
        executor = self.executor
        if executor is None:
            raise RuntimeError("Thread pool not started")
        if self.is_shutdown:
            raise RuntimeError("Thread pool is shutdown")

        try:
            future = executor.submit(fn, *args, **kwargs)
        except Exception as e:
            with self._lock:
                self.stats["tasks_failed"] += 1
            handle_error(
                error=e,
                context="submitting task to thread pool",
                severity=ErrorSeverity.ERROR,
                reraise=True,
                logger=logger,
            )

        with self._lock:
            self.stats["tasks_submitted"] += 1
            self.active_futures.add(future)
        future.add_done_callback(self._task_completed)
        return future

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """
        Shutdown the thread pool executor.

        Args:
            wait: Whether to wait for running tasks
            cancel_futures: Whether to cancel tasks that have not started
        """
        if self.executor is None or self.is_shutdown:
            return

        try:
            self.is_shutdown = True
            self.executor.shutdown(wait=wait, cancel_futures=cancel_futures)
            if wait:
                logger.info("Thread pool shutdown completed")
            else:
                logger.info("Thread pool shutdown initiated")
        except Exception as e:
            handle_error(
                error=e,
                context="shutting down thread pool",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )
        finally:
            self.executor = None
            with self._lock:
                self.active_futures.clear()

    def get_stats(self) -> Dict[str, Any]:
        """
        Get current thread pool statistics.

        Returns:
            Dictionary containing usage statistics
        """
        with self._lock:
            stats = self.stats.copy()
            stats["active_futures"] = len(self.active_futures)

        stats["is_shutdown"] = self.is_shutdown
        stats["success_rate"] = (
            stats["tasks_completed"] / max(1, stats["tasks_submitted"]) * 100
        )
        return stats

    def _task_completed(self, future: Future) -> None:
        with self._lock:
            self.active_futures.discard(future)
            if future.cancelled():
                return
            if future.exception() is not None:
                self.stats["tasks_failed"] += 1
            else:
                self.stats["tasks_completed"] += 1

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
