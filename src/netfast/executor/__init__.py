"""
Task execution for the netfast package.
"""

from .thread_pool import ManagedThreadPoolExecutor, ThreadPoolConfig

__all__ = [
    "ManagedThreadPoolExecutor",
    "ThreadPoolConfig",
]
