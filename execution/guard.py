# PATH: execution/guard.py
"""
Single-flight execution guard.

At most one cycle may hold the guard. A caller that fails try_enter()
drops its work; nothing is queued.
"""

import threading

from core.logging import get_logger

logger = get_logger(__name__)


class ExecutionGuard:
    """
    Process-wide admission flag, owned by the engine's host and injected.

    Backed by a non-blocking lock acquire so it is safe from any thread
    or task.
    """

    def __init__(self, name: str = "execution"):
        self.name = name
        self._lock = threading.Lock()

    @property
    def held(self) -> bool:
        return self._lock.locked()

    def try_enter(self) -> bool:
        """Take the guard if free. Never blocks."""
        acquired = self._lock.acquire(blocking=False)
        if not acquired:
            logger.debug("Guard busy", extra={"context": {"guard": self.name}})
        return acquired

    def exit(self) -> None:
        """
        Release the guard.

        Raises:
            RuntimeError: guard is not held
        """
        if not self._lock.locked():
            raise RuntimeError(f"Guard '{self.name}' released while not held")
        self._lock.release()
