"""Exclusive, non-reentrant pool lock."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from clamm.errors import Locked


class PoolLock:
    """Serializes pool mutators.

    A mutator holds the lock for its whole duration. Another thread
    waiting for the lock blocks until it is released; the thread already
    holding it (for example through a callback that calls back into the
    pool) is rejected with Locked instead of deadlocking.
    """

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._owner: int | None = None

    @property
    def unlocked(self) -> bool:
        return self._owner is None

    @property
    def held_by_current_thread(self) -> bool:
        return self._owner == threading.get_ident()

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        """Hold the lock for the duration of a mutator.

        Raises:
            Locked: If the current thread already holds the lock
        """
        if self.held_by_current_thread:
            raise Locked(f"Re-entrant call to {operation} while pool is locked")
        with self._mutex:
            self._owner = threading.get_ident()
            try:
                yield
            finally:
                self._owner = None


__all__ = ["PoolLock"]
