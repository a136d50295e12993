"""Subtree locks for structural mutations.

A lock is held on a path. Two held paths conflict when they are equal or when
one is a folder path and the other lies inside it, so a rename of
``/root/a/`` waits for a note update under ``/root/a/b/`` and vice versa,
while work on ``/root/x/`` proceeds in parallel.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

from notetree.config import PATH_SEPARATOR
from notetree.exceptions import StoreFailureError

logger = logging.getLogger(__name__)


def paths_overlap(first: str, second: str) -> bool:
    """Whether locks on ``first`` and ``second`` must exclude each other."""
    if first == second:
        return True
    if first.endswith(PATH_SEPARATOR) and second.startswith(first):
        return True
    if second.endswith(PATH_SEPARATOR) and first.startswith(second):
        return True
    return False


class SubtreeLockManager:
    """Keyed hierarchical mutex over tree paths.

    Locks are reentrant per thread: a thread already holding ``/root/a/`` may
    take ``/root/a/b/`` again without deadlocking on itself.
    """

    def __init__(self, timeout: Optional[float] = 30.0):
        """Initialize the lock manager.

        Args:
            timeout: Seconds to wait for a conflicting holder before giving up.
                None waits forever.
        """
        self.timeout = timeout
        self._condition = threading.Condition()
        # path -> (owning thread ident, hold depth)
        self._held: Dict[str, Tuple[int, int]] = {}

    def _is_blocked(self, paths: Tuple[str, ...], me: int) -> bool:
        for held_path, (owner, _depth) in self._held.items():
            if owner == me:
                continue
            if any(paths_overlap(path, held_path) for path in paths):
                return True
        return False

    @contextmanager
    def hold(self, *paths: str) -> Iterator[None]:
        """Hold locks on all ``paths`` for the duration of the block.

        All paths are acquired together, so two callers locking the same pair
        in different orders cannot deadlock.

        Raises:
            StoreFailureError: If the locks are not granted within ``timeout``.
        """
        me = threading.get_ident()
        wanted = tuple(dict.fromkeys(paths))

        with self._condition:
            if self._is_blocked(wanted, me):
                logger.debug(f"Waiting for subtree lock on {wanted}")
            granted = self._condition.wait_for(
                lambda: not self._is_blocked(wanted, me), timeout=self.timeout
            )
            if not granted:
                raise StoreFailureError(
                    f"Timed out waiting for a lock on {', '.join(wanted)}",
                    operation="lock",
                )
            for path in wanted:
                _owner, depth = self._held.get(path, (me, 0))
                self._held[path] = (me, depth + 1)

        try:
            yield
        finally:
            with self._condition:
                for path in wanted:
                    owner, depth = self._held[path]
                    if depth <= 1:
                        del self._held[path]
                    else:
                        self._held[path] = (owner, depth - 1)
                self._condition.notify_all()

    def held_paths(self) -> Tuple[str, ...]:
        """Snapshot of currently held paths (for diagnostics and tests)."""
        with self._condition:
            return tuple(self._held)
