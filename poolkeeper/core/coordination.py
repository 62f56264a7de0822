"""
Cluster-wide serialization of node-group size changes.

A single coordinator is shared by every group of a registry: size changes to
different groups still go through the same backend, so they are serialized
across the whole cluster rather than per group.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


class ScalingCoordinator:
    """First-come-first-served mutual exclusion for size-changing operations."""

    def __init__(self, lock: Optional[threading.Lock] = None):
        self._lock = lock if lock is not None else threading.Lock()
        self._owner: Optional[int] = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @property
    def held_by_current_thread(self) -> bool:
        return self._owner == threading.get_ident()

    @contextmanager
    def exclusive(self, reason: str = "") -> Iterator[None]:
        """Hold the cluster update lock for the duration of the ``with`` block."""
        current = threading.get_ident()
        if self.held_by_current_thread:
            # Not reentrant: a nested acquisition would block this thread forever.
            raise RuntimeError("ScalingCoordinator is not reentrant")
        self._lock.acquire()
        self._owner = current
        if reason:
            logger.debug("cluster update lock acquired: %s", reason)
        try:
            yield
        finally:
            self._owner = None
            self._lock.release()

    def __getstate__(self) -> dict:
        # Locks cannot be pickled; a copy gets a fresh lock of its own.
        return {}

    def __setstate__(self, state: dict) -> None:
        self._lock = threading.Lock()
        self._owner = None


__all__ = ["ScalingCoordinator"]
