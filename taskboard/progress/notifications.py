import itertools
import logging
import threading
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from .calculator import ProgressInfo

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressInfo], None]


class ProgressChannel:
    """Per-task notification channel for recomputed progress.

    Subscribers register for one task id and only hear about that task.
    Each recompute takes a sequence number before it reads; a publish whose
    number is older than the last one recorded for the task is dropped, so
    the most recent recompute always wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counter = itertools.count(1)
        self._listeners: Dict[str, List[ProgressListener]] = defaultdict(list)
        self._latest: Dict[str, ProgressInfo] = {}
        self._latest_seq: Dict[str, int] = {}

    def next_sequence(self) -> int:
        with self._lock:
            return next(self._counter)

    def subscribe(self, task_id: str, listener: ProgressListener) -> Callable[[], None]:
        """Register ``listener`` for ``task_id``; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners[task_id].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(task_id)
                if listeners and listener in listeners:
                    listeners.remove(listener)
                    if not listeners:
                        del self._listeners[task_id]

        return unsubscribe

    def latest(self, task_id: str) -> Optional[ProgressInfo]:
        with self._lock:
            return self._latest.get(task_id)

    def forget(self, task_id: str) -> None:
        """Drop the snapshot and listeners of a deleted task."""
        with self._lock:
            self._latest.pop(task_id, None)
            self._latest_seq.pop(task_id, None)
            self._listeners.pop(task_id, None)

    def publish(self, task_id: str, info: ProgressInfo, *, sequence: int) -> bool:
        """Record ``info`` as the latest snapshot and notify listeners.

        Returns False when the publish was stale and therefore ignored.
        """
        with self._lock:
            if sequence < self._latest_seq.get(task_id, 0):
                logger.debug("Dropping stale progress task=%s seq=%s", task_id, sequence)
                return False
            self._latest_seq[task_id] = sequence
            self._latest[task_id] = info
            listeners = list(self._listeners.get(task_id, ()))

        for listener in listeners:
            try:
                listener(info)
            except Exception:
                logger.exception("Progress listener failed task=%s", task_id)
        return True
