"""
NoteKeeper Collection Service

Shared plumbing for the session services: an in-memory list plus
whole-collection persistence after every mutation.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Iterable, Optional

from notekeeper.core.background import BackgroundExecutor
from notekeeper.memory.record_store import LoadResult, SaveResult

logger = logging.getLogger(__name__)


def completed_future(result) -> Future:
    future: Future = Future()
    future.set_result(result)
    return future


class CollectionService:
    """
    Shared plumbing: in-memory list plus whole-collection persistence.

    Saves run on the executor when one is given, otherwise inline.
    """

    def __init__(self, executor: Optional[BackgroundExecutor] = None):
        self.executor = executor
        self._items: list = []
        self._lock = threading.Lock()
        self.last_load: Optional[LoadResult] = None
        self.last_save: Optional[Future] = None

    def _save_collection(self, items: list) -> SaveResult:
        raise NotImplementedError

    def _load_collection(self) -> LoadResult:
        raise NotImplementedError

    def load(self) -> LoadResult:
        """
        Replace the in-memory list with the stored collection.

        A corrupt store leaves the list empty; the result says why.
        """
        result = self._load_collection()
        with self._lock:
            self._items = list(result.records)
        self.last_load = result
        if not result.ok:
            logger.warning(f"Stored collection unusable, starting empty: {result.error}")
        return result

    def _persist(self) -> Future:
        with self._lock:
            snapshot = list(self._items)

        if self.executor is None:
            future = completed_future(self._save_collection(snapshot))
        else:
            future = self.executor.submit(self._save_collection, snapshot)

        self.last_save = future
        return future

    def _delete_offsets(self, offsets: Iterable[int]) -> list:
        indices = sorted(set(offsets), reverse=True)
        with self._lock:
            for index in indices:
                if index < 0 or index >= len(self._items):
                    raise IndexError(f"Index {index} out of range for {len(self._items)} item(s)")
            removed = [self._items.pop(index) for index in indices]
        removed.reverse()
        return removed

    def flush(self, timeout: Optional[float] = None) -> Optional[SaveResult]:
        """
        Wait for the most recent save.

        Saves are queued in order, so the last one finishing means all
        earlier ones have too.
        """
        if self.last_save is None:
            return None
        return self.last_save.result(timeout=timeout)


