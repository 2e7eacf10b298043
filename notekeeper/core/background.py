"""
NoteKeeper Background Executor - Off-Thread Storage I/O

Responsibilities:
- Run file I/O jobs away from the interactive thread
- Preserve submission order (last save wins, deterministically)
- Signal completion through futures and callbacks

Architecture:
- Caller thread: queues jobs, gets a Future back
- Worker thread: consumes the queue, runs jobs one at a time
"""

import logging
import threading
from concurrent.futures import Future
from queue import Queue, Empty
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class BackgroundExecutor:
    """
    Single-worker job queue.

    Design:
    - One daemon thread, FIFO order
    - Job exceptions are captured in the Future, the worker keeps going
    - Completion callbacks run on the worker thread
    """

    def __init__(self, name: str = "NoteKeeper-IO", poll_interval: float = 0.5):
        """
        Initialize executor and start the worker.

        Args:
            name: Worker thread name
            poll_interval: Seconds between shutdown checks while idle
        """
        self._queue: Queue = Queue()
        self._shutdown = threading.Event()
        self._poll_interval = poll_interval

        self._thread = threading.Thread(
            target=self._worker,
            daemon=True,
            name=name
        )
        self._thread.start()

        logger.info(f"BackgroundExecutor started ({name})")

    def submit(
        self,
        fn: Callable,
        *args,
        on_complete: Optional[Callable[[Future], None]] = None,
        **kwargs
    ) -> Future:
        """
        Queue a job (non-blocking).

        Args:
            fn: Callable to run on the worker thread
            on_complete: Called with the finished Future

        Returns:
            Future resolving to fn's return value

        Raises:
            RuntimeError: If the executor has been shut down
        """
        if self._shutdown.is_set():
            raise RuntimeError("BackgroundExecutor has been shut down")

        future: Future = Future()
        if on_complete is not None:
            future.add_done_callback(on_complete)

        self._queue.put((future, fn, args, kwargs))
        logger.debug(f"Queued job: {getattr(fn, '__name__', fn)}")
        return future

    def _worker(self):
        """
        Worker thread - consumes queue and runs jobs.

        Runs until shutdown is signalled and the queue is drained.
        """
        while True:
            try:
                item = self._queue.get(timeout=self._poll_interval)
            except Empty:
                if self._shutdown.is_set():
                    break
                continue

            if item is None:
                break

            future, fn, args, kwargs = item
            if not future.set_running_or_notify_cancel():
                continue

            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                logger.error(f"Background job failed: {e}", exc_info=True)
                future.set_exception(e)
            else:
                future.set_result(result)

        logger.info("Background worker shutting down")

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    def shutdown(self, wait: bool = True, timeout: float = 5.0):
        """
        Stop accepting jobs and stop the worker.

        Jobs already queued still run.

        Args:
            wait: Block until the worker exits
            timeout: Maximum seconds to wait
        """
        if self._shutdown.is_set():
            return

        logger.info("Shutting down BackgroundExecutor")
        self._shutdown.set()
        self._queue.put(None)

        if wait and self._thread.is_alive():
            self._thread.join(timeout=timeout)

            if self._thread.is_alive():
                logger.warning("Background worker did not stop cleanly")
