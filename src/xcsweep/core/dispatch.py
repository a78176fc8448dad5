"""Background worker and main-thread event delivery.

Long-running scans and deletions run on a single background thread.
Their events are posted to a :class:`MainQueue`, which the thread that
owns the user interface drains in FIFO order.
"""

from __future__ import annotations

import logging
import queue
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

log = logging.getLogger(__name__)


class MainQueue:
    """FIFO of callbacks executed by whichever thread drains it."""

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[tuple[Callable[..., Any], tuple[Any, ...]]] = queue.SimpleQueue()

    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        """Schedule *callback* to run on the draining thread. Safe from any thread."""
        self._queue.put((callback, args))

    def process_pending(self, timeout: float | None = None) -> int:
        """Run queued callbacks in order and return how many ran.

        With a *timeout*, waits up to that long for the first callback.
        """
        count = 0
        block = timeout is not None
        while True:
            try:
                callback, args = self._queue.get(block=block, timeout=timeout)
            except queue.Empty:
                return count
            block = False
            callback(*args)
            count += 1

    def run_until(self, future: Future, poll_interval: float = 0.05) -> Any:
        """Deliver events until *future* completes, then return its result."""
        while not future.done():
            self.process_pending(timeout=poll_interval)
        self.process_pending()
        return future.result()


class BackgroundWorker:
    """Single background thread that runs submitted jobs one at a time."""

    def __init__(self, name: str = "xcsweep-worker") -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self._executor.submit(fn, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        log.debug("Shutting down background worker")
        self._executor.shutdown(wait=wait)
