"""Marshalling of callbacks onto the UI thread."""

import logging
import queue
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class UiDispatcher:
    """Queue of callables executed on the UI thread.

    Background threads `post()` work; the UI loop calls `drain()`, which runs
    the posted callables in order on the calling thread.
    """

    def __init__(self):
        self._queue: "queue.Queue[Callable[[], None]]" = queue.Queue()

    def post(self, action: Callable[[], None]) -> None:
        """Schedule `action` on the UI thread. Never blocks."""
        self._queue.put(action)

    def drain(self, timeout: Optional[float] = None) -> int:
        """Run every pending action. Returns how many ran.

        Args:
            timeout: How long to wait for the first action when none is pending
        """
        executed = 0
        block = timeout is not None and timeout > 0
        while True:
            try:
                if executed == 0 and block:
                    action = self._queue.get(timeout=timeout)
                else:
                    action = self._queue.get_nowait()
            except queue.Empty:
                return executed

            try:
                action()
            except Exception as e:
                logger.error(f"Unhandled exception in UI action: {e}", exc_info=True)
            executed += 1
