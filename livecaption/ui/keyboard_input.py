"""Terminal "tap" detection: any keypress anywhere on the screen."""

import sys
import threading
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)


class TapListener:
    """Calls `on_tap` once for the first keypress after `start()`."""

    def __init__(self, on_tap: Callable[[], None], poll_interval: float = 0.1):
        """Initialize tap listener.

        Args:
            on_tap: Called from the listener thread when a key is pressed
            poll_interval: Seconds to wait for input between stop checks
        """
        self.on_tap = on_tap
        self.poll_interval = poll_interval
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start listening for a keypress."""
        if self.running:
            return

        self.running = True
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "TapListenerThread"
        self.thread.start()
        logger.info("Tap listener started")

    def stop(self) -> None:
        """Stop listening."""
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.info("Tap listener stopped")

    def _input_loop(self) -> None:
        while self.running:
            key = self._get_key()
            if not key:
                continue
            logger.info(f"Tap detected (key ord: {ord(key)})")
            self.running = False
            self.on_tap()
            return

    def _get_key(self) -> Optional[str]:
        """Get a single keypress, or None if nothing was pressed in time."""
        if sys.platform == "win32":
            return self._get_key_windows()
        return self._get_key_unix()

    def _get_key_windows(self) -> Optional[str]:
        import msvcrt
        import time

        if msvcrt.kbhit():
            return msvcrt.getwch()
        time.sleep(self.poll_interval)
        return None

    def _get_key_unix(self) -> Optional[str]:
        import select
        import termios
        import tty

        if not sys.stdin.isatty():
            # Nothing to tap on; keep polling until stopped
            select.select([], [], [], self.poll_interval)
            return None

        fd = sys.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
        try:
            tty.setcbreak(fd)
            if select.select([sys.stdin], [], [], self.poll_interval)[0]:
                return sys.stdin.read(1)
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
        return None
