"""
Fixed-interval background driver.
"""

import sys
import threading
from typing import Callable, Optional


class PollingDriver:
    """Run *callback* every *interval* seconds on a daemon thread until stopped.

    No backoff: an exception from the callback is logged and the next tick
    runs on schedule.
    """

    def __init__(self, callback: Callable[[], object], interval: float, name: str = "poller"):
        self.callback = callback
        self.interval = interval
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop,), name=self.name, daemon=True)
        self._thread.start()

    def stop(self, wait: bool = False) -> None:
        """Cancel future ticks. A tick already running finishes on its own
        unless *wait* is set, in which case we join the thread."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join()

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                print(f"[WARN] {self.name} tick failed: {e}", file=sys.stderr)
