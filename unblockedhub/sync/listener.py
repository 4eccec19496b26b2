"""Background thread that polls a change feed at a fixed interval."""

import threading
from typing import Callable, Optional

from unblockedhub.core.app_logger import get_logger

logger = get_logger(__name__)


class ChangeFeedListener:
    """
    Calls `poll` every `interval_s` seconds on a daemon thread until stopped.
    ---
    A failing poll is logged and retried on the next tick.
    """

    def __init__(self, poll: Callable[[], int], interval_s: float, name: str = "change-feed") -> None:
        if interval_s <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval_s}")
        self.poll = poll
        self.interval_s = interval_s
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.debug("Started %s listener, polling every %ss", self.name, self.interval_s)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.debug("Stopped %s listener", self.name)

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            try:
                self.poll()
            except Exception:
                logger.exception("Error polling the %s feed", self.name)
