import logging
import threading
import time
from typing import Callable, Optional

from .errors import OperationCancelled

logger = logging.getLogger("span-throttle")

RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"


class Throttle:
    """
    Reactive backoff driven by rate-limit response headers.

    When a response reports an exhausted quota, every worker sharing this
    throttle pauses for a fixed cooldown before its next request. There is
    no pacing before the quota is exhausted and no progressive backoff.
    """

    def __init__(self, cooldown: float = 3.0,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.cooldown = cooldown
        self.clock = clock
        self.sleep = sleep
        self._resume_at = 0.0
        self._lock = threading.Lock()

    def observe(self, response, cancel: Optional[threading.Event] = None) -> None:
        """Inspect response headers and pause if the quota is used up."""
        if response is None:
            return
        headers = getattr(response, "headers", None) or {}
        if headers.get(RATE_LIMIT_REMAINING_HEADER) != "0":
            return

        with self._lock:
            self._resume_at = max(self._resume_at, self.clock() + self.cooldown)
        logger.info(f"Rate limit exhausted, pausing requests for {self.cooldown:.0f}s")
        self.wait(cancel)

    def wait(self, cancel: Optional[threading.Event] = None) -> None:
        """Block until any pause set by a previous observation has passed."""
        with self._lock:
            remaining = self._resume_at - self.clock()
        if remaining <= 0:
            return

        if cancel is None:
            self.sleep(remaining)
            return
        if cancel.is_set() or cancel.wait(remaining):
            raise OperationCancelled("cancelled while waiting for rate limit")
