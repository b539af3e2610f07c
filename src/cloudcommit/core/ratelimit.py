"""Exponential backoff for rate-limited provider calls"""

import logging
import random
import threading
import time
from typing import Any, Callable, Optional

from .exceptions import PurchaseCancelledError, RateLimitError

logger = logging.getLogger(__name__)


def _always(error: Exception) -> bool:
    return True


class RetryPolicy:
    """Retry a callable with exponential backoff.

    The first attempt runs immediately; retry ``n`` waits
    ``base_delay * 2 ** (n - 1)`` seconds capped at ``max_delay``, with up to
    20% jitter added when enabled.
    """

    def __init__(self, base_delay: float = 1.0, max_delay: float = 30.0,
                 max_retries: int = 5, jitter: bool = True,
                 sleep: Optional[Callable[[float], None]] = None):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_retries = max_retries
        self.jitter = jitter
        self._sleep = sleep or time.sleep

    def delay_for(self, retry: int) -> float:
        delay = min(self.base_delay * (2 ** (retry - 1)), self.max_delay)
        if self.jitter:
            delay += delay * 0.2 * random.random()
        return delay

    def _wait(self, delay: float, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None:
            if cancel_event.wait(delay):
                raise PurchaseCancelledError("retry wait cancelled")
        else:
            self._sleep(delay)

    def call(self, fn: Callable[..., Any], *args,
             is_retryable: Callable[[Exception], bool] = _always,
             cancel_event: Optional[threading.Event] = None, **kwargs) -> Any:
        retry = 0
        while True:
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                if not is_retryable(e):
                    raise
                if retry >= self.max_retries:
                    raise RateLimitError(f"giving up after {retry} retries: {e}") from e
                retry += 1
                delay = self.delay_for(retry)
                logger.warning(f"Retry {retry}/{self.max_retries} in {delay:.1f}s after error: {e}")
                self._wait(delay, cancel_event)

    @classmethod
    def from_config(cls, config: Any) -> "RetryPolicy":
        return cls(
            base_delay=config.base_delay,
            max_delay=config.max_delay,
            max_retries=config.max_retries,
            jitter=config.jitter,
        )
