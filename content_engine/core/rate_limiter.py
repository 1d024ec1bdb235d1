"""
Rate limiting for the upstream text-generation service.

Token bucket with a concurrency cap. The bucket holds up to
``requests_per_minute`` tokens and refills continuously; refill is computed
lazily from a monotonic clock whenever a waiter checks it. Callers queue in
FIFO order and the head of the queue is admitted once a concurrency slot is
free and a token is available.

Every successful ``acquire`` must be paired with exactly one ``release``.
Prefer the ``slot()`` context manager, which releases on every exit path.
A caller that gives up waiting (``timeout``) holds nothing and must not
release.
"""

import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from typing import Callable, Deque, Iterator, Optional

from .models import RateBudget

logger = logging.getLogger(__name__)


class RateLimitTimeout(Exception):
    """Raised when ``acquire`` could not be admitted before its deadline."""


class RateLimiter:
    """Token-bucket limiter with bounded concurrency, safe across threads."""

    def __init__(
        self,
        budget: RateBudget,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._budget = budget
        self._clock = clock
        self._capacity = float(budget.requests_per_minute)
        self._refill_per_second = budget.requests_per_minute / 60.0
        self._tokens = self._capacity
        self._last_refill = clock()
        self._active = 0
        self._lock = threading.Lock()
        self._waiters: Deque[threading.Condition] = deque()

    @property
    def budget(self) -> RateBudget:
        return self._budget

    @property
    def active_requests(self) -> int:
        with self._lock:
            return self._active

    @property
    def waiting(self) -> int:
        with self._lock:
            return len(self._waiters)

    @property
    def available_tokens(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._refill_per_second)
        self._last_refill = now

    def _wake_head(self) -> None:
        # Caller holds self._lock
        if self._waiters and self._active < self._budget.max_concurrent:
            self._waiters[0].notify()

    def acquire(self, timeout: Optional[float] = None) -> None:
        """Block until a concurrency slot and a rate token are both available.

        Args:
            timeout: Maximum seconds to wait; ``None`` waits indefinitely

        Raises:
            RateLimitTimeout: If the deadline passed first. No slot is held.
        """
        deadline = None if timeout is None else self._clock() + timeout
        with self._lock:
            waiter = threading.Condition(self._lock)
            self._waiters.append(waiter)
            try:
                while True:
                    delay: Optional[float] = None
                    if self._waiters[0] is waiter and self._active < self._budget.max_concurrent:
                        self._refill()
                        if self._tokens >= 1.0:
                            self._tokens -= 1.0
                            self._active += 1
                            return
                        # Sleep exactly until the next token is due
                        delay = (1.0 - self._tokens) / self._refill_per_second
                        logger.debug("Rate limited, next token in %.3fs", delay)
                    if deadline is not None:
                        remaining = deadline - self._clock()
                        if remaining <= 0:
                            raise RateLimitTimeout(
                                f"No upstream slot within {timeout:.2f}s "
                                f"({self._active} active, {len(self._waiters)} waiting)"
                            )
                        delay = remaining if delay is None else min(delay, remaining)
                    waiter.wait(delay)
            finally:
                self._waiters.remove(waiter)
                self._wake_head()

    def release(self) -> None:
        """Free a concurrency slot and wake the next queued caller.

        Raises:
            RuntimeError: If no slot is currently held
        """
        with self._lock:
            if self._active <= 0:
                raise RuntimeError("release() called without a matching acquire()")
            self._active -= 1
            self._wake_head()

    @contextmanager
    def slot(self, timeout: Optional[float] = None) -> Iterator[None]:
        """Hold one admission for the duration of the ``with`` block."""
        self.acquire(timeout=timeout)
        try:
            yield
        finally:
            self.release()
