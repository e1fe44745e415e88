# app/santimpay/retry.py
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from app.santimpay.errors import TransportError

logger = logging.getLogger("santim.retry")

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Explicit retry wrapper for gateway calls. Only TransportError is retried;
    ProcessorRejection / SigningError propagate on the first attempt.

    Each attempt re-invokes the client, so every attempt carries a freshly minted token.
    """

    max_attempts: int = 3
    base_delay_s: float = 0.5
    max_delay_s: float = 8.0
    jitter: bool = True
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def delay_for(self, attempt: int) -> float:
        # 0.5, 1, 2, 4 ... capped; full jitter picks uniformly below the cap
        delay = min(self.max_delay_s, self.base_delay_s * (2 ** max(0, attempt - 1)))
        if self.jitter:
            return random.uniform(0, delay)
        return delay

    def call(self, fn: Callable[[], T]) -> T:
        attempts = max(1, int(self.max_attempts))
        for attempt in range(1, attempts + 1):
            try:
                return fn()
            except TransportError as exc:
                if attempt >= attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "retrying operation=%s attempt=%s/%s delay_s=%.2f error=%s",
                    exc.operation,
                    attempt,
                    attempts,
                    delay,
                    type(exc.cause).__name__,
                )
                self.sleep(delay)
        raise AssertionError("unreachable")
