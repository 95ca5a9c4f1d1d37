# schedule_health/narrative/retry.py

"""
Bounded exponential backoff for outbound calls.

    delay(attempt) = min(base_delay * 2 ** attempt, max_delay) + uniform(0, jitter)

attempt is 0-indexed; max_attempts counts the first call.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_MAX_ATTEMPTS = 3
RETRY_BASE_DELAY_SECONDS = 1.0
RETRY_MAX_DELAY_SECONDS = 5.0
RETRY_JITTER_SECONDS = 1.0
RETRY_EXPONENTIAL_BASE = 2

RETRYABLE_STATUS_CODES = {429}


class RetryableStatusError(Exception):
    """HTTP response whose status is worth another attempt (5xx, 429)."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"HTTP {status_code}: {body[:200]}")
        self.status_code = status_code
        self.body = body


def is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in RETRYABLE_STATUS_CODES


def is_retryable_error(error: Exception) -> bool:
    """
    Network failure, request timeout or a retryable HTTP status.

    Everything else (other 4xx, malformed body, configuration) fails fast.
    """
    if isinstance(error, RetryableStatusError):
        return True
    return isinstance(error, (requests.ConnectionError, requests.Timeout))


@dataclass
class RetryPolicy:
    max_attempts: int = RETRY_MAX_ATTEMPTS
    base_delay: float = RETRY_BASE_DELAY_SECONDS
    max_delay: float = RETRY_MAX_DELAY_SECONDS
    jitter: float = RETRY_JITTER_SECONDS
    retryable: Callable[[Exception], bool] = field(default=is_retryable_error)
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given 0-indexed attempt failed."""
        delay = min(self.base_delay * (RETRY_EXPONENTIAL_BASE ** attempt), self.max_delay)
        if self.jitter > 0:
            delay += self.rng.uniform(0, self.jitter)
        return delay

    def call(
        self,
        fn: Callable[[], T],
        operation_name: str = "request",
        sleep: Optional[Callable[[float], None]] = None,
    ) -> T:
        """
        Run fn, retrying retryable failures.

        Raises:
            Exception: the first non-retryable error, or the last retryable
            one once attempts are exhausted
        """
        sleep = sleep or time.sleep
        attempts = max(int(self.max_attempts), 1)

        for attempt in range(attempts):
            try:
                return fn()
            except Exception as e:
                if not self.retryable(e):
                    raise

                if attempt < attempts - 1:
                    delay = self.delay_for(attempt)
                    logger.warning(
                        "%s failed (attempt %d/%d). Retrying in %.1fs. Error: %s",
                        operation_name, attempt + 1, attempts, delay, str(e)[:100],
                    )
                    sleep(delay)
                else:
                    logger.error(
                        "Max retries (%d) exhausted for %s. Last error: %s",
                        attempts, operation_name, str(e)[:200],
                    )
                    raise
