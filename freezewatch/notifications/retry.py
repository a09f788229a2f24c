"""
Delivery retry policy.

Declarative description of how many times a channel is attempted and how
long to wait in between. The dispatcher owns the loop; this module only
answers "is this failure worth another try" and "how long to wait".

Formula: min(max_delay, base_delay * 2^attempt) + random(0, jitter)
A server-provided Retry-After always wins over the computed backoff.
"""

import random
from dataclasses import dataclass

import httpx

# 408 and 429 are the only 4xx responses worth retrying.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})

# Wait (seconds) assumed for a 429 that carries no Retry-After header.
DEFAULT_RATE_LIMIT_WAIT = 1.0


def is_retryable_status(status_code: int) -> bool:
    """
    Check if an HTTP status code should trigger a retry.

    Retryable status codes:
    - 408: Request Timeout
    - 429: Too Many Requests (rate limited)
    - 5xx: server side errors

    Args:
        status_code: HTTP response status code

    Returns:
        True if the request should be retried
    """
    return status_code in RETRYABLE_STATUS_CODES or 500 <= status_code < 600


def is_retryable_exception(exc: Exception) -> bool:
    """
    Check if an httpx exception is transient.

    Malformed destinations (bad URL, unsupported scheme) are permanent;
    timeouts and other transport-level errors are transient.
    """
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return False
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))


def parse_retry_after(value: str | None, default: float | None = None) -> float | None:
    """Parse a Retry-After header given in seconds.

    Returns ``default`` when the header is missing or unusable.
    """
    if value is None:
        return default
    try:
        seconds = float(value)
    except ValueError:
        return default
    return seconds if seconds >= 0 else default


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with exponential backoff and jitter.

    Usage:
        policy = RetryPolicy(max_attempts=2, base_delay=0.6)
        delay = policy.delay_for(attempt=0, retry_after=None)
    """

    max_attempts: int = 2
    base_delay: float = 0.6
    max_delay: float = 30.0
    jitter: float = 0.12
    min_retry_after: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def backoff(self, attempt: int) -> float:
        """Backoff (seconds) after the given 0-indexed failed attempt."""
        delay = min(self.base_delay * (2**attempt), self.max_delay)
        return delay + random.uniform(0, self.jitter)

    def delay_for(self, attempt: int, retry_after: float | None = None) -> float:
        """Delay before the next attempt, honouring a server-provided hint."""
        if retry_after is not None:
            return max(self.min_retry_after, retry_after)
        return self.backoff(attempt)
