"""Retry classification and backoff computation.

This module provides:
- NETWORK_EXCEPTIONS: Exceptions that mean the server was never reached
- is_transient_error: Classify a dispatch failure
- backoff_delay: Exponential backoff with an upper bound

Queued actions are never retried in a tight loop: a failed action waits
for the next drain cycle, and the attempt counter decides when it is
abandoned. Backoff is used for cooldown penalties.
"""

from __future__ import annotations

import httpx

from plannersync.client.api import NetworkError

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_INITIAL_BACKOFF = 10.0  # seconds
DEFAULT_MAX_BACKOFF = 60.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# Network-related exceptions that indicate connectivity issues
NETWORK_EXCEPTIONS: tuple[type[Exception], ...] = (
    NetworkError,
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
    OSError,
)


def is_transient_error(error: BaseException) -> bool:
    """Check if a failure is network-class (no HTTP response received).

    Remote rejections (4xx/5xx) are not transient: they reached the server.
    """
    return isinstance(error, NETWORK_EXCEPTIONS)


def backoff_delay(
    retry: int,
    initial: float = DEFAULT_INITIAL_BACKOFF,
    maximum: float = DEFAULT_MAX_BACKOFF,
    multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
) -> float:
    """Compute the delay before retry number ``retry`` (0-based).

    Args:
        retry: Number of previous consecutive failures
        initial: Delay for the first retry
        maximum: Upper bound
        multiplier: Growth factor per retry

    Returns:
        Delay in seconds
    """
    if retry < 0:
        raise ValueError("retry must not be negative")
    return min(initial * multiplier**retry, maximum)
