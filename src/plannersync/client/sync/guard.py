"""Duplicate-request protection.

This module provides:
- make_guard_key: Deterministic key for a logical operation
- InFlightGuard: Set of operations with an outstanding request
- CooldownTracker: Minimum interval between requests on the same resource
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from plannersync.client.sync.retry import backoff_delay
from plannersync.client.sync.types import ActionKind

logger = logging.getLogger(__name__)

GuardKey = tuple[str, str, str]


def make_guard_key(kind: ActionKind, trip_id: str, entity_id: str | None = None) -> GuardKey:
    """Build the in-flight key of an operation.

    Adds without a stable id (no placeholder) get a fresh suffix so two
    distinct adds are never collapsed. A double submit of the same add
    carries the same placeholder and is.

    Args:
        kind: Mutation kind
        trip_id: Owning trip
        entity_id: Entity id, placeholder id, or None
    """
    if entity_id is None:
        entity_id = f"new-{uuid.uuid4().hex}"
    return (kind.value, trip_id, entity_id)


class InFlightGuard:
    """Tracks operations with an outstanding request.

    Presence of a key means a request is in flight; a second caller with
    the same key must not issue another one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys: set[GuardKey] = set()

    def try_acquire(self, key: GuardKey) -> bool:
        """Claim a key.

        Returns:
            True if the caller may proceed, False if already in flight
        """
        with self._lock:
            if key in self._keys:
                logger.debug("Operation already in flight: %s", key)
                return False
            self._keys.add(key)
            return True

    def release(self, key: GuardKey) -> None:
        """Release a key (no-op if not held)."""
        with self._lock:
            self._keys.discard(key)

    @contextmanager
    def hold(self, key: GuardKey) -> Iterator[bool]:
        """Acquire a key for the duration of a block.

        Yields whether the key was acquired; it is released on exit only
        if this block acquired it.
        """
        acquired = self.try_acquire(key)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


class CooldownTracker:
    """Per-resource minimum interval between requests.

    After a conflict or rate-limit response the resource is penalized:
    the next request must also wait out a penalty that doubles with each
    consecutive rejection, capped at ``max_penalty``.
    """

    def __init__(
        self,
        cooldown: float = 3.0,
        penalty: float = 10.0,
        max_penalty: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the tracker.

        Args:
            cooldown: Minimum seconds between two requests
            penalty: Extra seconds after the first 409/429
            max_penalty: Upper bound for the doubling penalty
            clock: Monotonic clock
        """
        self._cooldown = cooldown
        self._penalty = penalty
        self._max_penalty = max_penalty
        self._clock = clock
        self._lock = threading.Lock()
        # key -> time the cooldown window starts from
        self._last: dict[str, float] = {}
        # key -> consecutive rejections
        self._strikes: dict[str, int] = {}

    @property
    def cooldown(self) -> float:
        return self._cooldown

    def remaining(self, key: str) -> float:
        """Seconds to wait before the next request on ``key`` (0 if none)."""
        with self._lock:
            last = self._last.get(key)
            if last is None:
                return 0.0
            return max(0.0, last + self._cooldown - self._clock())

    def mark(self, key: str) -> None:
        """Record that a request on ``key`` is being issued now."""
        with self._lock:
            self._last[key] = self._clock()

    def penalize(self, key: str) -> float:
        """Extend the cooldown after a conflict/rate-limit response.

        Returns:
            The penalty applied in seconds
        """
        with self._lock:
            strikes = self._strikes.get(key, 0)
            penalty = backoff_delay(
                strikes, initial=self._penalty, maximum=self._max_penalty
            )
            self._strikes[key] = strikes + 1
            self._last[key] = self._clock() + penalty
        logger.info("Cooldown for %s extended by %.0fs", key, penalty)
        return penalty

    def reset(self, key: str) -> None:
        """Clear the penalty streak after a successful request."""
        with self._lock:
            self._strikes.pop(key, None)
