"""Tests for duplicate-request protection and retry helpers."""

from __future__ import annotations

import httpx
import pytest

from plannersync.client.api import APIError, ConflictError, NetworkError
from plannersync.client.sync.guard import CooldownTracker, InFlightGuard, make_guard_key
from plannersync.client.sync.retry import backoff_delay, is_transient_error
from plannersync.client.sync.types import ActionKind


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestGuardKey:
    """Tests for make_guard_key."""

    def test_key_for_entity(self) -> None:
        """Keys of existing entities are deterministic."""
        assert make_guard_key(ActionKind.UPDATE, "trip-1", "item-1") == (
            "update",
            "trip-1",
            "item-1",
        )

    def test_adds_without_id_unique(self) -> None:
        """Adds without a placeholder never share a key."""
        first = make_guard_key(ActionKind.ADD, "trip-1")
        second = make_guard_key(ActionKind.ADD, "trip-1")
        assert first != second
        assert first[2].startswith("new-")


class TestInFlightGuard:
    """Tests for InFlightGuard."""

    def test_acquire_release(self) -> None:
        """A key can be held once at a time."""
        guard = InFlightGuard()
        key = make_guard_key(ActionKind.DELETE, "trip-1", "task-1")

        assert guard.try_acquire(key)
        assert not guard.try_acquire(key)
        assert key in guard

        guard.release(key)
        assert key not in guard
        assert guard.try_acquire(key)

    def test_hold_releases_on_exit(self) -> None:
        """hold() releases the key even when the block raises."""
        guard = InFlightGuard()
        key = make_guard_key(ActionKind.UPDATE, "trip-1", "item-1")

        with pytest.raises(RuntimeError):
            with guard.hold(key) as acquired:
                assert acquired
                raise RuntimeError("request failed")

        assert len(guard) == 0

    def test_hold_does_not_release_foreign_key(self) -> None:
        """A block that did not acquire the key leaves it held."""
        guard = InFlightGuard()
        key = make_guard_key(ActionKind.UPDATE, "trip-1", "item-1")
        guard.try_acquire(key)

        with guard.hold(key) as acquired:
            assert not acquired

        assert key in guard


class TestCooldownTracker:
    """Tests for CooldownTracker."""

    def test_remaining(self) -> None:
        """The window counts down from the last request."""
        clock = FakeClock()
        tracker = CooldownTracker(cooldown=3.0, clock=clock)
        assert tracker.remaining("trip-1") == 0.0

        tracker.mark("trip-1")
        clock.now += 1.0
        assert tracker.remaining("trip-1") == pytest.approx(2.0)
        assert tracker.remaining("trip-2") == 0.0

        clock.now += 5.0
        assert tracker.remaining("trip-1") == 0.0

    def test_penalty_doubles_and_caps(self) -> None:
        """Consecutive rejections double the penalty up to the maximum."""
        tracker = CooldownTracker(cooldown=3.0, penalty=10.0, max_penalty=60.0, clock=FakeClock())

        penalties = [tracker.penalize("trip-1") for _ in range(5)]

        assert penalties == [10.0, 20.0, 40.0, 60.0, 60.0]
        assert tracker.remaining("trip-1") == pytest.approx(63.0)

    def test_reset_clears_streak(self) -> None:
        """A success restarts the penalty sequence."""
        tracker = CooldownTracker(penalty=10.0, clock=FakeClock())
        tracker.penalize("trip-1")
        tracker.penalize("trip-1")

        tracker.reset("trip-1")

        assert tracker.penalize("trip-1") == 10.0


class TestRetryHelpers:
    """Tests for retry classification and backoff."""

    @pytest.mark.parametrize(
        "error",
        [
            NetworkError("refused"),
            httpx.ConnectError("refused"),
            httpx.ReadTimeout("slow"),
            ConnectionResetError(),
            TimeoutError(),
        ],
    )
    def test_transient(self, error: BaseException) -> None:
        """Failures without an HTTP response are transient."""
        assert is_transient_error(error)

    @pytest.mark.parametrize(
        "error", [APIError("boom", 500), ConflictError("busy", 409), ValueError("bad")]
    )
    def test_not_transient(self, error: BaseException) -> None:
        """Server rejections and programming errors are not."""
        assert not is_transient_error(error)

    def test_backoff_delay(self) -> None:
        """Delay grows exponentially and is capped."""
        assert backoff_delay(0, initial=1.0, maximum=10.0) == 1.0
        assert backoff_delay(3, initial=1.0, maximum=10.0) == 8.0
        assert backoff_delay(10, initial=1.0, maximum=10.0) == 10.0

    def test_backoff_negative_retry(self) -> None:
        """A negative retry count is rejected."""
        with pytest.raises(ValueError):
            backoff_delay(-1)
