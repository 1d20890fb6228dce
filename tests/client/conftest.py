"""Shared fixtures for client tests."""

from __future__ import annotations

import itertools
import threading
import time
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from plannersync.client.sync import NetworkMonitor, PendingActionStore, SyncService
from plannersync.core.config import SyncConfig


class FakePlannerAPI:
    """In-process stand-in for PlannerClient.

    Records every call, returns plausible server documents, and can be
    scripted to fail or to block until a gate is opened.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.responses: dict[str, Any] = {}
        self.healthy = True
        self.gate: threading.Event | None = None
        self.entered = threading.Event()
        self._failures: dict[str, list[BaseException]] = {}
        self._always_fail: dict[str, BaseException] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def fail(self, method: str, *errors: BaseException) -> None:
        """Make the next calls of ``method`` raise ``errors`` in order."""
        self._failures.setdefault(method, []).extend(errors)

    def fail_always(self, method: str, error: BaseException) -> None:
        self._always_fail[method] = error

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        with self._lock:
            return [args for name, args in self.calls if name == method]

    def new_id(self) -> str:
        return f"srv-{next(self._ids)}"

    def _call(self, method: str, args: tuple[Any, ...], default: Any) -> Any:
        with self._lock:
            self.calls.append((method, args))
            pending = self._failures.get(method)
            error = pending.pop(0) if pending else self._always_fail.get(method)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if error is not None:
            raise error
        if method in self.responses:
            return self.responses[method]
        return default

    def health_check(self) -> bool:
        return self.healthy

    def update_trip(
        self, trip_id: str, destination: str, date: str, is_draft: bool | None = None
    ) -> Any:
        return self._call(
            "update_trip",
            (trip_id, destination, date, is_draft),
            {"_id": trip_id, "destination": destination, "date": date},
        )

    def create_task(self, trip_id: str, description: str) -> Any:
        return self._call(
            "create_task",
            (trip_id, description),
            {"_id": self.new_id(), "description": description, "completed": False},
        )

    def update_task(self, trip_id: str, task_id: str, completed: bool) -> Any:
        return self._call("update_task", (trip_id, task_id, completed), None)

    def delete_task(self, trip_id: str, task_id: str) -> Any:
        return self._call("delete_task", (trip_id, task_id), None)

    def create_checklist_item(self, trip_id: str, text: str) -> Any:
        return self._call(
            "create_checklist_item",
            (trip_id, text),
            {"_id": self.new_id(), "text": text, "checked": False},
        )

    def update_checklist_item(self, trip_id: str, item_id: str, checked: bool) -> Any:
        return self._call(
            "update_checklist_item",
            (trip_id, item_id, checked),
            {"_id": item_id, "checked": checked},
        )

    def delete_checklist_item(self, trip_id: str, item_id: str) -> Any:
        return self._call("delete_checklist_item", (trip_id, item_id), None)

    def create_guest(self, trip_id: str, name: str) -> Any:
        return self._call("create_guest", (trip_id, name), {"_id": self.new_id(), "name": name})

    def update_guest(self, trip_id: str, guest_id: str, name: str) -> Any:
        return self._call("update_guest", (trip_id, guest_id, name), {"_id": guest_id, "name": name})

    def delete_guest(self, trip_id: str, guest_id: str) -> Any:
        return self._call("delete_guest", (trip_id, guest_id), None)


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll until ``predicate`` holds or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def api() -> FakePlannerAPI:
    """Create a fake API."""
    return FakePlannerAPI()


@pytest.fixture
def monitor() -> NetworkMonitor:
    """Create an online monitor without probe."""
    return NetworkMonitor(online=True)


@pytest.fixture
def store() -> Iterator[PendingActionStore]:
    """Create an in-memory store."""
    store = PendingActionStore()
    yield store
    store.close()


@pytest.fixture
def service(
    api: FakePlannerAPI, store: PendingActionStore, monitor: NetworkMonitor
) -> Iterator[SyncService]:
    """Create a sync service with short timings (not started)."""
    config = SyncConfig(
        trip_save_cooldown=0.3,
        conflict_cooldown_penalty=0.3,
        max_cooldown_penalty=1.0,
        drain_interval=0.1,
        initial_drain_delay=0.05,
        save_debounce=0.1,
    )
    service = SyncService(api, store, monitor=monitor, config=config)
    yield service
    service.stop()
