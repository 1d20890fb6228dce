"""Synchronization service.

This module provides:
- SyncService: Entry point for mutation intents; owns the drain cycle,
  the direct-dispatch path and the trip-draft cooldown
- DrainReport: Summary of one drain cycle

Data flow:
    intent ──► SyncService ──(online, not in flight)──► ActionDispatcher ──► API
                   │                                          │
                   └──(offline / network failure)──► PendingActionStore
                                                              │
    NetworkMonitor ──online──► drain() ──(oldest first)───────┘

Task intents always go through the queue. Checklist, guest and trip-draft
intents are sent directly and fall back to the queue on network-class
failures. A drain processes one snapshot of the queue; failed actions
wait for the next cycle (periodic timer or next online transition).

Threading:
    start() runs a periodic drain thread and the connectivity probe.
    Direct requests run on a worker pool. One RLock serializes access to
    the drain flag, the waiter table and the deferred saves; the store,
    guard and cooldown map carry their own locks. Callbacks and listeners
    run on worker threads, never under the service lock.

    Without start(), drains run synchronously in the thread that
    triggers them (online transition or enqueue).
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, InvalidStateError, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from plannersync.client.api import ConflictError, RateLimitError
from plannersync.client.sync.dispatcher import ActionDispatcher, PlannerAPI
from plannersync.client.sync.guard import CooldownTracker, InFlightGuard, make_guard_key
from plannersync.client.sync.network import NetworkMonitor
from plannersync.client.sync.queue import PendingActionStore
from plannersync.client.sync.remap import PlaceholderRegistry, PlaceholderStatus
from plannersync.client.sync.retry import is_transient_error
from plannersync.client.sync.types import (
    ActionKind,
    AddChecklistItem,
    AddGuest,
    AddTask,
    DeleteChecklistItem,
    DeleteGuest,
    DeleteTask,
    Operation,
    OutcomeListener,
    OutcomeStatus,
    PendingAction,
    SaveTripDraft,
    SyncCallbacks,
    SyncError,
    SyncOutcome,
    TargetType,
    UnresolvedPlaceholderError,
    UpdateChecklistItem,
    UpdateGuest,
    UpdateTask,
    is_placeholder,
)
from plannersync.core.config import SyncConfig
from plannersync.core.types import SyncState

logger = logging.getLogger(__name__)


@dataclass
class DrainReport:
    """Summary of one drain cycle."""

    succeeded: int = 0
    retrying: int = 0
    abandoned: int = 0
    deferred: int = 0
    skipped: bool = False
    interrupted: bool = False

    def record(self, outcome: SyncOutcome) -> None:
        if outcome.status == OutcomeStatus.SUCCEEDED:
            self.succeeded += 1
        elif outcome.status == OutcomeStatus.RETRYING:
            self.retrying += 1
        elif outcome.status == OutcomeStatus.ABANDONED:
            self.abandoned += 1
        elif outcome.status == OutcomeStatus.DEFERRED:
            self.deferred += 1

    @property
    def total(self) -> int:
        return self.succeeded + self.retrying + self.abandoned + self.deferred


@dataclass
class _Waiter:
    """In-memory notification target of a queued action."""

    callbacks: SyncCallbacks | None
    future: Future[SyncOutcome]


@dataclass
class _DeferredSave:
    """Trip-draft save waiting for its cooldown to elapse."""

    operation: SaveTripDraft
    callbacks: list[SyncCallbacks] = field(default_factory=list)
    future: Future[SyncOutcome] = field(default_factory=Future)


def _combine(callbacks: list[SyncCallbacks]) -> SyncCallbacks | None:
    """Merge the callbacks of superseded saves into one set."""
    if not callbacks:
        return None
    if len(callbacks) == 1:
        return callbacks[0]

    def fan_out(name: str) -> Callable[..., None]:
        def call(*args: Any) -> None:
            for cb in callbacks:
                handler = getattr(cb, name)
                if handler is None:
                    continue
                try:
                    handler(*args)
                except Exception:
                    logger.exception("Sync callback %s failed", name)

        return call

    return SyncCallbacks(
        on_success=fan_out("on_success"),
        on_error=fan_out("on_error"),
        on_offline=fan_out("on_offline"),
    )


class SyncService:
    """Offline-first synchronization of trip mutations.

    Usage:
        client = PlannerClient(server_config)
        store = PendingActionStore(config_dir / "queue.db")
        service = SyncService(client, store)
        service.start()

        future = service.add_checklist_item(
            "trip-1", "Sunscreen",
            callbacks=SyncCallbacks(on_success=show_item, on_error=rollback),
        )

        service.stop()
    """

    def __init__(
        self,
        api: PlannerAPI,
        store: PendingActionStore | None = None,
        monitor: NetworkMonitor | None = None,
        config: SyncConfig | None = None,
        registry: PlaceholderRegistry | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the service and purge stale actions.

        Args:
            api: Remote collaborator
            store: Pending action store (in-memory if None)
            monitor: Connectivity monitor (probes api.health_check if None)
            config: Service tunables
            registry: Placeholder remap table (persisted in the store if None)
            clock: Wall clock used for enqueue timestamps
        """
        self._config = config or SyncConfig()
        self._api = api
        self._store = (
            store if store is not None else PendingActionStore(storage_key=self._config.storage_key)
        )
        self._monitor = monitor if monitor is not None else NetworkMonitor(
            probe=api.health_check,
            probe_interval=self._config.probe_interval,
        )
        self._registry = registry if registry is not None else PlaceholderRegistry(self._store)
        self._dispatcher = ActionDispatcher(api, max_attempts=self._config.max_attempts)
        self._guard = InFlightGuard()
        self._cooldown = CooldownTracker(
            cooldown=self._config.trip_save_cooldown,
            penalty=self._config.conflict_cooldown_penalty,
            max_penalty=self._config.max_cooldown_penalty,
        )
        self._clock = clock

        self._lock = threading.RLock()
        self._draining = False
        self._waiters: dict[str, _Waiter] = {}
        self._deferred_saves: dict[str, _DeferredSave] = {}
        self._timers: set[threading.Timer] = set()
        self._listeners: list[OutcomeListener] = []
        self._executor: ThreadPoolExecutor | None = None

        # Drain thread
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._wake = threading.Event()

        for action in self._store.cleanup_stale(self._config.stale_after):
            self._forget_placeholder(action.operation)
        for action in self._store.snapshot():
            if action.kind == ActionKind.ADD and action.operation.placeholder:
                self._registry.mark_pending(action.operation.placeholder)

        self._monitor.add_listener(self._on_connectivity_change)

    # === Properties ===

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def store(self) -> PendingActionStore:
        return self._store

    @property
    def monitor(self) -> NetworkMonitor:
        return self._monitor

    @property
    def is_online(self) -> bool:
        return self._monitor.is_online

    @property
    def is_draining(self) -> bool:
        return self._draining

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def state(self) -> SyncState:
        """Derived state for status indicators."""
        if not self._monitor.is_online:
            return SyncState.OFFLINE
        if self._draining or self._store:
            return SyncState.SYNCING
        return SyncState.IDLE

    # === Lifecycle ===

    def start(self) -> None:
        """Start the periodic drain thread and connectivity probing."""
        with self._lock:
            if self.is_running:
                logger.warning("SyncService already running")
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="SyncService",
                daemon=True,
            )
            self._thread.start()

        self._monitor.start()
        if self._monitor.is_online and self._store:
            logger.info("Starting with %d pending actions", len(self._store))
            self._schedule(self._config.initial_drain_delay, self.request_drain)
        logger.info("SyncService started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop background work.

        Deferred trip saves that have not fired yet are dropped and
        reported as FAILED.
        """
        self._stop_event.set()
        self._wake.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

        with self._lock:
            timers = list(self._timers)
            self._timers.clear()
            dropped = list(self._deferred_saves.items())
            self._deferred_saves.clear()
        for timer in timers:
            timer.cancel()
        for trip_id, deferred in dropped:
            logger.warning("Dropping deferred save of trip %s", trip_id)
            self._deliver(
                trip_id,
                deferred.operation,
                SyncOutcome(
                    status=OutcomeStatus.FAILED,
                    error=SyncError("Service stopped before the save was sent"),
                ),
                _combine(deferred.callbacks),
                deferred.future,
            )

        self._monitor.stop(timeout=timeout)

        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
        logger.info("SyncService stopped")

    def close(self) -> None:
        """Stop and close the store."""
        self.stop()
        self._store.close()

    def __enter__(self) -> SyncService:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()

    def _run(self) -> None:
        """Drain loop: wakes on request or every drain_interval seconds."""
        logger.debug("Drain loop started")
        while not self._stop_event.is_set():
            self._wake.wait(timeout=self._config.drain_interval)
            self._wake.clear()
            if self._stop_event.is_set():
                break
            if not self._store or not self._monitor.is_online:
                continue
            try:
                self.drain()
            except Exception:
                logger.exception("Drain cycle failed")
        logger.debug("Drain loop ended")

    def _schedule(self, delay: float, func: Callable[..., None], *args: Any) -> None:
        """Run ``func`` after ``delay`` seconds on a timer thread."""

        def fire() -> None:
            with self._lock:
                self._timers.discard(timer)
            try:
                func(*args)
            except Exception:
                logger.exception("Scheduled sync task failed")

        timer = threading.Timer(delay, fire)
        timer.daemon = True
        with self._lock:
            self._timers.add(timer)
        timer.start()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._config.max_workers,
                    thread_name_prefix="plannersync",
                )
            return self._executor

    # === Listeners ===

    def add_listener(self, listener: OutcomeListener) -> None:
        """Register a callback for every outcome, including replays after restart."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: OutcomeListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _deliver(
        self,
        trip_id: str,
        operation: Operation,
        outcome: SyncOutcome,
        callbacks: SyncCallbacks | None,
        future: Future[SyncOutcome] | None,
    ) -> None:
        """Notify callbacks and listeners, then resolve the future.

        The future only takes the first outcome; later ones reach callbacks
        and listeners only.
        """
        if callbacks is not None:
            try:
                if outcome.status == OutcomeStatus.SUCCEEDED:
                    if callbacks.on_success:
                        callbacks.on_success(outcome.data)
                elif outcome.status in (
                    OutcomeStatus.RETRYING,
                    OutcomeStatus.ABANDONED,
                    OutcomeStatus.FAILED,
                ):
                    if callbacks.on_error:
                        callbacks.on_error(outcome)
                elif outcome.status == OutcomeStatus.QUEUED:
                    if callbacks.on_offline:
                        callbacks.on_offline()
            except Exception:
                logger.exception("Sync callback failed for %s", type(operation).__name__)

        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(trip_id, operation, outcome)
            except Exception:
                logger.exception("Sync listener failed")

        if future is not None and not future.done():
            try:
                future.set_result(outcome)
            except InvalidStateError:
                pass

    # === Connectivity ===

    def _on_connectivity_change(self, online: bool) -> None:
        if online and self._store:
            logger.info("Connection restored, syncing %d pending actions", len(self._store))
            self.request_drain()

    def request_drain(self) -> None:
        """Ask for a drain cycle (asynchronous when started)."""
        if self.is_running:
            self._wake.set()
        else:
            self.drain()

    # === Intents ===

    def submit(
        self,
        trip_id: str,
        operation: Operation,
        callbacks: SyncCallbacks | None = None,
    ) -> Future[SyncOutcome]:
        """Submit any mutation intent.

        Task operations are queued; trip-draft saves go through the
        cooldown; everything else is sent directly.

        Returns:
            Future resolved with the first outcome of the intent
        """
        if isinstance(operation, SaveTripDraft):
            return self._save_trip(trip_id, operation, [callbacks] if callbacks else [])
        if operation.target == TargetType.TASK:
            return self._enqueue(trip_id, operation, callbacks)
        return self._submit_direct(trip_id, operation, callbacks)

    def add_task(
        self,
        trip_id: str,
        description: str,
        callbacks: SyncCallbacks | None = None,
        placeholder_id: str | None = None,
    ) -> Future[SyncOutcome]:
        return self.submit(trip_id, AddTask(description, placeholder_id), callbacks)

    def update_task(
        self,
        trip_id: str,
        task_id: str,
        completed: bool,
        callbacks: SyncCallbacks | None = None,
    ) -> Future[SyncOutcome]:
        return self.submit(trip_id, UpdateTask(task_id, completed), callbacks)

    def delete_task(
        self, trip_id: str, task_id: str, callbacks: SyncCallbacks | None = None
    ) -> Future[SyncOutcome]:
        return self.submit(trip_id, DeleteTask(task_id), callbacks)

    def add_checklist_item(
        self,
        trip_id: str,
        text: str,
        callbacks: SyncCallbacks | None = None,
        placeholder_id: str | None = None,
    ) -> Future[SyncOutcome]:
        return self.submit(trip_id, AddChecklistItem(text, placeholder_id), callbacks)

    def update_checklist_item(
        self,
        trip_id: str,
        item_id: str,
        checked: bool,
        callbacks: SyncCallbacks | None = None,
    ) -> Future[SyncOutcome]:
        return self.submit(trip_id, UpdateChecklistItem(item_id, checked), callbacks)

    def remove_checklist_item(
        self, trip_id: str, item_id: str, callbacks: SyncCallbacks | None = None
    ) -> Future[SyncOutcome]:
        return self.submit(trip_id, DeleteChecklistItem(item_id), callbacks)

    def add_guest(
        self,
        trip_id: str,
        name: str,
        callbacks: SyncCallbacks | None = None,
        placeholder_id: str | None = None,
    ) -> Future[SyncOutcome]:
        return self.submit(trip_id, AddGuest(name, placeholder_id), callbacks)

    def update_guest(
        self,
        trip_id: str,
        guest_id: str,
        name: str,
        callbacks: SyncCallbacks | None = None,
    ) -> Future[SyncOutcome]:
        return self.submit(trip_id, UpdateGuest(guest_id, name), callbacks)

    def delete_guest(
        self, trip_id: str, guest_id: str, callbacks: SyncCallbacks | None = None
    ) -> Future[SyncOutcome]:
        return self.submit(trip_id, DeleteGuest(guest_id), callbacks)

    def save_trip(
        self,
        trip_id: str,
        destination: str,
        date: str,
        is_draft: bool | None = None,
        callbacks: SyncCallbacks | None = None,
    ) -> Future[SyncOutcome]:
        """Save the trip draft, at most once per cooldown window.

        A save issued while the trip is cooling down (or while a save is in
        flight) is deferred until the window elapses; further saves in the
        meantime replace its payload and share its future.
        """
        operation = SaveTripDraft(
            trip_id=trip_id, destination=destination, date=date, is_draft=is_draft
        )
        return self.submit(trip_id, operation, callbacks)

    # === Queued path ===

    def _enqueue(
        self,
        trip_id: str,
        operation: Operation,
        callbacks: SyncCallbacks | None,
        future: Future[SyncOutcome] | None = None,
    ) -> Future[SyncOutcome]:
        future = future or Future()
        action = PendingAction.create(trip_id, operation, enqueued_at=self._clock())
        if operation.kind == ActionKind.ADD and operation.placeholder:
            self._registry.mark_pending(operation.placeholder)

        with self._lock:
            self._store.append(action)
            self._waiters[action.action_id] = _Waiter(callbacks, future)

        if self._monitor.is_online:
            self.request_drain()
        else:
            logger.info("Offline: %r will sync later", action)
            outcome = SyncOutcome(status=OutcomeStatus.QUEUED, action_id=action.action_id)
            self._deliver(trip_id, operation, outcome, callbacks, future)
        return future

    # === Direct path ===

    def _submit_direct(
        self,
        trip_id: str,
        operation: Operation,
        callbacks: SyncCallbacks | None,
        future: Future[SyncOutcome] | None = None,
        key: tuple[str, str, str] | None = None,
    ) -> Future[SyncOutcome]:
        future = future or Future()

        target = operation.entity_id
        if target is not None and is_placeholder(target):
            resolved = self._registry.resolve(target)
            if resolved is None:
                # Queue behind the add that creates the entity
                return self._enqueue(trip_id, operation, callbacks, future)
            operation = operation.retarget(resolved)

        if not self._monitor.is_online:
            return self._enqueue(trip_id, operation, callbacks, future)

        key = key or make_guard_key(
            operation.kind, trip_id, operation.entity_id or operation.placeholder
        )
        if not self._guard.try_acquire(key):
            outcome = SyncOutcome(status=OutcomeStatus.DUPLICATE)
            self._deliver(trip_id, operation, outcome, None, future)
            return future

        if operation.kind == ActionKind.ADD and operation.placeholder:
            self._registry.mark_pending(operation.placeholder)

        try:
            self._get_executor().submit(
                self._run_direct, trip_id, operation, callbacks, future, key
            )
        except RuntimeError:
            self._guard.release(key)
            raise
        return future

    def _run_direct(
        self,
        trip_id: str,
        operation: Operation,
        callbacks: SyncCallbacks | None,
        future: Future[SyncOutcome],
        key: tuple[str, str, str],
    ) -> None:
        try:
            payload = self._dispatcher.call(trip_id, operation)
        except Exception as e:
            self._guard.release(key)
            if is_transient_error(e) or not self._monitor.is_online:
                logger.warning(
                    "%s for trip %s failed without response, queued: %s",
                    type(operation).__name__,
                    trip_id,
                    e,
                )
                self._monitor.mark_offline()
                self._enqueue(trip_id, operation, callbacks, future)
                return

            logger.error("%s for trip %s rejected: %s", type(operation).__name__, trip_id, e)
            if isinstance(operation, SaveTripDraft) and isinstance(
                e, (ConflictError, RateLimitError)
            ):
                self._cooldown.penalize(trip_id)
            self._forget_placeholder(operation)
            outcome = SyncOutcome(status=OutcomeStatus.FAILED, error=e, attempts=1)
            self._deliver(trip_id, operation, outcome, callbacks, future)
            return

        self._guard.release(key)
        outcome = self._dispatcher.success_outcome(operation, payload)
        if isinstance(operation, SaveTripDraft):
            self._cooldown.reset(trip_id)
        self._confirm_placeholder(operation, outcome)
        self._deliver(trip_id, operation, outcome, callbacks, future)

        placeholder = operation.placeholder
        if operation.kind == ActionKind.ADD and placeholder:
            if self.is_pending(trip_id, placeholder):
                # Queued follow-ups were waiting for this id
                self.request_drain()

    # === Trip draft saves ===

    def _save_trip(
        self,
        trip_id: str,
        operation: SaveTripDraft,
        callbacks: list[SyncCallbacks],
        future: Future[SyncOutcome] | None = None,
    ) -> Future[SyncOutcome]:
        key = make_guard_key(ActionKind.UPDATE, trip_id, trip_id)

        with self._lock:
            deferred = self._deferred_saves.get(trip_id)
            if deferred is not None:
                deferred.operation = operation
                deferred.callbacks.extend(callbacks)
                logger.debug("Deferred save of trip %s updated with latest payload", trip_id)
                return deferred.future

            remaining = self._cooldown.remaining(trip_id)
            if remaining > 0 or key in self._guard:
                delay = remaining or max(self._cooldown.cooldown, 0.1)
                deferred = _DeferredSave(operation, list(callbacks), future or Future())
                self._deferred_saves[trip_id] = deferred
                logger.info("Waiting %.1fs of cooldown before saving trip %s", delay, trip_id)
                self._schedule(delay, self._fire_deferred_save, trip_id)
                return deferred.future

            self._cooldown.mark(trip_id)

        logger.info("Saving trip %s", trip_id)
        return self._submit_direct(trip_id, operation, _combine(callbacks), future, key=key)

    def _fire_deferred_save(self, trip_id: str) -> None:
        with self._lock:
            deferred = self._deferred_saves.pop(trip_id, None)
        if deferred is not None:
            self._save_trip(trip_id, deferred.operation, deferred.callbacks, deferred.future)

    # === Drain cycle ===

    def drain(self) -> DrainReport:
        """Run one drain cycle over a snapshot of the queue.

        Only one cycle runs at a time; a call made while another cycle is
        running (or while offline) returns a skipped report.
        """
        report = DrainReport()
        with self._lock:
            if self._draining or not self._monitor.is_online:
                report.skipped = True
                return report
            self._draining = True

        try:
            snapshot = self._store.snapshot()
            if snapshot:
                logger.info("Syncing %d pending actions", len(snapshot))
            for action in snapshot:
                if not self._monitor.is_online:
                    report.interrupted = True
                    logger.info("Connection lost during sync, remaining actions stay queued")
                    break
                if self._store.get(action.action_id) is None:
                    continue
                report.record(self._dispatch_queued(action))
        finally:
            with self._lock:
                self._draining = False

        if report.total:
            logger.info(
                "Sync cycle done: %d succeeded, %d retrying, %d abandoned, %d deferred",
                report.succeeded,
                report.retrying,
                report.abandoned,
                report.deferred,
            )
        return report

    def _dispatch_queued(self, action: PendingAction) -> SyncOutcome:
        operation = action.operation
        target = operation.entity_id

        if target is not None and is_placeholder(target):
            status = self._registry.status(target)
            if status == PlaceholderStatus.PENDING:
                logger.debug("%r waits for placeholder %s", action, target)
                return SyncOutcome(status=OutcomeStatus.DEFERRED, action_id=action.action_id)
            if status == PlaceholderStatus.UNKNOWN:
                outcome = self._dispatcher.abandon(action, UnresolvedPlaceholderError(target))
                self._finish(action, operation, outcome)
                return outcome
            operation = operation.retarget(self._registry.resolve(target) or target)

        key = make_guard_key(
            operation.kind,
            action.trip_id,
            operation.entity_id or operation.placeholder or action.action_id,
        )
        with self._guard.hold(key) as acquired:
            if not acquired:
                logger.debug("%r busy with a direct request, deferred", action)
                return SyncOutcome(status=OutcomeStatus.DEFERRED, action_id=action.action_id)
            outcome = self._dispatcher.execute(action, operation)

        if outcome.error is not None and is_transient_error(outcome.error):
            self._monitor.mark_offline()

        if outcome.status == OutcomeStatus.RETRYING:
            self._store.update(action)
            with self._lock:
                waiter = self._waiters.get(action.action_id)
            self._deliver(
                action.trip_id,
                operation,
                outcome,
                waiter.callbacks if waiter else None,
                waiter.future if waiter else None,
            )
        else:
            self._finish(action, operation, outcome)
        return outcome

    def _finish(self, action: PendingAction, operation: Operation, outcome: SyncOutcome) -> None:
        """Remove an action after a terminal outcome and notify."""
        self._store.remove(action.action_id)
        if outcome.status == OutcomeStatus.SUCCEEDED:
            self._confirm_placeholder(operation, outcome)
        else:
            self._forget_placeholder(operation)

        with self._lock:
            waiter = self._waiters.pop(action.action_id, None)
        self._deliver(
            action.trip_id,
            operation,
            outcome,
            waiter.callbacks if waiter else None,
            waiter.future if waiter else None,
        )

    # === Placeholders ===

    def _confirm_placeholder(self, operation: Operation, outcome: SyncOutcome) -> None:
        if operation.kind != ActionKind.ADD or not operation.placeholder:
            return
        if outcome.entity_id:
            self._registry.record(operation.placeholder, outcome.entity_id)
        else:
            logger.warning(
                "Server returned no id for %s, dependent actions will be dropped",
                operation.placeholder,
            )
            self._registry.discard(operation.placeholder)

    def _forget_placeholder(self, operation: Operation) -> None:
        if operation.kind == ActionKind.ADD and operation.placeholder:
            self._registry.discard(operation.placeholder)

    def resolve_id(self, entity_id: str) -> str | None:
        """Server id for an entity id (None while a placeholder is unconfirmed)."""
        return self._registry.resolve(entity_id)

    # === Queries ===

    def pending_actions(self, trip_id: str | None = None) -> list[PendingAction]:
        """Queued actions, oldest first."""
        if trip_id is None:
            return self._store.snapshot()
        return self._store.pending_for(trip_id)

    def pending_count(self, trip_id: str | None = None) -> int:
        if trip_id is None:
            return len(self._store)
        return len(self._store.pending_for(trip_id))

    def has_pending(self, trip_id: str) -> bool:
        return self._store.has_pending(trip_id)

    def is_pending(self, trip_id: str, entity_id: str) -> bool:
        """Check if an entity still has unconfirmed changes."""
        if self._registry.status(entity_id) == PlaceholderStatus.PENDING:
            return True
        for action in self._store.pending_for(trip_id):
            if entity_id in (action.entity_id, action.operation.placeholder):
                return True
        return False
