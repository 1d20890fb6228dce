"""Optimistic trip state.

This module provides:
- TripDraft: Editable trip fields (destination, date, draft flag)
- OptimisticTripState: In-memory view of one trip that applies intents
  immediately and reconciles with the sync service outcome

Each intent snapshots the affected entity, applies the change, and submits
it to the SyncService without blocking. On success the placeholder record
is swapped for the server record; on a terminal failure the entity is
restored from the snapshot. A RETRYING notice keeps the optimistic value.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, replace
from typing import Any

from plannersync.client.sync.dispatcher import server_id
from plannersync.client.sync.service import SyncService
from plannersync.client.sync.types import SyncCallbacks, SyncOutcome, new_placeholder_id

logger = logging.getLogger(__name__)

Record = dict[str, Any]

TASKS = "tasks"
CHECKLIST = "checklist"
GUESTS = "guests"


@dataclass(frozen=True)
class TripDraft:
    destination: str = ""
    date: str = ""
    is_draft: bool | None = None


def _index(records: list[Record] | None) -> dict[str, Record]:
    result: dict[str, Record] = {}
    for record in records or []:
        record_id = server_id(record)
        if record_id is None:
            raise ValueError(f"Record without id: {record!r}")
        result[record_id] = dict(record)
    return result


class OptimisticTripState:
    """Optimistic view of a trip's tasks, checklist, guests and draft.

    Usage:
        state = OptimisticTripState(service, "trip-1", checklist=items)
        placeholder, future = state.add_checklist_item("Sunscreen")
        state.checklist  # already contains the new item
    """

    def __init__(
        self,
        service: SyncService,
        trip_id: str,
        tasks: list[Record] | None = None,
        checklist: list[Record] | None = None,
        guests: list[Record] | None = None,
        draft: TripDraft | None = None,
        debounce: float | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        """Initialize from server records.

        Args:
            service: Sync service the intents are submitted to
            trip_id: Trip this view belongs to
            tasks, checklist, guests: Server records (``_id`` or ``id`` keyed)
            draft: Current trip fields
            debounce: Delay before an edited draft is saved
                (defaults to the service's save_debounce)
            on_change: Called after every local change
        """
        self._service = service
        self._trip_id = trip_id
        self._lock = threading.RLock()
        self._collections: dict[str, dict[str, Record]] = {
            TASKS: _index(tasks),
            CHECKLIST: _index(checklist),
            GUESTS: _index(guests),
        }
        self._draft = draft or TripDraft()
        self._confirmed_draft = self._draft
        self._debounce = service.config.save_debounce if debounce is None else debounce
        self._save_timer: threading.Timer | None = None
        self._on_change = on_change

    @property
    def trip_id(self) -> str:
        return self._trip_id

    @property
    def tasks(self) -> list[Record]:
        return self._records(TASKS)

    @property
    def checklist(self) -> list[Record]:
        return self._records(CHECKLIST)

    @property
    def guests(self) -> list[Record]:
        return self._records(GUESTS)

    @property
    def draft(self) -> TripDraft:
        return self._draft

    def _records(self, collection: str) -> list[Record]:
        with self._lock:
            return [dict(r) for r in self._collections[collection].values()]

    def get(self, collection: str, entity_id: str) -> Record | None:
        with self._lock:
            record = self._collections[collection].get(entity_id)
            return dict(record) if record is not None else None

    def is_pending(self, entity_id: str) -> bool:
        """Check if an entity still has unconfirmed changes."""
        return self._service.is_pending(self._trip_id, entity_id)

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change()
        except Exception:
            logger.exception("State change handler failed")

    # === Reconciliation ===

    def _apply(
        self,
        collection: str,
        entity_id: str,
        record: Record | None,
        submit: Callable[[SyncCallbacks], Future[SyncOutcome]],
    ) -> Future[SyncOutcome]:
        """Apply a change to one entity and submit it.

        Args:
            collection: Collection name
            entity_id: Entity being changed (placeholder for adds)
            record: New record, or None to remove the entity
            submit: Sends the intent with the reconciling callbacks
        """
        with self._lock:
            items = self._collections[collection]
            keys = list(items)
            position = keys.index(entity_id) if entity_id in items else len(keys)
            previous = items.get(entity_id)
            if record is None:
                items.pop(entity_id, None)
            else:
                items[entity_id] = record
        self._changed()

        def on_success(data: Any) -> None:
            self._confirm(collection, entity_id, data)

        def on_error(outcome: SyncOutcome) -> None:
            if not outcome.terminal:
                return
            logger.info("Rolling back %s %s: %s", collection, entity_id, outcome.error)
            self._restore(collection, entity_id, previous, position, removed=record is None)

        return submit(SyncCallbacks(on_success=on_success, on_error=on_error))

    def _locate(self, items: dict[str, Record], entity_id: str) -> str:
        """Current key of an entity, following a confirmed placeholder."""
        if entity_id in items:
            return entity_id
        return self._service.resolve_id(entity_id) or entity_id

    def _confirm(self, collection: str, entity_id: str, data: Any) -> None:
        """Swap a placeholder (or stale) record for the server's."""
        with self._lock:
            items = self._collections[collection]
            entity_id = self._locate(items, entity_id)
            if entity_id not in items:
                return
            new_id = server_id(data) or self._service.resolve_id(entity_id) or entity_id
            merged = dict(items[entity_id])
            if isinstance(data, dict):
                merged.update(data)
            merged["_id"] = new_id
            if new_id == entity_id:
                items[entity_id] = merged
            else:
                self._collections[collection] = {
                    (new_id if k == entity_id else k): (merged if k == entity_id else v)
                    for k, v in items.items()
                }
        self._changed()

    def _restore(
        self,
        collection: str,
        entity_id: str,
        previous: Record | None,
        position: int,
        removed: bool,
    ) -> None:
        with self._lock:
            items = self._collections[collection]
            entity_id = self._locate(items, entity_id)
            if not removed and previous is not None and entity_id not in items:
                # Removed since the change was made
                return
            items.pop(entity_id, None)
            if previous is not None:
                entries = list(items.items())
                restored = {**previous, "_id": entity_id}
                entries.insert(min(position, len(entries)), (entity_id, restored))
                self._collections[collection] = dict(entries)
        self._changed()

    def _require(self, collection: str, entity_id: str) -> Record:
        with self._lock:
            record = self._collections[collection].get(entity_id)
        if record is None:
            raise KeyError(f"Unknown {collection} entry: {entity_id}")
        return dict(record)

    # === Checklist ===

    def add_checklist_item(self, text: str) -> tuple[str, Future[SyncOutcome]]:
        placeholder = new_placeholder_id()
        record = {"_id": placeholder, "text": text, "checked": False}
        future = self._apply(
            CHECKLIST,
            placeholder,
            record,
            lambda cb: self._service.add_checklist_item(
                self._trip_id, text, callbacks=cb, placeholder_id=placeholder
            ),
        )
        return placeholder, future

    def toggle_checklist_item(self, item_id: str) -> Future[SyncOutcome]:
        record = self._require(CHECKLIST, item_id)
        record["checked"] = not record.get("checked", False)
        checked = record["checked"]
        return self._apply(
            CHECKLIST,
            item_id,
            record,
            lambda cb: self._service.update_checklist_item(
                self._trip_id, item_id, checked, callbacks=cb
            ),
        )

    def remove_checklist_item(self, item_id: str) -> Future[SyncOutcome]:
        self._require(CHECKLIST, item_id)
        return self._apply(
            CHECKLIST,
            item_id,
            None,
            lambda cb: self._service.remove_checklist_item(self._trip_id, item_id, callbacks=cb),
        )

    # === Tasks ===

    def add_task(self, description: str) -> tuple[str, Future[SyncOutcome]]:
        placeholder = new_placeholder_id()
        record = {"_id": placeholder, "description": description, "completed": False}
        future = self._apply(
            TASKS,
            placeholder,
            record,
            lambda cb: self._service.add_task(
                self._trip_id, description, callbacks=cb, placeholder_id=placeholder
            ),
        )
        return placeholder, future

    def complete_task(self, task_id: str, completed: bool = True) -> Future[SyncOutcome]:
        record = self._require(TASKS, task_id)
        record["completed"] = completed
        return self._apply(
            TASKS,
            task_id,
            record,
            lambda cb: self._service.update_task(self._trip_id, task_id, completed, callbacks=cb),
        )

    def remove_task(self, task_id: str) -> Future[SyncOutcome]:
        self._require(TASKS, task_id)
        return self._apply(
            TASKS,
            task_id,
            None,
            lambda cb: self._service.delete_task(self._trip_id, task_id, callbacks=cb),
        )

    # === Guests ===

    def add_guest(self, name: str) -> tuple[str, Future[SyncOutcome]]:
        placeholder = new_placeholder_id()
        record = {"_id": placeholder, "name": name}
        future = self._apply(
            GUESTS,
            placeholder,
            record,
            lambda cb: self._service.add_guest(
                self._trip_id, name, callbacks=cb, placeholder_id=placeholder
            ),
        )
        return placeholder, future

    def rename_guest(self, guest_id: str, name: str) -> Future[SyncOutcome]:
        record = self._require(GUESTS, guest_id)
        record["name"] = name
        return self._apply(
            GUESTS,
            guest_id,
            record,
            lambda cb: self._service.update_guest(self._trip_id, guest_id, name, callbacks=cb),
        )

    def remove_guest(self, guest_id: str) -> Future[SyncOutcome]:
        self._require(GUESTS, guest_id)
        return self._apply(
            GUESTS,
            guest_id,
            None,
            lambda cb: self._service.delete_guest(self._trip_id, guest_id, callbacks=cb),
        )

    # === Trip draft ===

    def edit_trip(
        self,
        destination: str | None = None,
        date: str | None = None,
        is_draft: bool | None = None,
    ) -> None:
        """Edit the trip fields; the save is sent once edits pause."""
        changes: dict[str, Any] = {}
        if destination is not None:
            changes["destination"] = destination
        if date is not None:
            changes["date"] = date
        if is_draft is not None:
            changes["is_draft"] = is_draft

        with self._lock:
            self._draft = replace(self._draft, **changes)
            if self._save_timer is not None:
                self._save_timer.cancel()
            self._save_timer = threading.Timer(self._debounce, self.flush)
            self._save_timer.daemon = True
            self._save_timer.start()
        self._changed()

    def flush(self) -> Future[SyncOutcome] | None:
        """Save the edited draft now.

        Returns:
            Future of the save, or None if nothing changed
        """
        with self._lock:
            if self._save_timer is not None:
                self._save_timer.cancel()
                self._save_timer = None
            draft = self._draft
            if draft == self._confirmed_draft:
                return None

        def on_success(data: Any) -> None:
            with self._lock:
                self._confirmed_draft = draft

        def on_error(outcome: SyncOutcome) -> None:
            if not outcome.terminal:
                return
            with self._lock:
                if self._draft != draft:
                    # Newer edits supersede the failed save
                    return
                self._draft = self._confirmed_draft
            logger.info("Rolling back draft of trip %s: %s", self._trip_id, outcome.error)
            self._changed()

        return self._service.save_trip(
            self._trip_id,
            draft.destination,
            draft.date,
            draft.is_draft,
            callbacks=SyncCallbacks(on_success=on_success, on_error=on_error),
        )

    def close(self) -> None:
        """Cancel a pending debounced save."""
        with self._lock:
            if self._save_timer is not None:
                self._save_timer.cancel()
                self._save_timer = None
