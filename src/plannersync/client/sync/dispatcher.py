"""Action dispatcher.

This module provides:
- PlannerAPI: Protocol of the remote operations the dispatcher invokes
- ActionDispatcher: Maps operations to remote calls and applies the retry
  state machine to pending actions

State machine of a pending action:

    QUEUED ──► DISPATCHING ──► SUCCEEDED
                   │
                   ├──► RETRYING   (attempts < max_attempts, stays queued)
                   └──► ABANDONED  (attempts == max_attempts, removed)

Mapping (kind, target) → remote call:
    | Operation           | Remote call                         | Data |
    |---------------------|-------------------------------------|------|
    | AddTask             | create_task                         | no   |
    | AddChecklistItem    | create_checklist_item               | yes  |
    | AddGuest            | create_guest                        | yes  |
    | UpdateTask          | update_task                         | no   |
    | UpdateChecklistItem | update_checklist_item               | yes  |
    | UpdateGuest         | update_guest                        | yes  |
    | Delete*             | delete_task / _checklist_item / _guest | no |
    | SaveTripDraft       | update_trip                         | no   |
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from plannersync.client.sync.retry import DEFAULT_MAX_ATTEMPTS, is_transient_error
from plannersync.client.sync.types import (
    ActionKind,
    AddChecklistItem,
    AddGuest,
    AddTask,
    DeleteChecklistItem,
    DeleteGuest,
    DeleteTask,
    Operation,
    OutcomeStatus,
    PendingAction,
    SaveTripDraft,
    SyncError,
    SyncOutcome,
    UpdateChecklistItem,
    UpdateGuest,
    UpdateTask,
)

logger = logging.getLogger(__name__)


class PlannerAPI(Protocol):
    """Remote operations used by the dispatcher.

    Implemented by PlannerClient; tests provide in-process fakes.
    """

    def create_task(self, trip_id: str, description: str) -> Any: ...

    def update_task(self, trip_id: str, task_id: str, completed: bool) -> Any: ...

    def delete_task(self, trip_id: str, task_id: str) -> Any: ...

    def create_checklist_item(self, trip_id: str, text: str) -> Any: ...

    def update_checklist_item(self, trip_id: str, item_id: str, checked: bool) -> Any: ...

    def delete_checklist_item(self, trip_id: str, item_id: str) -> Any: ...

    def create_guest(self, trip_id: str, name: str) -> Any: ...

    def update_guest(self, trip_id: str, guest_id: str, name: str) -> Any: ...

    def delete_guest(self, trip_id: str, guest_id: str) -> Any: ...

    def update_trip(
        self, trip_id: str, destination: str, date: str, is_draft: bool | None = None
    ) -> Any: ...

    def health_check(self) -> bool: ...


def server_id(payload: Any) -> str | None:
    """Extract the id of a server document (``_id`` or ``id``)."""
    if isinstance(payload, dict):
        value = payload.get("_id", payload.get("id"))
        if value is not None:
            return str(value)
    return None


class ActionDispatcher:
    """Turns operations into remote calls."""

    def __init__(self, api: PlannerAPI, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        """Initialize the dispatcher.

        Args:
            api: Remote collaborator
            max_attempts: Failed attempts after which an action is abandoned
        """
        self._api = api
        self._max_attempts = max_attempts
        self._handlers: dict[type[Operation], Callable[[str, Any], Any]] = {
            AddTask: lambda trip, op: api.create_task(trip, op.description),
            AddChecklistItem: lambda trip, op: api.create_checklist_item(trip, op.text),
            AddGuest: lambda trip, op: api.create_guest(trip, op.name),
            UpdateTask: lambda trip, op: api.update_task(trip, op.task_id, op.completed),
            UpdateChecklistItem: lambda trip, op: api.update_checklist_item(
                trip, op.item_id, op.checked
            ),
            UpdateGuest: lambda trip, op: api.update_guest(trip, op.guest_id, op.name),
            DeleteTask: lambda trip, op: api.delete_task(trip, op.task_id),
            DeleteChecklistItem: lambda trip, op: api.delete_checklist_item(
                trip, op.item_id
            ),
            DeleteGuest: lambda trip, op: api.delete_guest(trip, op.guest_id),
            SaveTripDraft: lambda trip, op: api.update_trip(
                trip, op.destination, op.date, op.is_draft
            ),
        }

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def call(self, trip_id: str, operation: Operation) -> Any:
        """Invoke the remote call of an operation.

        Returns:
            Raw server payload (None for calls without a body)

        Raises:
            SyncError: If no handler exists for the operation type
            APIError: Propagated from the remote collaborator
        """
        handler = self._handlers.get(type(operation))
        if handler is None:
            raise SyncError(f"No remote call for {type(operation).__name__}")
        return handler(trip_id, operation)

    def success_outcome(
        self,
        operation: Operation,
        payload: Any,
        action_id: str | None = None,
        attempts: int = 0,
    ) -> SyncOutcome:
        """Build the outcome of a confirmed operation."""
        if operation.kind == ActionKind.ADD:
            entity_id = server_id(payload)
        else:
            entity_id = server_id(payload) or operation.entity_id
        return SyncOutcome(
            status=OutcomeStatus.SUCCEEDED,
            action_id=action_id,
            data=payload if operation.returns_data else None,
            attempts=attempts,
            entity_id=entity_id,
        )

    def execute(
        self,
        action: PendingAction,
        operation: Operation | None = None,
    ) -> SyncOutcome:
        """Dispatch a pending action once.

        Increments ``action.attempts`` on failure. The caller removes the
        action from the queue on a terminal outcome.

        Args:
            action: The queued action
            operation: Operation to send instead of ``action.operation``
                (used after placeholder re-targeting)

        Returns:
            SUCCEEDED, RETRYING or ABANDONED outcome
        """
        operation = operation or action.operation
        logger.debug("Dispatching %r", action)

        try:
            payload = self.call(action.trip_id, operation)
        except Exception as e:
            action.attempts += 1
            if action.attempts >= self._max_attempts:
                logger.error(
                    "Giving up on %r after %d attempts: %s", action, action.attempts, e
                )
                status = OutcomeStatus.ABANDONED
            else:
                logger.warning(
                    "Attempt %d/%d failed for %r (%s): %s",
                    action.attempts,
                    self._max_attempts,
                    action,
                    "network" if is_transient_error(e) else "rejected",
                    e,
                )
                status = OutcomeStatus.RETRYING
            return SyncOutcome(
                status=status,
                action_id=action.action_id,
                error=e,
                attempts=action.attempts,
            )

        logger.debug("Succeeded %r", action)
        return self.success_outcome(
            operation, payload, action_id=action.action_id, attempts=action.attempts
        )

    def abandon(self, action: PendingAction, error: BaseException) -> SyncOutcome:
        """Abandon an action without dispatching it."""
        logger.error("Abandoning %r: %s", action, error)
        return SyncOutcome(
            status=OutcomeStatus.ABANDONED,
            action_id=action.action_id,
            error=error,
            attempts=action.attempts,
        )
