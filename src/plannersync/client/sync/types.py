"""Shared types and dataclasses for sync operations.

This module provides:
- ActionKind, TargetType: Enumerations describing what an action does
- Operation variants (AddTask, UpdateChecklistItem, SaveTripDraft, ...)
- PendingAction: Durable envelope around an operation
- OutcomeStatus, SyncOutcome: Typed result of a dispatch
- SyncCallbacks: Optional per-intent notification hooks
- Exceptions raised by the sync layer
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, ClassVar

PLACEHOLDER_PREFIX = "temp-"


class SyncError(Exception):
    """Base exception for sync errors."""


class InvalidActionError(SyncError):
    """A persisted action could not be decoded."""


class UnresolvedPlaceholderError(SyncError):
    """An action targets a placeholder whose creation was never confirmed."""

    def __init__(self, placeholder_id: str) -> None:
        self.placeholder_id = placeholder_id
        super().__init__(f"Placeholder {placeholder_id} was never confirmed by the server")


class ActionKind(str, Enum):
    """Kind of mutation."""

    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class TargetType(str, Enum):
    """Logical entity a mutation affects."""

    TASK = "task"
    CHECKLIST_ITEM = "checklist-item"
    GUEST = "guest"
    TRIP_DRAFT = "trip-draft"


def new_placeholder_id() -> str:
    """Mint a client-side id for an entity the server has not confirmed yet."""
    return f"{PLACEHOLDER_PREFIX}{uuid.uuid4().hex}"


def is_placeholder(entity_id: str | None) -> bool:
    """Check if an id was minted locally."""
    return entity_id is not None and entity_id.startswith(PLACEHOLDER_PREFIX)


# =============================================================================
# Operation variants
# =============================================================================


@dataclass(frozen=True)
class Operation:
    """Base class for operation variants.

    Subclasses declare ``kind`` and ``target`` as class variables and carry
    only the fields their remote call needs.
    """

    kind: ClassVar[ActionKind]
    target: ClassVar[TargetType]
    # Whether the server payload is handed to on_success
    returns_data: ClassVar[bool] = False
    # Name of the field holding the target entity id (None for adds)
    entity_field: ClassVar[str | None] = None

    @property
    def entity_id(self) -> str | None:
        """Id of the affected sub-entity, absent for adds."""
        if self.entity_field is None:
            return None
        value: str = getattr(self, self.entity_field)
        return value

    @property
    def placeholder(self) -> str | None:
        """Placeholder id this operation creates or targets, if any."""
        if self.kind == ActionKind.ADD:
            return getattr(self, "placeholder_id", None)
        if is_placeholder(self.entity_id):
            return self.entity_id
        return None

    def retarget(self, entity_id: str) -> Operation:
        """Return a copy aimed at another entity id."""
        if self.entity_field is None:
            raise SyncError(f"{type(self).__name__} has no entity to retarget")
        return replace(self, **{self.entity_field: entity_id})

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a flat JSON-compatible dict."""
        data: dict[str, Any] = {"kind": self.kind.value, "target": self.target.value}
        for f in fields(self):
            data[f.name] = getattr(self, f.name)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Operation:
        """Deserialize any operation variant from its dict form.

        Raises:
            InvalidActionError: If the dict does not describe a known variant.
        """
        try:
            key = (ActionKind(data["kind"]), TargetType(data["target"]))
        except (KeyError, ValueError) as e:
            raise InvalidActionError(f"Unknown operation: {data!r}") from e

        variant = OPERATION_TYPES.get(key)
        if variant is None:
            raise InvalidActionError(f"Unsupported operation {key[0].value}/{key[1].value}")

        kwargs = {f.name: data[f.name] for f in fields(variant) if f.name in data}
        try:
            return variant(**kwargs)
        except TypeError as e:
            raise InvalidActionError(f"Malformed {variant.__name__}: {data!r}") from e


@dataclass(frozen=True)
class AddTask(Operation):
    kind: ClassVar[ActionKind] = ActionKind.ADD
    target: ClassVar[TargetType] = TargetType.TASK

    description: str
    placeholder_id: str | None = None


@dataclass(frozen=True)
class AddChecklistItem(Operation):
    kind: ClassVar[ActionKind] = ActionKind.ADD
    target: ClassVar[TargetType] = TargetType.CHECKLIST_ITEM
    returns_data: ClassVar[bool] = True

    text: str
    placeholder_id: str | None = None


@dataclass(frozen=True)
class AddGuest(Operation):
    kind: ClassVar[ActionKind] = ActionKind.ADD
    target: ClassVar[TargetType] = TargetType.GUEST
    returns_data: ClassVar[bool] = True

    name: str
    placeholder_id: str | None = None


@dataclass(frozen=True)
class UpdateTask(Operation):
    kind: ClassVar[ActionKind] = ActionKind.UPDATE
    target: ClassVar[TargetType] = TargetType.TASK
    entity_field: ClassVar[str | None] = "task_id"

    task_id: str
    completed: bool


@dataclass(frozen=True)
class UpdateChecklistItem(Operation):
    kind: ClassVar[ActionKind] = ActionKind.UPDATE
    target: ClassVar[TargetType] = TargetType.CHECKLIST_ITEM
    returns_data: ClassVar[bool] = True
    entity_field: ClassVar[str | None] = "item_id"

    item_id: str
    checked: bool


@dataclass(frozen=True)
class UpdateGuest(Operation):
    kind: ClassVar[ActionKind] = ActionKind.UPDATE
    target: ClassVar[TargetType] = TargetType.GUEST
    returns_data: ClassVar[bool] = True
    entity_field: ClassVar[str | None] = "guest_id"

    guest_id: str
    name: str


@dataclass(frozen=True)
class DeleteTask(Operation):
    kind: ClassVar[ActionKind] = ActionKind.DELETE
    target: ClassVar[TargetType] = TargetType.TASK
    entity_field: ClassVar[str | None] = "task_id"

    task_id: str


@dataclass(frozen=True)
class DeleteChecklistItem(Operation):
    kind: ClassVar[ActionKind] = ActionKind.DELETE
    target: ClassVar[TargetType] = TargetType.CHECKLIST_ITEM
    entity_field: ClassVar[str | None] = "item_id"

    item_id: str


@dataclass(frozen=True)
class DeleteGuest(Operation):
    kind: ClassVar[ActionKind] = ActionKind.DELETE
    target: ClassVar[TargetType] = TargetType.GUEST
    entity_field: ClassVar[str | None] = "guest_id"

    guest_id: str


@dataclass(frozen=True)
class SaveTripDraft(Operation):
    """Upsert of the trip destination/date/draft flag.

    The trip itself is the entity, so ``entity_id`` is the trip id.
    """

    kind: ClassVar[ActionKind] = ActionKind.UPDATE
    target: ClassVar[TargetType] = TargetType.TRIP_DRAFT
    entity_field: ClassVar[str | None] = "trip_id"

    trip_id: str
    destination: str
    date: str
    is_draft: bool | None = None


OPERATION_TYPES: dict[tuple[ActionKind, TargetType], type[Operation]] = {
    (variant.kind, variant.target): variant
    for variant in (
        AddTask,
        AddChecklistItem,
        AddGuest,
        UpdateTask,
        UpdateChecklistItem,
        UpdateGuest,
        DeleteTask,
        DeleteChecklistItem,
        DeleteGuest,
        SaveTripDraft,
    )
}


# =============================================================================
# Queue types
# =============================================================================


@dataclass
class PendingAction:
    """A durably queued mutation intent awaiting remote confirmation.

    Attributes:
        enqueued_at: Unix timestamp when the action was queued
        action_id: Unique identifier for this action
        trip_id: Owning trip (every action is scoped to exactly one trip)
        operation: The operation variant to dispatch
        attempts: Number of failed dispatches so far
    """

    enqueued_at: float
    action_id: str
    trip_id: str
    operation: Operation
    attempts: int = 0

    @classmethod
    def create(
        cls,
        trip_id: str,
        operation: Operation,
        enqueued_at: float | None = None,
    ) -> PendingAction:
        """Create a new PendingAction with generated id and timestamp."""
        return cls(
            enqueued_at=time.time() if enqueued_at is None else enqueued_at,
            action_id=uuid.uuid4().hex,
            trip_id=trip_id,
            operation=operation,
        )

    @property
    def kind(self) -> ActionKind:
        return self.operation.kind

    @property
    def target(self) -> TargetType:
        return self.operation.target

    @property
    def entity_id(self) -> str | None:
        return self.operation.entity_id

    def to_dict(self) -> dict[str, Any]:
        """Serialize for persistence."""
        return {
            "action_id": self.action_id,
            "trip_id": self.trip_id,
            "enqueued_at": self.enqueued_at,
            "attempts": self.attempts,
            "operation": self.operation.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingAction:
        """Deserialize a persisted action.

        Raises:
            InvalidActionError: If required fields are missing or malformed.
        """
        if not isinstance(data, dict):
            raise InvalidActionError(f"Expected an object, got {type(data).__name__}")
        try:
            return cls(
                enqueued_at=float(data["enqueued_at"]),
                action_id=str(data["action_id"]),
                trip_id=str(data["trip_id"]),
                operation=Operation.from_dict(data["operation"]),
                attempts=int(data.get("attempts", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidActionError(f"Malformed pending action: {data!r}") from e

    def __repr__(self) -> str:
        """Human-readable representation."""
        return (
            f"PendingAction({self.kind.value} {self.target.value}, "
            f"trip={self.trip_id!r}, entity={self.entity_id!r}, "
            f"attempts={self.attempts})"
        )


class OutcomeStatus(str, Enum):
    """Result of submitting or dispatching a mutation intent."""

    SUCCEEDED = "succeeded"
    RETRYING = "retrying"
    ABANDONED = "abandoned"
    FAILED = "failed"
    QUEUED = "queued"
    DUPLICATE = "duplicate"
    DEFERRED = "deferred"


_TERMINAL = frozenset(
    {
        OutcomeStatus.SUCCEEDED,
        OutcomeStatus.ABANDONED,
        OutcomeStatus.FAILED,
        OutcomeStatus.DUPLICATE,
    }
)


@dataclass(frozen=True)
class SyncOutcome:
    """Typed outcome of a mutation intent.

    Attributes:
        status: What happened
        action_id: Queue id of the action, None for direct calls never queued
        data: Server payload on success (for variants that return data)
        error: Exception on failure
        attempts: Failed attempts so far
        entity_id: Server id of the affected entity when known (for adds,
            the id assigned by the server)
    """

    status: OutcomeStatus
    action_id: str | None = None
    data: Any = None
    error: BaseException | None = None
    attempts: int = 0
    entity_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCEEDED

    @property
    def terminal(self) -> bool:
        """True if no further outcome will follow for this intent."""
        return self.status in _TERMINAL


@dataclass
class SyncCallbacks:
    """Per-intent notification hooks.

    Held in memory only: an action replayed after a restart runs without
    its original callbacks.

    Attributes:
        on_success: Called with the server payload (or None)
        on_error: Called with the failed outcome; ``outcome.terminal`` tells
            a final failure from an informational retry notice
        on_offline: Called when the intent was deferred to the offline queue
    """

    on_success: Callable[[Any], None] | None = None
    on_error: Callable[[SyncOutcome], None] | None = None
    on_offline: Callable[[], None] | None = None


# Listener notified of every outcome: (trip_id, operation, outcome)
OutcomeListener = Callable[[str, Operation, SyncOutcome], None]
