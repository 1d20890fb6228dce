"""Tests for sync operation types."""

from __future__ import annotations

import pytest

from plannersync.client.sync.types import (
    OPERATION_TYPES,
    ActionKind,
    AddChecklistItem,
    AddTask,
    DeleteChecklistItem,
    InvalidActionError,
    Operation,
    OutcomeStatus,
    PendingAction,
    SaveTripDraft,
    SyncError,
    SyncOutcome,
    TargetType,
    UpdateGuest,
    UpdateTask,
    is_placeholder,
    new_placeholder_id,
)


class TestOperations:
    """Tests for operation variants."""

    def test_all_combinations_registered(self) -> None:
        """Ten variants cover the supported kind/target pairs."""
        assert len(OPERATION_TYPES) == 10
        assert OPERATION_TYPES[(ActionKind.UPDATE, TargetType.TRIP_DRAFT)] is SaveTripDraft
        assert (ActionKind.ADD, TargetType.TRIP_DRAFT) not in OPERATION_TYPES

    def test_entity_id(self) -> None:
        """Adds have no entity id; updates and deletes do."""
        assert AddTask("Pack").entity_id is None
        assert UpdateTask("task-1", True).entity_id == "task-1"
        assert DeleteChecklistItem("item-1").entity_id == "item-1"
        assert SaveTripDraft("trip-1", "Lisbon", "May").entity_id == "trip-1"

    def test_placeholder(self) -> None:
        """Placeholder is the minted id of an add or a placeholder target."""
        assert AddChecklistItem("Towel", "temp-1").placeholder == "temp-1"
        assert AddTask("Pack").placeholder is None
        assert UpdateGuest("temp-2", "Ana").placeholder == "temp-2"
        assert UpdateGuest("guest-1", "Ana").placeholder is None

    def test_retarget(self) -> None:
        """retarget() returns a copy aimed at another id."""
        op = UpdateTask("temp-1", True)
        assert op.retarget("srv-1") == UpdateTask("srv-1", True)
        assert op.task_id == "temp-1"

    def test_retarget_add_rejected(self) -> None:
        """Adds cannot be retargeted."""
        with pytest.raises(SyncError):
            AddTask("Pack").retarget("srv-1")

    def test_dict_form(self) -> None:
        """Operations serialize to flat dicts with kind and target."""
        op = SaveTripDraft("trip-1", "Lisbon", "May", is_draft=True)
        data = op.to_dict()

        assert data == {
            "kind": "update",
            "target": "trip-draft",
            "trip_id": "trip-1",
            "destination": "Lisbon",
            "date": "May",
            "is_draft": True,
        }
        assert Operation.from_dict(data) == op

    @pytest.mark.parametrize(
        "data",
        [
            {"kind": "rename", "target": "task"},
            {"kind": "add", "target": "trip-draft"},
            {"target": "task"},
            {"kind": "update", "target": "task", "task_id": "t"},
        ],
    )
    def test_invalid_dict(self, data: dict[str, object]) -> None:
        """Unknown or incomplete operations raise InvalidActionError."""
        with pytest.raises(InvalidActionError):
            Operation.from_dict(data)


class TestPlaceholders:
    """Tests for placeholder ids."""

    def test_new_placeholder(self) -> None:
        """Minted ids are recognizable and unique."""
        first, second = new_placeholder_id(), new_placeholder_id()
        assert is_placeholder(first)
        assert first != second

    def test_server_ids_are_not_placeholders(self) -> None:
        """Server ids and None are not placeholders."""
        assert not is_placeholder("6650f0c2a1b2")
        assert not is_placeholder(None)


class TestPendingAction:
    """Tests for PendingAction."""

    def test_create(self) -> None:
        """create() assigns an id and a timestamp."""
        action = PendingAction.create("trip-1", AddTask("Pack"))

        assert action.action_id
        assert action.enqueued_at > 0
        assert action.attempts == 0
        assert action.kind == ActionKind.ADD
        assert action.target == TargetType.TASK
        assert action.entity_id is None

    def test_from_dict_malformed(self) -> None:
        """Malformed persisted actions raise InvalidActionError."""
        with pytest.raises(InvalidActionError):
            PendingAction.from_dict({"action_id": "x", "trip_id": "t"})
        with pytest.raises(InvalidActionError):
            PendingAction.from_dict(["not", "a", "dict"])  # type: ignore[arg-type]

    def test_repr(self) -> None:
        """repr shows kind, target and trip."""
        action = PendingAction.create("trip-1", UpdateTask("task-1", True))
        assert "update task" in repr(action)
        assert "trip-1" in repr(action)


class TestSyncOutcome:
    """Tests for SyncOutcome."""

    @pytest.mark.parametrize(
        ("status", "terminal"),
        [
            (OutcomeStatus.SUCCEEDED, True),
            (OutcomeStatus.ABANDONED, True),
            (OutcomeStatus.FAILED, True),
            (OutcomeStatus.DUPLICATE, True),
            (OutcomeStatus.RETRYING, False),
            (OutcomeStatus.QUEUED, False),
            (OutcomeStatus.DEFERRED, False),
        ],
    )
    def test_terminal(self, status: OutcomeStatus, terminal: bool) -> None:
        """Only final statuses are terminal."""
        assert SyncOutcome(status=status).terminal is terminal

    def test_ok(self) -> None:
        """ok is true only for success."""
        assert SyncOutcome(status=OutcomeStatus.SUCCEEDED).ok
        assert not SyncOutcome(status=OutcomeStatus.QUEUED).ok
