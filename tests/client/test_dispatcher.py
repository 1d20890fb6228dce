"""Tests for the action dispatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from plannersync.client.api import APIError, NetworkError
from plannersync.client.sync.dispatcher import ActionDispatcher, server_id
from plannersync.client.sync.types import (
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
    UnresolvedPlaceholderError,
    UpdateChecklistItem,
    UpdateGuest,
    UpdateTask,
)

if TYPE_CHECKING:
    from conftest import FakePlannerAPI


class TestServerId:
    """Tests for server_id."""

    def test_mongo_style_id(self) -> None:
        assert server_id({"_id": "abc123"}) == "abc123"

    def test_plain_id(self) -> None:
        assert server_id({"id": 42}) == "42"

    def test_no_id(self) -> None:
        assert server_id(None) is None
        assert server_id({"text": "x"}) is None


class TestRouting:
    """Each operation maps to one remote call."""

    @pytest.mark.parametrize(
        ("operation", "method", "args"),
        [
            (AddTask("Pack"), "create_task", ("trip-1", "Pack")),
            (UpdateTask("task-1", True), "update_task", ("trip-1", "task-1", True)),
            (DeleteTask("task-1"), "delete_task", ("trip-1", "task-1")),
            (AddChecklistItem("Towel"), "create_checklist_item", ("trip-1", "Towel")),
            (
                UpdateChecklistItem("item-1", False),
                "update_checklist_item",
                ("trip-1", "item-1", False),
            ),
            (DeleteChecklistItem("item-1"), "delete_checklist_item", ("trip-1", "item-1")),
            (AddGuest("Ana"), "create_guest", ("trip-1", "Ana")),
            (UpdateGuest("guest-1", "Bea"), "update_guest", ("trip-1", "guest-1", "Bea")),
            (DeleteGuest("guest-1"), "delete_guest", ("trip-1", "guest-1")),
            (
                SaveTripDraft("trip-1", "Lisbon", "May", True),
                "update_trip",
                ("trip-1", "Lisbon", "May", True),
            ),
        ],
    )
    def test_call(
        self,
        api: FakePlannerAPI,
        operation: Operation,
        method: str,
        args: tuple[object, ...],
    ) -> None:
        """The operation's fields are passed to the matching call."""
        dispatcher = ActionDispatcher(api)
        dispatcher.call("trip-1", operation)
        assert api.calls == [(method, args)]


class TestExecute:
    """Tests for the retry state machine."""

    def test_success_with_data(self, api: FakePlannerAPI) -> None:
        """Data-returning variants hand the payload back."""
        dispatcher = ActionDispatcher(api)
        action = PendingAction.create("trip-1", AddChecklistItem("Towel", "temp-1"))

        outcome = dispatcher.execute(action)

        assert outcome.status == OutcomeStatus.SUCCEEDED
        assert outcome.data == {"_id": "srv-1", "text": "Towel", "checked": False}
        assert outcome.entity_id == "srv-1"
        assert outcome.action_id == action.action_id

    def test_success_without_data(self, api: FakePlannerAPI) -> None:
        """Other variants report success without payload."""
        dispatcher = ActionDispatcher(api)
        action = PendingAction.create("trip-1", AddTask("Pack"))

        outcome = dispatcher.execute(action)

        assert outcome.ok
        assert outcome.data is None
        assert outcome.entity_id == "srv-1"

    def test_update_keeps_entity_id(self, api: FakePlannerAPI) -> None:
        """Updates without a body report the targeted entity."""
        dispatcher = ActionDispatcher(api)
        outcome = dispatcher.execute(PendingAction.create("trip-1", UpdateTask("task-1", True)))
        assert outcome.entity_id == "task-1"

    def test_operation_override(self, api: FakePlannerAPI) -> None:
        """A retargeted operation is sent instead of the stored one."""
        dispatcher = ActionDispatcher(api)
        action = PendingAction.create("trip-1", UpdateTask("temp-1", True))

        dispatcher.execute(action, UpdateTask("srv-9", True))

        assert api.calls_to("update_task") == [("trip-1", "srv-9", True)]

    def test_failures_count_attempts(self, api: FakePlannerAPI) -> None:
        """Each failure increments attempts until the ceiling."""
        api.fail_always("delete_task", NetworkError("refused"))
        dispatcher = ActionDispatcher(api, max_attempts=3)
        action = PendingAction.create("trip-1", DeleteTask("task-1"))

        statuses = [dispatcher.execute(action).status for _ in range(3)]

        assert statuses == [
            OutcomeStatus.RETRYING,
            OutcomeStatus.RETRYING,
            OutcomeStatus.ABANDONED,
        ]
        assert action.attempts == 3

    def test_failure_outcome_carries_error(self, api: FakePlannerAPI) -> None:
        """The outcome exposes the raised error."""
        error = APIError("boom", 500)
        api.fail("delete_guest", error)
        dispatcher = ActionDispatcher(api)

        outcome = dispatcher.execute(PendingAction.create("trip-1", DeleteGuest("g")))

        assert outcome.error is error
        assert outcome.attempts == 1
        assert not outcome.terminal

    def test_abandon(self, api: FakePlannerAPI) -> None:
        """abandon() builds a terminal outcome without calling the API."""
        dispatcher = ActionDispatcher(api)
        action = PendingAction.create("trip-1", UpdateTask("temp-1", True))

        outcome = dispatcher.abandon(action, UnresolvedPlaceholderError("temp-1"))

        assert outcome.status == OutcomeStatus.ABANDONED
        assert outcome.terminal
        assert api.calls == []
