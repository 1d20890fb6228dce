"""Offline-first synchronization of trip mutations.

Architecture:
    SyncService → (InFlightGuard, CooldownTracker) → ActionDispatcher → PlannerClient
         │
         └──► PendingActionStore ◄── drain() ◄── NetworkMonitor (online)

Components:
- **SyncService**: Accepts intents, sends them directly or queues them,
  drains the queue when connectivity returns
- **PendingActionStore**: Durable ordered queue of pending actions
- **ActionDispatcher**: Maps operations to remote calls, applies the retry ceiling
- **NetworkMonitor**: Online/offline flag with transition listeners and probe
- **InFlightGuard / CooldownTracker**: Duplicate and rapid-fire request protection
- **PlaceholderRegistry**: Maps client placeholder ids to server ids
"""

from plannersync.client.sync.dispatcher import ActionDispatcher, PlannerAPI
from plannersync.client.sync.guard import CooldownTracker, InFlightGuard, make_guard_key
from plannersync.client.sync.network import NETWORK_CHECK_INTERVAL, NetworkMonitor
from plannersync.client.sync.queue import DEFAULT_STORAGE_KEY, PendingActionStore
from plannersync.client.sync.remap import PlaceholderRegistry, PlaceholderStatus
from plannersync.client.sync.retry import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_BACKOFF,
    NETWORK_EXCEPTIONS,
    backoff_delay,
    is_transient_error,
)
from plannersync.client.sync.service import DrainReport, SyncService
from plannersync.client.sync.types import (
    ActionKind,
    AddChecklistItem,
    AddGuest,
    AddTask,
    DeleteChecklistItem,
    DeleteGuest,
    DeleteTask,
    InvalidActionError,
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
    new_placeholder_id,
)

__all__ = [
    # Service
    "SyncService",
    "DrainReport",
    # Components
    "ActionDispatcher",
    "PlannerAPI",
    "PendingActionStore",
    "DEFAULT_STORAGE_KEY",
    "NetworkMonitor",
    "NETWORK_CHECK_INTERVAL",
    "InFlightGuard",
    "CooldownTracker",
    "make_guard_key",
    "PlaceholderRegistry",
    "PlaceholderStatus",
    # Retry
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_INITIAL_BACKOFF",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_MAX_BACKOFF",
    "NETWORK_EXCEPTIONS",
    "backoff_delay",
    "is_transient_error",
    # Types
    "ActionKind",
    "TargetType",
    "Operation",
    "AddTask",
    "AddChecklistItem",
    "AddGuest",
    "UpdateTask",
    "UpdateChecklistItem",
    "UpdateGuest",
    "DeleteTask",
    "DeleteChecklistItem",
    "DeleteGuest",
    "SaveTripDraft",
    "PendingAction",
    "OutcomeStatus",
    "SyncOutcome",
    "SyncCallbacks",
    "OutcomeListener",
    "SyncError",
    "InvalidActionError",
    "UnresolvedPlaceholderError",
    "is_placeholder",
    "new_placeholder_id",
]
