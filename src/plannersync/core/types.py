"""Shared types for plannersync."""

from __future__ import annotations

from enum import Enum


class SyncState(str, Enum):
    """Overall state of the synchronization service.

    Drives the "pending/syncing" indicator shown next to a trip.
    """

    IDLE = "idle"
    SYNCING = "syncing"
    OFFLINE = "offline"
