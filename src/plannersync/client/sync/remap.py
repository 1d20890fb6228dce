"""Placeholder id remapping.

This module provides:
- PlaceholderRegistry: Maps client-minted placeholder ids to server ids

A mutation issued against an entity whose creation is still pending
carries the placeholder id. Once the add is confirmed the registry
records the server id, and later dispatches are re-targeted to it. The
mapping is persisted next to the queue so it survives a restart.
"""

from __future__ import annotations

import json
import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING

from plannersync.client.sync.types import is_placeholder

if TYPE_CHECKING:
    from plannersync.client.sync.queue import PendingActionStore

logger = logging.getLogger(__name__)

REMAP_STORAGE_KEY = "idRemap"


class PlaceholderStatus(Enum):
    """Resolution state of a placeholder id."""

    RESOLVED = "resolved"
    PENDING = "pending"
    UNKNOWN = "unknown"


class PlaceholderRegistry:
    """Pending-identifier remap table."""

    def __init__(self, store: PendingActionStore | None = None) -> None:
        """Initialize the registry.

        Args:
            store: Store used to persist mappings (in-memory if None)
        """
        self._store = store
        self._lock = threading.Lock()
        self._resolved: dict[str, str] = {}
        self._pending: set[str] = set()
        self._load()

    def _load(self) -> None:
        if self._store is None:
            return
        raw = self._store.read_value(REMAP_STORAGE_KEY)
        if not raw:
            return
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("remap table is not an object")
            self._resolved = {str(k): str(v) for k, v in data.items()}
        except ValueError as e:
            logger.error("Discarding corrupt id remap table: %s", e)
            self._store.delete_value(REMAP_STORAGE_KEY)

    def _save(self) -> None:
        if self._store is not None:
            self._store.write_value(REMAP_STORAGE_KEY, json.dumps(self._resolved))

    def mark_pending(self, placeholder_id: str) -> None:
        """Register a placeholder whose add has been submitted."""
        with self._lock:
            if placeholder_id not in self._resolved:
                self._pending.add(placeholder_id)

    def record(self, placeholder_id: str, server_id: str) -> None:
        """Store the server id assigned to a placeholder."""
        with self._lock:
            self._pending.discard(placeholder_id)
            self._resolved[placeholder_id] = server_id
            self._save()
        logger.debug("Placeholder %s resolved to %s", placeholder_id, server_id)

    def discard(self, placeholder_id: str) -> None:
        """Forget a placeholder whose add was abandoned."""
        with self._lock:
            self._pending.discard(placeholder_id)
            if self._resolved.pop(placeholder_id, None) is not None:
                self._save()

    def status(self, entity_id: str) -> PlaceholderStatus:
        """Resolution state of an id (server ids count as resolved)."""
        if not is_placeholder(entity_id):
            return PlaceholderStatus.RESOLVED
        with self._lock:
            if entity_id in self._resolved:
                return PlaceholderStatus.RESOLVED
            if entity_id in self._pending:
                return PlaceholderStatus.PENDING
            return PlaceholderStatus.UNKNOWN

    def resolve(self, entity_id: str) -> str | None:
        """Map an id to its server id.

        Returns:
            The server id, the id itself if it is not a placeholder, or
            None if the placeholder is not resolved yet
        """
        if not is_placeholder(entity_id):
            return entity_id
        with self._lock:
            return self._resolved.get(entity_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._resolved)
