"""Persistent store of pending actions.

This module provides:
- PendingActionStore: Thread-safe, durable list of PendingAction

The whole queue is serialized as one JSON list under a well-known key
(``pendingActions`` by default) of a small SQLite key/value table, so a
process restart sees exactly the actions that were not resolved yet.
Other components (the placeholder remap table) keep their own keys in
the same table.

Persistence (SQLite):
    Each mutation (append/update/remove/clear) rewrites the list and
    commits immediately. Without a persistence path the store is
    in-memory only.

    A missing, empty or corrupt value is treated as an empty queue: the
    bad value is discarded and logged, never raised to the caller. A
    database file SQLite cannot open is moved aside to ``<name>.corrupt``
    and recreated empty.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from plannersync.client.sync.types import InvalidActionError, PendingAction

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "pendingActions"


def _replay_key(action: PendingAction) -> float:
    # Stable sort: ties keep insertion order
    return action.enqueued_at


class PendingActionStore:
    """Durable, timestamp-ordered list of pending actions.

    Attributes:
        persistence_path: Optional SQLite path for persistence
        storage_key: Key holding the serialized queue
    """

    def __init__(
        self,
        persistence_path: Path | None = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store and load persisted actions.

        Args:
            persistence_path: Optional path to SQLite DB for persistence
            storage_key: Key under which the queue list is stored
            clock: Wall clock used for stale purges
        """
        self._lock = threading.RLock()
        self._actions: list[PendingAction] = []
        self._persistence_path = persistence_path
        self._storage_key = storage_key
        self._clock = clock
        self._db: sqlite3.Connection | None = None
        # In-memory values for auxiliary keys when not persisted
        self._values: dict[str, str] = {}
        self._closed = False

        if persistence_path:
            self._init_persistence()
        self.load()

    def _init_persistence(self) -> None:
        """Initialize SQLite database for persistence."""
        if not self._persistence_path:
            return

        self._persistence_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._db = self._connect(self._persistence_path)
        except sqlite3.DatabaseError as e:
            logger.error(
                "Discarding unreadable queue database %s: %s", self._persistence_path, e
            )
            self._discard_database(self._persistence_path)
            self._db = self._connect(self._persistence_path)
        logger.debug("Initialized queue persistence at %s", self._persistence_path)

    @staticmethod
    def _connect(path: Path) -> sqlite3.Connection:
        db = sqlite3.connect(str(path), check_same_thread=False)
        try:
            db.execute("PRAGMA journal_mode=WAL")
            db.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            db.commit()
        except sqlite3.DatabaseError:
            db.close()
            raise
        return db

    @staticmethod
    def _discard_database(path: Path) -> None:
        """Move an unreadable database aside as ``<name>.corrupt``."""
        path.replace(path.with_name(path.name + ".corrupt"))
        for suffix in ("-wal", "-shm"):
            path.with_name(path.name + suffix).unlink(missing_ok=True)

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Store is closed")

    # === Keyed values ===

    def read_value(self, key: str) -> str | None:
        """Read a raw persisted value.

        Args:
            key: Storage key

        Returns:
            The stored string, or None if absent
        """
        with self._lock:
            if self._db is None:
                return self._values.get(key)
            row = self._db.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
            return row[0] if row else None

    def write_value(self, key: str, value: str) -> None:
        """Write a raw value, replacing any previous one."""
        with self._lock:
            self._check_open()
            if self._db is None:
                self._values[key] = value
                return
            self._db.execute(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                (key, value),
            )
            self._db.commit()

    def delete_value(self, key: str) -> None:
        """Remove a persisted value if present."""
        with self._lock:
            if self._db is None:
                self._values.pop(key, None)
                return
            self._db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            self._db.commit()

    # === Load / save ===

    def load(self) -> list[PendingAction]:
        """Load the persisted queue, replacing the in-memory list.

        Corrupt data is discarded and the queue starts empty.

        Returns:
            Loaded actions in replay order
        """
        with self._lock:
            raw = self.read_value(self._storage_key)
            if not raw:
                self._actions = []
                return []

            try:
                parsed: Any = json.loads(raw)
                if not isinstance(parsed, list):
                    raise InvalidActionError(
                        f"Expected a list, got {type(parsed).__name__}"
                    )
                actions = [PendingAction.from_dict(item) for item in parsed]
            except (ValueError, InvalidActionError) as e:
                logger.error("Discarding corrupt pending actions: %s", e)
                self._actions = []
                self.delete_value(self._storage_key)
                return []

            self._actions = sorted(actions, key=_replay_key)
            if self._actions:
                logger.info("Loaded %d pending actions", len(self._actions))
            return list(self._actions)

    def save(self) -> None:
        """Persist the current in-memory list."""
        with self._lock:
            payload = json.dumps([action.to_dict() for action in self._actions])
            self.write_value(self._storage_key, payload)

    # === Mutations ===

    def append(self, action: PendingAction) -> None:
        """Add an action to the queue.

        Raises:
            RuntimeError: If the store is closed
            ValueError: If an action with the same id is already queued
        """
        with self._lock:
            self._check_open()
            if any(a.action_id == action.action_id for a in self._actions):
                raise ValueError(f"Action {action.action_id} already queued")
            self._actions.append(action)
            self._actions.sort(key=_replay_key)
            self.save()
            logger.debug("Queued %r (queue size: %d)", action, len(self._actions))

    def update(self, action: PendingAction) -> bool:
        """Persist changed fields of a queued action (e.g. attempts).

        Returns:
            True if the action is still queued
        """
        with self._lock:
            self._check_open()
            for index, existing in enumerate(self._actions):
                if existing.action_id == action.action_id:
                    self._actions[index] = action
                    self.save()
                    return True
            return False

    def remove(self, action_id: str) -> PendingAction | None:
        """Remove an action by id.

        Returns:
            The removed action, or None if not found
        """
        with self._lock:
            self._check_open()
            for index, existing in enumerate(self._actions):
                if existing.action_id == action_id:
                    del self._actions[index]
                    self.save()
                    logger.debug(
                        "Removed %r (queue size: %d)", existing, len(self._actions)
                    )
                    return existing
            return None

    def cleanup_stale(self, max_age: float) -> list[PendingAction]:
        """Drop actions queued more than ``max_age`` seconds ago.

        Dropped actions are lost: their initiators are never notified.

        Returns:
            The dropped actions
        """
        with self._lock:
            self._check_open()
            cutoff = self._clock() - max_age
            stale = [a for a in self._actions if a.enqueued_at < cutoff]
            if stale:
                self._actions = [a for a in self._actions if a.enqueued_at >= cutoff]
                logger.warning(
                    "Dropped %d pending actions older than %.0fs", len(stale), max_age
                )
            self.save()
            return stale

    def clear(self) -> int:
        """Remove all actions.

        Returns:
            Number of actions removed
        """
        with self._lock:
            self._check_open()
            count = len(self._actions)
            self._actions = []
            self.save()
            logger.info("Cleared %d pending actions", count)
            return count

    def close(self) -> None:
        """Close the underlying database."""
        with self._lock:
            self._closed = True
            if self._db:
                self._db.close()
                self._db = None
            logger.debug("Pending action store closed")

    # === Queries ===

    def snapshot(self) -> list[PendingAction]:
        """Copy of the queue in replay order (oldest first)."""
        with self._lock:
            return list(self._actions)

    def get(self, action_id: str) -> PendingAction | None:
        """Get a queued action by id."""
        with self._lock:
            for action in self._actions:
                if action.action_id == action_id:
                    return action
            return None

    def pending_for(self, trip_id: str) -> list[PendingAction]:
        """Queued actions of one trip, oldest first."""
        with self._lock:
            return [a for a in self._actions if a.trip_id == trip_id]

    def has_pending(self, trip_id: str) -> bool:
        """Check if a trip has queued actions."""
        with self._lock:
            return any(a.trip_id == trip_id for a in self._actions)

    def __len__(self) -> int:
        """Get number of pending actions."""
        with self._lock:
            return len(self._actions)

    def __iter__(self) -> Iterator[PendingAction]:
        """Iterate over a snapshot in replay order."""
        return iter(self.snapshot())

    def __bool__(self) -> bool:
        """Check if the queue has actions."""
        with self._lock:
            return bool(self._actions)

    @property
    def is_closed(self) -> bool:
        """Check if the store is closed."""
        return self._closed

    @property
    def storage_key(self) -> str:
        return self._storage_key
