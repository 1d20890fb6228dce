"""Tests for the placeholder remap table."""

from __future__ import annotations

from pathlib import Path

from plannersync.client.sync.queue import PendingActionStore
from plannersync.client.sync.remap import (
    REMAP_STORAGE_KEY,
    PlaceholderRegistry,
    PlaceholderStatus,
)


class TestPlaceholderRegistry:
    """Tests for PlaceholderRegistry."""

    def test_server_ids_resolve_to_themselves(self) -> None:
        """Ids not minted locally need no mapping."""
        registry = PlaceholderRegistry()
        assert registry.status("abc123") == PlaceholderStatus.RESOLVED
        assert registry.resolve("abc123") == "abc123"

    def test_lifecycle(self) -> None:
        """A placeholder goes from unknown to pending to resolved."""
        registry = PlaceholderRegistry()
        assert registry.status("temp-1") == PlaceholderStatus.UNKNOWN

        registry.mark_pending("temp-1")
        assert registry.status("temp-1") == PlaceholderStatus.PENDING
        assert registry.resolve("temp-1") is None

        registry.record("temp-1", "abc123")
        assert registry.status("temp-1") == PlaceholderStatus.RESOLVED
        assert registry.resolve("temp-1") == "abc123"
        assert len(registry) == 1

    def test_discard(self) -> None:
        """A discarded placeholder is unknown again."""
        registry = PlaceholderRegistry()
        registry.mark_pending("temp-1")
        registry.discard("temp-1")
        assert registry.status("temp-1") == PlaceholderStatus.UNKNOWN

    def test_mappings_persisted(self, tmp_path: Path) -> None:
        """Resolved mappings survive a restart; pending marks do not."""
        path = tmp_path / "queue.db"
        store = PendingActionStore(path)
        registry = PlaceholderRegistry(store)
        registry.record("temp-1", "abc123")
        registry.mark_pending("temp-2")
        store.close()

        reopened = PendingActionStore(path)
        restored = PlaceholderRegistry(reopened)

        assert restored.resolve("temp-1") == "abc123"
        assert restored.status("temp-2") == PlaceholderStatus.UNKNOWN
        reopened.close()

    def test_corrupt_table_discarded(self) -> None:
        """A corrupt remap value is dropped."""
        store = PendingActionStore()
        store.write_value(REMAP_STORAGE_KEY, "[1, 2")

        registry = PlaceholderRegistry(store)

        assert len(registry) == 0
        assert store.read_value(REMAP_STORAGE_KEY) is None
