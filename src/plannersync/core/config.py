"""Shared configuration classes for plannersync.

This module defines the connection settings for the plann.er REST API and
the tunables of the synchronization service.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ServerConfig:
    """Configuration for connecting to a plann.er API server.

    Attributes:
        server_url: Base URL of the API (e.g., "https://api.planner.example").
        token: Bearer token issued at login.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    token: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    def api_url(self, path: str) -> str:
        """Build an absolute URL for an API path.

        Args:
            path: Path relative to the server root (leading slash optional).

        Returns:
            Absolute URL.
        """
        return f"{self.server_url}/{path.lstrip('/')}"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS."""
        return self.server_url.startswith("https://")


@dataclass
class SyncConfig:
    """Tunables for the synchronization service.

    Attributes:
        max_attempts: Failed dispatches before an action is abandoned.
        drain_interval: Seconds between periodic drain cycles.
        initial_drain_delay: Delay before the first drain after start.
        trip_save_cooldown: Minimum seconds between saves of the same trip.
        conflict_cooldown_penalty: Extra cooldown after a 409/429 response.
        max_cooldown_penalty: Upper bound for the doubling penalty.
        stale_after: Age in seconds after which queued actions are dropped.
        probe_interval: Seconds between connectivity probes while offline.
        save_debounce: Quiet period before a trip draft edit is saved.
        max_workers: Worker threads for direct (non-queued) requests.
        storage_key: Key under which the queue is persisted.
    """

    max_attempts: int = 5
    drain_interval: float = 30.0
    initial_drain_delay: float = 3.0
    trip_save_cooldown: float = 3.0
    conflict_cooldown_penalty: float = 10.0
    max_cooldown_penalty: float = 60.0
    stale_after: float = 24 * 60 * 60
    probe_interval: float = 5.0
    save_debounce: float = 2.0
    max_workers: int = 4
    storage_key: str = "pendingActions"

    def __post_init__(self) -> None:
        """Validate values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        for name in (
            "drain_interval",
            "initial_drain_delay",
            "trip_save_cooldown",
            "conflict_cooldown_penalty",
            "max_cooldown_penalty",
            "stale_after",
            "probe_interval",
            "save_debounce",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if not self.storage_key:
            raise ValueError("storage_key must not be empty")
