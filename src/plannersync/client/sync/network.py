"""Network status monitoring.

This module provides:
- NetworkMonitor: Connectivity flag with edge-triggered listeners and an
  optional background probe that detects when the server is back

The host application reports connectivity changes with set_online(); the
dispatcher calls mark_offline() when a request fails without an HTTP
response. While offline, the probe polls the server health endpoint and
flips back online as soon as it answers.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

# Network-aware retry configuration
NETWORK_CHECK_INTERVAL = 5.0  # seconds between network checks

ConnectivityListener = Callable[[bool], None]


class NetworkMonitor:
    """Tracks online/offline state and notifies listeners on transitions.

    Usage:
        monitor = NetworkMonitor(probe=client.health_check)
        monitor.add_listener(lambda online: print("online" if online else "offline"))
        monitor.start()
        ...
        monitor.stop()
    """

    def __init__(
        self,
        online: bool = True,
        probe: Callable[[], bool] | None = None,
        probe_interval: float = NETWORK_CHECK_INTERVAL,
    ) -> None:
        """Initialize the monitor.

        Args:
            online: Initial connectivity
            probe: Optional reachability check used while offline
            probe_interval: Seconds between probes
        """
        self._online = online
        self._probe = probe
        self._probe_interval = probe_interval
        self._lock = threading.Lock()
        self._listeners: list[ConnectivityListener] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_online(self) -> bool:
        """Current connectivity."""
        return self._online

    def add_listener(self, listener: ConnectivityListener) -> None:
        """Register a callback invoked with the new state on each transition."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ConnectivityListener) -> None:
        """Unregister a callback (no-op if unknown)."""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def set_online(self, online: bool) -> bool:
        """Update connectivity.

        Listeners are only notified when the state actually changes.

        Returns:
            True if this call caused a transition
        """
        with self._lock:
            if self._online == online:
                return False
            self._online = online
            listeners = list(self._listeners)

        if online:
            logger.info("Connection restored")
        else:
            logger.info("Connection lost, operating offline")

        for listener in listeners:
            try:
                listener(online)
            except Exception:
                logger.exception("Connectivity listener failed")
        return True

    def mark_offline(self) -> bool:
        """Report a network-class failure."""
        return self.set_online(False)

    def check(self) -> bool:
        """Run the probe once and update connectivity.

        Returns:
            Connectivity after the check (unchanged if no probe)
        """
        if self._probe is None:
            return self._online
        try:
            reachable = bool(self._probe())
        except Exception as e:
            logger.debug("Connectivity probe failed: %s", e)
            reachable = False
        self.set_online(reachable)
        return reachable

    def start(self) -> None:
        """Start probing in a background thread (requires a probe)."""
        if self._probe is None:
            return
        if self._thread and self._thread.is_alive():
            logger.warning("NetworkMonitor already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="NetworkMonitor",
            daemon=True,
        )
        self._thread.start()
        logger.debug("NetworkMonitor started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the probe thread."""
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

    def _run(self) -> None:
        """Probe while offline until stopped."""
        waited = 0
        while not self._stop_event.wait(self._probe_interval):
            if self._online:
                waited = 0
                continue

            waited += 1
            if self.check():
                logger.info(
                    "Network restored after %.0fs", waited * self._probe_interval
                )
                waited = 0
            elif waited % 12 == 0:
                logger.info(
                    "Still waiting for network... (%.0fs elapsed)",
                    waited * self._probe_interval,
                )
