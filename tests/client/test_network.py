"""Tests for the network status monitor."""

from __future__ import annotations

import threading

from plannersync.client.sync.network import NetworkMonitor


class TestNetworkMonitor:
    """Tests for NetworkMonitor."""

    def test_initial_state(self) -> None:
        """The monitor starts with the given connectivity."""
        assert NetworkMonitor().is_online
        assert not NetworkMonitor(online=False).is_online

    def test_listeners_called_on_transition_only(self) -> None:
        """Repeated reports of the same state are not transitions."""
        monitor = NetworkMonitor()
        events: list[bool] = []
        monitor.add_listener(events.append)

        assert monitor.set_online(True) is False
        assert monitor.set_online(False) is True
        assert monitor.mark_offline() is False
        assert monitor.set_online(True) is True

        assert events == [False, True]

    def test_remove_listener(self) -> None:
        """Removed listeners are not called."""
        monitor = NetworkMonitor()
        events: list[bool] = []
        monitor.add_listener(events.append)
        monitor.remove_listener(events.append)
        monitor.remove_listener(events.append)

        monitor.set_online(False)

        assert events == []

    def test_failing_listener_does_not_block_others(self) -> None:
        """An exception in one listener is logged, not raised."""
        monitor = NetworkMonitor()
        events: list[bool] = []

        def broken(online: bool) -> None:
            raise RuntimeError("listener bug")

        monitor.add_listener(broken)
        monitor.add_listener(events.append)

        monitor.set_online(False)

        assert events == [False]

    def test_check_with_probe(self) -> None:
        """check() runs the probe and updates connectivity."""
        reachable = {"value": False}
        monitor = NetworkMonitor(probe=lambda: reachable["value"])

        assert monitor.check() is False
        assert not monitor.is_online

        reachable["value"] = True
        assert monitor.check() is True
        assert monitor.is_online

    def test_probe_exception_means_offline(self) -> None:
        """A raising probe counts as unreachable."""

        def probe() -> bool:
            raise OSError("no route to host")

        monitor = NetworkMonitor(probe=probe)
        assert monitor.check() is False
        assert not monitor.is_online

    def test_check_without_probe(self) -> None:
        """Without probe, check() keeps the current state."""
        monitor = NetworkMonitor(online=False)
        assert monitor.check() is False

    def test_background_probe_restores_connectivity(self) -> None:
        """The probe thread flips back online once the server answers."""
        reachable = threading.Event()
        restored = threading.Event()
        monitor = NetworkMonitor(online=False, probe=reachable.is_set, probe_interval=0.02)
        monitor.add_listener(lambda online: online and restored.set())

        monitor.start()
        try:
            reachable.set()
            assert restored.wait(timeout=2)
            assert monitor.is_online
        finally:
            monitor.stop()

    def test_start_without_probe_is_noop(self) -> None:
        """No thread is started without a probe."""
        monitor = NetworkMonitor()
        monitor.start()
        monitor.stop()
        assert monitor.is_online
