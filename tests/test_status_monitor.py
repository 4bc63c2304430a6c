"""Unit tests for ConnectivityStatusMonitor."""

import time
from unittest.mock import Mock

import pytest

from connwatch.core.bridge import ConnectivityBridge
from connwatch.core.errors import FatalNotifierError, RegistrationError
from connwatch.core.status import Status
from connwatch.core.status_monitor import ConnectivityStatusMonitor
from connwatch.notifiers.simulated import SimulatedNotifier


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestConnectivityStatusMonitor:
    """Test suite for ConnectivityStatusMonitor."""

    @pytest.fixture
    def notifier(self):
        return SimulatedNotifier()

    @pytest.fixture
    def monitor(self, notifier):
        monitor = ConnectivityStatusMonitor(ConnectivityBridge(notifier))
        yield monitor
        monitor.stop()

    def test_initial_state(self, monitor, notifier):
        """Test monitor starts at the default status without subscribing."""
        assert monitor.status == Status.UNAVAILABLE
        assert monitor.error is None
        assert monitor.render() == "Network Status Unavailable"
        assert notifier.register_calls == 0

    def test_tracks_latest_status(self, monitor, notifier):
        """Test monitor follows emitted statuses."""
        assert monitor.start() is True

        notifier.available()
        assert wait_for(lambda: monitor.status == Status.AVAILABLE)
        assert monitor.render() == "Network Status Available"

        notifier.losing()
        assert wait_for(lambda: monitor.status == Status.LOSING)

    def test_listeners_notified(self, monitor, notifier):
        """Test listeners receive each status change."""
        listener = Mock()
        monitor.add_listener(listener)
        monitor.start()

        notifier.available()
        notifier.lost()

        assert wait_for(lambda: listener.call_count == 2)
        listener.assert_any_call(Status.AVAILABLE)
        listener.assert_any_call(Status.LOST)

    def test_listener_error_does_not_stop_monitor(self, monitor, notifier):
        """Test a failing listener is logged and skipped."""
        monitor.add_listener(Mock(side_effect=RuntimeError("render failed")))
        monitor.start()

        notifier.available()
        notifier.lost()

        assert wait_for(lambda: monitor.status == Status.LOST)
        assert monitor.is_running() is True

    def test_registration_error_kept_apart_from_status(self, notifier):
        """Test a registration failure surfaces as an error, not a status."""
        notifier.refuse_registration()
        monitor = ConnectivityStatusMonitor(ConnectivityBridge(notifier))

        assert monitor.start() is False
        assert isinstance(monitor.error, RegistrationError)
        assert monitor.status == Status.UNAVAILABLE
        assert monitor.render().startswith("Network Status error:")

    def test_fatal_error_recorded(self, monitor, notifier):
        """Test a fatal notifier error ends monitoring with an error."""
        monitor.start()

        notifier.fail(OSError("subsystem crashed"))

        assert wait_for(lambda: monitor.error is not None)
        assert isinstance(monitor.error, FatalNotifierError)
        assert wait_for(lambda: not monitor.is_running())

    def test_stop_releases_registration(self, monitor, notifier):
        """Test stop() detaches and the bridge unregisters."""
        monitor.start()
        assert notifier.active_registrations == 1

        monitor.stop()

        assert notifier.unregister_calls == 1
        assert wait_for(lambda: not monitor.is_running())

    def test_start_twice_subscribes_once(self, monitor, notifier):
        """Test repeated start() does not leak subscriptions."""
        monitor.start()
        monitor.start()

        assert notifier.register_calls == 1

    def test_start_after_stop_reports_not_running(self, monitor, notifier):
        """Test a stopped monitor is not restarted."""
        assert monitor.start() is True
        monitor.stop()
        assert wait_for(lambda: not monitor.is_running())

        assert monitor.start() is False
        assert notifier.register_calls == 1
