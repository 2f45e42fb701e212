import threading
import time
from unittest.mock import MagicMock

import pytest

from SwitchInput.models import WindowObservation
from SwitchInput.window_detection import TransientObservationError
from SwitchInput.window_monitor import WindowMonitor


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestPollOnce:
    def test_init(self, scripted_query):
        monitor = WindowMonitor(scripted_query([]), poll_interval=0.1)
        assert monitor.poll_interval == 0.1
        assert monitor.current_window is None
        assert monitor.running is False

    def test_notifies_once_per_app(self, scripted_query, observation):
        query = scripted_query([
            observation("Safari", "Start Page"),
            observation("Safari", "GitHub"),
            observation("Terminal", "zsh"),
            observation("Terminal", "vim"),
            observation("Safari", "Start Page"),
        ])
        monitor = WindowMonitor(query)
        callback = MagicMock()
        monitor.set_change_callback(callback)

        for _ in range(5):
            monitor.poll_once()

        assert [c.args[0].app_name for c in callback.call_args_list] == ["Safari", "Terminal", "Safari"]

    def test_title_change_does_not_notify(self, scripted_query, observation):
        monitor = WindowMonitor(scripted_query([observation("Chrome", "A"), observation("Chrome", "B")]))
        callback = MagicMock()
        monitor.set_change_callback(callback)

        assert monitor.poll_once() == observation("Chrome", "A")
        assert monitor.poll_once() is None
        callback.assert_called_once()
        # The first observation of the app is kept
        assert monitor.current_window.window_name == "A"

    def test_query_failure_is_skipped(self, scripted_query, observation):
        query = scripted_query([
            TransientObservationError("busy"),
            observation("Safari"),
        ])
        monitor = WindowMonitor(query)
        callback = MagicMock()
        monitor.set_change_callback(callback)

        assert monitor.poll_once() is None
        assert monitor.current_window is None
        assert monitor.poll_once().app_name == "Safari"
        callback.assert_called_once()

    def test_unexpected_query_error_is_logged(self, scripted_query, caplog):
        monitor = WindowMonitor(scripted_query([RuntimeError("kaboom")]))
        assert monitor.poll_once() is None
        assert "Unexpected error querying active window" in caplog.text

    def test_failure_between_same_app_does_not_renotify(self, scripted_query, observation):
        query = scripted_query([
            observation("Safari"),
            TransientObservationError("busy"),
            observation("Safari"),
        ])
        monitor = WindowMonitor(query)
        callback = MagicMock()
        monitor.set_change_callback(callback)

        for _ in range(3):
            monitor.poll_once()
        callback.assert_called_once()

    def test_callback_error_is_contained(self, scripted_query, observation, caplog):
        monitor = WindowMonitor(scripted_query([observation("Safari"), observation("Terminal")]))
        monitor.set_change_callback(MagicMock(side_effect=ValueError("bad handler")))

        monitor.poll_once()
        assert monitor.poll_once().app_name == "Terminal"
        assert "Error executing window change callback" in caplog.text

    def test_no_callback(self, scripted_query, observation):
        monitor = WindowMonitor(scripted_query([observation("Safari")]))
        assert monitor.poll_once().app_name == "Safari"


class TestLifecycle:
    def test_start_rejects_non_positive_interval(self, scripted_query):
        monitor = WindowMonitor(scripted_query([]))
        with pytest.raises(ValueError):
            monitor.start(0)
        assert monitor.running is False

    def test_start_sets_interval(self, scripted_query, observation):
        monitor = WindowMonitor(scripted_query([observation("Safari")]))
        monitor.start(250)
        try:
            assert monitor.poll_interval == 0.25
            assert monitor.running
            assert monitor.monitor_thread.name == "window-monitor"
        finally:
            monitor.stop()

    def test_background_loop_notifies(self, scripted_query, observation):
        query = scripted_query([observation("Safari"), observation("Terminal")])
        monitor = WindowMonitor(query, poll_interval=0.01)
        seen = []
        monitor.set_change_callback(lambda obs: seen.append(obs.app_name))

        monitor.start()
        try:
            assert wait_for(lambda: seen == ["Safari", "Terminal"])
        finally:
            monitor.stop()

    def test_stop_is_synchronous(self, scripted_query, observation):
        query = scripted_query([observation("Safari")])
        monitor = WindowMonitor(query, poll_interval=0.01)
        callback = MagicMock()
        monitor.set_change_callback(callback)

        monitor.start()
        assert wait_for(lambda: callback.call_count == 1)
        monitor.stop()

        calls = query.calls
        assert monitor.running is False
        assert monitor.monitor_thread is None
        time.sleep(0.05)
        assert query.calls == calls

    def test_stop_without_start(self, scripted_query):
        WindowMonitor(scripted_query([])).stop()

    def test_stop_from_callback(self, scripted_query, observation):
        monitor = WindowMonitor(scripted_query([observation("Safari")]), poll_interval=0.01)
        stopped = threading.Event()

        def on_change(obs):
            monitor.stop()
            stopped.set()

        monitor.set_change_callback(on_change)
        monitor.start()
        assert stopped.wait(2.0)
        assert wait_for(lambda: monitor.running is False)

    def test_stop_during_query_suppresses_callback(self, observation):
        release = threading.Event()
        entered = threading.Event()
        query = MagicMock()
        query.name = "blocking"

        def blocking_query():
            entered.set()
            release.wait(2.0)
            return observation("Safari")

        query.query.side_effect = blocking_query
        monitor = WindowMonitor(query, poll_interval=0.01)
        callback = MagicMock()
        monitor.set_change_callback(callback)

        monitor.start()
        assert entered.wait(2.0)
        stopper = threading.Thread(target=monitor.stop)
        stopper.start()
        assert wait_for(lambda: monitor._stop_event.is_set())
        release.set()
        stopper.join(2.0)

        assert not stopper.is_alive()
        callback.assert_not_called()

    def test_restart_notifies_current_app_again(self, scripted_query, observation):
        monitor = WindowMonitor(scripted_query([observation("Safari")]), poll_interval=0.01)
        callback = MagicMock()
        monitor.set_change_callback(callback)

        monitor.start()
        assert wait_for(lambda: callback.call_count == 1)
        monitor.stop()
        monitor.start()
        try:
            assert wait_for(lambda: callback.call_count == 2)
        finally:
            monitor.stop()
