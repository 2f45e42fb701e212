"""
Window monitoring: poll the focused window and notify when the app changes.
"""
import logging
import threading
from typing import Callable, Optional

from .models import WindowObservation
from .window_detection import TransientObservationError, WindowQuery

ChangeCallback = Callable[[WindowObservation], None]


class WindowMonitor:
    """
    Poll the active window on a background thread and invoke the change
    callback once per focus change.

    Two observations are the same focus target iff their app names are
    equal, so a title change inside one app does not notify. Query failures
    are skipped for that tick and never stop the loop.
    """

    def __init__(self, window_query: WindowQuery, poll_interval: float = 0.5):
        """
        Initialize the window monitor.

        :param window_query: Adapter used to read the active window
        :param poll_interval: How often to check for window changes (in seconds)
        """
        self.logger = logging.getLogger(__name__)
        self.window_query = window_query
        self.poll_interval = poll_interval
        self.current_window: Optional[WindowObservation] = None
        self.monitor_thread: Optional[threading.Thread] = None
        self._change_callback: Optional[ChangeCallback] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self.monitor_thread is not None and self.monitor_thread.is_alive()

    def set_change_callback(self, callback: Optional[ChangeCallback]):
        """
        Register the single listener for focus changes.

        :param callback: Called with the new WindowObservation, replaces any previous one
        """
        self._change_callback = callback

    def poll_once(self) -> Optional[WindowObservation]:
        """
        Run one tick: query the active window and notify on an app change.

        :return: The new observation if the focused app changed, else None
        """
        try:
            observation = self.window_query.query()
        except TransientObservationError as e:
            self.logger.debug(f"Window query failed: {e}")
            return None
        except Exception:
            self.logger.exception("Unexpected error querying active window")
            return None

        if observation is None or observation.same_app(self.current_window):
            return None

        self.current_window = observation

        # A stop requested while the query was in flight suppresses the notification
        if self._stop_event.is_set():
            return None

        self.logger.debug(f"Focus changed to '{observation.app_name}' ({observation.window_name})")
        callback = self._change_callback
        if callback:
            try:
                callback(observation)
            except Exception:
                self.logger.exception("Error executing window change callback")
        return observation

    def _monitor_loop(self, stop_event: threading.Event):
        """
        Main monitoring loop that runs in a separate thread.
        """
        while not stop_event.is_set():
            self.poll_once()
            stop_event.wait(self.poll_interval)

    def start(self, interval_ms: Optional[int] = None):
        """
        Start monitoring window focus changes in a background thread.

        :param interval_ms: Optional poll interval in milliseconds, overrides the constructor value
        """
        if self.running:
            return

        if interval_ms is not None:
            if interval_ms <= 0:
                raise ValueError("poll interval must be positive")
            self.poll_interval = interval_ms / 1000.0

        self.current_window = None
        self._stop_event = threading.Event()
        self.monitor_thread = threading.Thread(
            target=self._monitor_loop,
            args=(self._stop_event,),
            name="window-monitor",
            daemon=True,
        )
        self.monitor_thread.start()
        self.logger.info(
            f"Window monitor started ({self.window_query.name}, every {self.poll_interval:.3f}s)"
        )

    def stop(self):
        """
        Stop monitoring and wait for the loop to exit.

        An in-flight query is not aborted; the loop exits once it returns.
        Safe to call from the change callback itself.
        """
        thread = self.monitor_thread
        if thread is None:
            return

        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join()
        self.monitor_thread = None
        self.logger.info("Window monitor stopped")
