"""
Active window query adapters.

Each adapter implements :meth:`WindowQuery.query`, returning a fresh
:class:`WindowObservation` or raising :class:`TransientObservationError`.
The monitor treats every failure as transient and simply retries on the
next tick.
"""
import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import Optional

from .models import WindowObservation

DEFAULT_SIMULATION_FILE = "/tmp/switch_input_fake_window"


class TransientObservationError(Exception):
    """The active window could not be read this time."""


class WindowQuery(ABC):
    """
    Abstract base class for active window queries.

    Subclasses share the subprocess helper, which converts every command
    failure into a TransientObservationError.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of this query method."""

    @abstractmethod
    def query(self) -> WindowObservation:
        """
        Read the currently focused window.

        :raises TransientObservationError: If the window cannot be read
        """

    def __call__(self) -> WindowObservation:
        return self.query()

    def _run_command(self, cmd: list, timeout: float = 1.0) -> str:
        """
        Run a command and return its stripped stdout.

        :raises TransientObservationError: On timeout, missing binary or
            non-zero exit status
        """
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except subprocess.TimeoutExpired as e:
            raise TransientObservationError(f"{cmd[0]} timed out after {timeout}s") from e
        except FileNotFoundError as e:
            raise TransientObservationError(f"{cmd[0]} not found") from e
        except OSError as e:
            raise TransientObservationError(f"{cmd[0]} failed: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()[:200]
            raise TransientObservationError(
                f"{cmd[0]} returned code {result.returncode}: {stderr}"
            )
        return result.stdout.strip()

    @staticmethod
    def _parse_pid(text: str) -> int:
        try:
            return int(text.strip())
        except (TypeError, ValueError):
            return 0


class OsaScriptWindowQuery(WindowQuery):
    """macOS query through AppleScript's System Events."""

    NAME_SCRIPT = (
        'tell application "System Events" to get name of first application process '
        'whose frontmost is true'
    )
    PID_SCRIPT = (
        'tell application "System Events" to unix id of first application process '
        'whose frontmost is true'
    )

    @property
    def name(self) -> str:
        return "osascript"

    def query(self) -> WindowObservation:
        app_name = self._run_command(["osascript", "-e", self.NAME_SCRIPT])
        if not app_name:
            raise TransientObservationError("no active application found")

        pid = self._parse_pid(self._run_command(["osascript", "-e", self.PID_SCRIPT]))
        return WindowObservation(app_name=app_name, pid=pid)


class XdotoolWindowQuery(WindowQuery):
    """X11 query through xdotool, with process details read from /proc."""

    @property
    def name(self) -> str:
        return "xdotool"

    def query(self) -> WindowObservation:
        window_id = self._run_command(["xdotool", "getactivewindow"])
        if not window_id:
            raise TransientObservationError("xdotool returned no active window")

        try:
            window_name = self._run_command(["xdotool", "getwindowname", window_id])
        except TransientObservationError:
            window_name = ""

        try:
            pid = self._parse_pid(self._run_command(["xdotool", "getwindowpid", window_id]))
        except TransientObservationError:
            pid = 0

        app_name, app_path = self._process_details(pid)
        if not app_name:
            app_name = self._run_command(["xdotool", "getwindowclassname", window_id])
        if not app_name:
            raise TransientObservationError("could not determine application name")

        return WindowObservation(
            app_name=app_name, app_path=app_path, window_name=window_name, pid=pid
        )

    def _process_details(self, pid: int) -> tuple[str, str]:
        if pid <= 0:
            return "", ""
        try:
            with open(f"/proc/{pid}/comm", "r") as f:
                app_name = f.read().strip()
        except OSError:
            app_name = ""
        try:
            app_path = os.readlink(f"/proc/{pid}/exe")
        except OSError:
            app_path = ""
        return app_name, app_path


class SimulationWindowQuery(WindowQuery):
    """
    Query for simulation mode: reads the focused window from a file.

    File content is either ``"AppName"`` or ``"AppName|Window title"``.
    """

    def __init__(self, file_path: str = DEFAULT_SIMULATION_FILE):
        super().__init__()
        self.file_path = file_path

    @property
    def name(self) -> str:
        return "simulation"

    def query(self) -> WindowObservation:
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                content = f.read().strip()
        except OSError as e:
            raise TransientObservationError(f"Error reading simulation file: {e}") from e

        if not content:
            raise TransientObservationError("simulation file is empty")

        app_name, _, window_name = content.partition("|")
        return WindowObservation(app_name=app_name.strip(), window_name=window_name.strip())


def default_window_query(simulation_file: Optional[str] = None) -> WindowQuery:
    """Pick the query adapter for the current platform."""
    if simulation_file:
        return SimulationWindowQuery(simulation_file)
    if sys.platform == "darwin":
        return OsaScriptWindowQuery()
    return XdotoolWindowQuery()
