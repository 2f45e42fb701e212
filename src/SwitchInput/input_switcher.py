"""
Input method switching adapters.

Switching shells out to a platform tool (``im-select`` on macOS, ``ibus``
on Linux). Every call runs under an explicit deadline so a hung binary
cannot stall the caller indefinitely.
"""
import logging
import shutil
import subprocess
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass

DEFAULT_SWITCH_TIMEOUT = 5.0  # seconds
HOMEBREW_IM_SELECT = "/opt/homebrew/bin/im-select"


class SwitchExecutionError(Exception):
    """The input method switch command failed."""


@dataclass(frozen=True)
class InputMethod:
    id: str
    name: str


class InputSwitcher(ABC):
    """Abstract base class for input method switchers."""

    def __init__(self, timeout: float = DEFAULT_SWITCH_TIMEOUT):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.timeout = timeout

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of this switcher."""

    @abstractmethod
    def switch(self, input_id: str) -> None:
        """
        Switch the active input method.

        :raises SwitchExecutionError: If the switch failed or timed out
        """

    @abstractmethod
    def current_input(self) -> InputMethod:
        """:raises SwitchExecutionError: If the current input cannot be read"""

    def available_inputs(self) -> list[InputMethod]:
        return []

    def _run(self, cmd: list) -> str:
        """Run ``cmd`` under the switch deadline and return stripped stdout."""
        self.logger.debug(f"Running command: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise SwitchExecutionError(f"{cmd[0]} timed out after {self.timeout}s") from e
        except OSError as e:
            raise SwitchExecutionError(f"{cmd[0]} failed: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()[:200]
            raise SwitchExecutionError(
                f"{cmd[0]} returned code {result.returncode}: {stderr}"
            )
        return result.stdout.strip()


class ImSelectSwitcher(InputSwitcher):
    """macOS switcher using the ``im-select`` tool."""

    def __init__(self, binary: str | None = None, timeout: float = DEFAULT_SWITCH_TIMEOUT):
        super().__init__(timeout=timeout)
        self.binary = binary or shutil.which("im-select") or HOMEBREW_IM_SELECT

    @property
    def name(self) -> str:
        return "im-select"

    def switch(self, input_id: str) -> None:
        self._run([self.binary, input_id])

    def current_input(self) -> InputMethod:
        input_id = self._run([self.binary])
        if not input_id:
            raise SwitchExecutionError("no output from im-select")
        return InputMethod(id=input_id, name=input_id)

    def available_inputs(self) -> list[InputMethod]:
        # im-select cannot enumerate sources; offer the common pair
        return [
            InputMethod(id="com.apple.keylayout.ABC", name="ABC"),
            InputMethod(id="com.tencent.inputmethod.wetype.pinyin", name="拼音"),
        ]


class IbusSwitcher(InputSwitcher):
    """Linux switcher using ``ibus engine``."""

    @property
    def name(self) -> str:
        return "ibus"

    def switch(self, input_id: str) -> None:
        self._run(["ibus", "engine", input_id])

    def current_input(self) -> InputMethod:
        engine = self._run(["ibus", "engine"])
        if not engine:
            raise SwitchExecutionError("no output from ibus engine")
        return InputMethod(id=engine, name=engine)

    def available_inputs(self) -> list[InputMethod]:
        output = self._run(["ibus", "list-engine", "--name-only"])
        return [InputMethod(id=line.strip(), name=line.strip())
                for line in output.splitlines() if line.strip()]


def default_input_switcher(timeout: float = DEFAULT_SWITCH_TIMEOUT) -> InputSwitcher:
    """Pick the switcher for the current platform."""
    if sys.platform == "darwin":
        return ImSelectSwitcher(timeout=timeout)
    return IbusSwitcher(timeout=timeout)
