import time

import pytest

from SwitchInput.action_log import ActionLog
from SwitchInput.app import SwitchInputApp
from SwitchInput.models import Rule
from SwitchInput.window_detection import SimulationWindowQuery
from SwitchInput.window_monitor import WindowMonitor


def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestE2ESimulation:

    @pytest.fixture
    def simulation_file(self, tmp_path):
        """Temp file holding the simulated focused window."""
        return tmp_path / "fake_window"

    def test_focus_changes_drive_switches(self, tmp_path, simulation_file, load_rules, matcher,
                                          mock_switcher):
        """
        Writing to the simulation file switches the input method once per app change.
        """
        load_rules(
            Rule("Safari, Chrome", "pinyin", priority=1),
            Rule("Chrome", "abc", window_pattern="*GitHub*", priority=0),
            Rule("Terminal", "abc", priority=1),
            check_interval=10,
            switch_delay=1,
        )
        simulation_file.write_text("Safari|Start Page")

        monitor = WindowMonitor(SimulationWindowQuery(str(simulation_file)))
        app = SwitchInputApp(matcher, monitor, mock_switcher, ActionLog(tmp_path / "logs" / "app.log"))
        assert app.startup()
        try:
            assert wait_for(lambda: mock_switcher.switch.call_count == 1)

            # Title change within the same app does not switch again
            simulation_file.write_text("Safari|Other Page")
            time.sleep(0.1)
            assert mock_switcher.switch.call_count == 1

            simulation_file.write_text("Chrome|Pull requests - GitHub")
            assert wait_for(lambda: mock_switcher.switch.call_count == 2)

            simulation_file.write_text("Terminal|zsh")
            assert wait_for(lambda: mock_switcher.switch.call_count == 3)

            # Unknown app: no switch
            simulation_file.write_text("Finder")
            time.sleep(0.1)
        finally:
            app.shutdown()

        assert [c.args[0] for c in mock_switcher.switch.call_args_list] == ["pinyin", "abc", "abc"]

        stats = app.action_log.stats()
        assert stats["error_count"] == 0
        switched = [e for e in app.action_log.recent_entries(100) if e.action == "switch_success"]
        assert [e.input for e in switched] == ["pinyin", "abc", "abc"]
