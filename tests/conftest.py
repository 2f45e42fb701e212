import os
import sys
from unittest.mock import MagicMock

import pytest

# Add src to python path so we can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from SwitchInput.config_store import ConfigStore
from SwitchInput.models import Config, GeneralSettings, Rule, WindowObservation
from SwitchInput.rule_matcher import RuleMatcher
from SwitchInput.window_detection import TransientObservationError, WindowQuery


class ScriptedWindowQuery(WindowQuery):
    """Window query replaying a list of observations; exceptions in the list are raised."""

    def __init__(self, results):
        super().__init__()
        self.results = list(results)
        self.calls = 0

    @property
    def name(self):
        return "scripted"

    def query(self):
        self.calls += 1
        if not self.results:
            raise TransientObservationError("no more scripted windows")
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"


@pytest.fixture
def matcher(config_path):
    """A RuleMatcher backed by a temporary config file, not yet loaded."""
    return RuleMatcher(ConfigStore(config_path))


@pytest.fixture
def load_rules(matcher):
    """Save the given rules as the live config and return the matcher."""
    def _load(*rules, **general):
        matcher.save_config(Config(rules=list(rules), general=GeneralSettings(**general)))
        return matcher
    return _load


@pytest.fixture
def mock_switcher():
    switcher = MagicMock()
    switcher.name = "mock"
    return switcher


@pytest.fixture
def observation():
    def _make(app_name, window_name="", pid=0):
        return WindowObservation(app_name=app_name, window_name=window_name, pid=pid)
    return _make


@pytest.fixture
def scripted_query():
    """Factory for ScriptedWindowQuery."""
    return ScriptedWindowQuery
