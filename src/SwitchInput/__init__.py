from .action_log import ActionLog
from .app import SwitchInputApp
from .config_store import ConfigError, ConfigStore, ConfigValidationError
from .models import Config, GeneralSettings, LogEntry, Rule, WindowObservation
from .rule_matcher import RuleIndexError, RuleMatcher
from .window_monitor import WindowMonitor

__all__ = [
    'ActionLog', 'Config', 'ConfigError', 'ConfigStore', 'ConfigValidationError',
    'GeneralSettings', 'LogEntry', 'Rule', 'RuleIndexError', 'RuleMatcher',
    'SwitchInputApp', 'WindowMonitor', 'WindowObservation',
]
