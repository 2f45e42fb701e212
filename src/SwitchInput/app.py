"""
Application context wiring the window monitor, rule matcher, input switcher
and action log together.

One SwitchInputApp is constructed at startup and passed explicitly to every
entry point (CLI commands, signal handlers); nothing is reached through
module globals.
"""
import logging
import threading
import time
from typing import Optional

from .action_log import ACTION_SWITCH_FAILED, ACTION_SWITCH_SUCCESS, ActionLog
from .config_store import ConfigError, ConfigStore
from .input_switcher import (
    DEFAULT_SWITCH_TIMEOUT,
    InputSwitcher,
    SwitchExecutionError,
    default_input_switcher,
)
from .models import Config, LogEntry, Rule, WindowObservation
from .paths import config_dir, config_path, log_path
from .rule_matcher import RuleMatcher
from .window_detection import default_window_query
from .window_monitor import WindowMonitor


class SwitchInputApp:
    """
    Orchestrates focus changes into input method switches.

    On every focus change the observation is logged, matched against the
    rules and, on a match, the target input is switched after the
    configured delay. The outcome of each switch lands in the action log.
    """

    def __init__(
        self,
        matcher: RuleMatcher,
        monitor: WindowMonitor,
        switcher: InputSwitcher,
        action_log: ActionLog,
    ):
        self.logger = logging.getLogger(__name__)
        self.matcher = matcher
        self.monitor = monitor
        self.switcher = switcher
        self.action_log = action_log
        self._running = False
        self._running_lock = threading.Lock()

    @classmethod
    def create(cls, base_dir=None, simulation_file: Optional[str] = None,
               switch_timeout: float = DEFAULT_SWITCH_TIMEOUT) -> "SwitchInputApp":
        """
        Build an app with the platform's default adapters.

        :param base_dir: Config directory, defaults to ``~/.switch-input``
        :param simulation_file: Read the focused window from this file instead of the system
        :param switch_timeout: Deadline for each input switch command, in seconds
        """
        base = config_dir(base_dir)
        return cls(
            matcher=RuleMatcher(ConfigStore(config_path(base))),
            monitor=WindowMonitor(default_window_query(simulation_file)),
            switcher=default_input_switcher(timeout=switch_timeout),
            action_log=ActionLog(log_path(base)),
        )

    # ========== lifecycle ==========

    def startup(self) -> bool:
        """
        Start logging, load the config and begin monitoring.

        :return: True if monitoring started, False if the config could not be loaded
        """
        try:
            self.action_log.start()
        except OSError as e:
            self.logger.error(f"Failed to start action log: {e}")

        self.action_log.info("Application started")

        try:
            config = self.matcher.load_config()
        except ConfigError as e:
            self.action_log.error(f"Failed to load config: {e}")
            self.logger.error(f"Failed to load config: {e}")
            return False

        self.action_log.set_enabled(config.general.enable_logging)
        self.monitor.set_change_callback(self.on_window_change)
        self.set_running(True)

        self.action_log.info("Input method auto-switching started")
        self.logger.info("Input method auto-switching started")
        return True

    def shutdown(self):
        """Stop monitoring and flush the action log."""
        self.action_log.info("Application shutting down")
        self.set_running(False)
        self.action_log.stop()

    @property
    def is_running(self) -> bool:
        with self._running_lock:
            return self._running

    def set_running(self, running: bool):
        """Enable or disable auto-switching by starting or stopping the monitor."""
        with self._running_lock:
            if running == self._running:
                return
            self._running = running
            if running:
                self.monitor.start(self._check_interval())
                self.logger.info("Input method auto-switching enabled")
            else:
                self.monitor.stop()
                self.logger.info("Input method auto-switching disabled")

    def _check_interval(self) -> Optional[int]:
        config = self.matcher.get_config()
        return config.general.check_interval if config else None

    def reload_config(self) -> Config:
        """
        Re-read the config file and apply its general settings.

        :raises ConfigError: If the file is malformed; the previous config stays live
        """
        try:
            config = self.matcher.reload_config()
        except ConfigError as e:
            self.action_log.error(f"Failed to reload config: {e}")
            raise

        self.action_log.set_enabled(config.general.enable_logging)
        self.monitor.poll_interval = config.general.check_interval / 1000.0
        self.action_log.info("Config reloaded")
        return config

    # ========== focus handling ==========

    def on_window_change(self, observation: WindowObservation):
        """Change callback registered with the window monitor."""
        if observation is None:
            return

        self.action_log.window_change(observation.app_name, observation.window_name)
        self.logger.info(f"Window changed: {observation.app_name} ({observation.window_name})")

        rule = self.matcher.match(observation)
        if rule is None:
            return

        try:
            self.apply_rule(rule)
        except SwitchExecutionError as e:
            self.logger.warning(f"Failed to switch input method: {e}")

    def apply_rule(self, rule: Rule):
        """
        Switch to the rule's input method after the configured delay.

        :raises SwitchExecutionError: If the switch command fails; the failure is logged first
        """
        config = self.matcher.get_config()
        delay = config.general.switch_delay if config else 0

        self.action_log.rule_match(rule.app_pattern, rule.target_input)
        self.logger.info(f"Rule matched: {rule}")

        if delay > 0:
            time.sleep(delay / 1000.0)

        try:
            self.switcher.switch(rule.target_input)
        except SwitchExecutionError as e:
            self.action_log.input_switch(rule.app_pattern, rule.target_input, ACTION_SWITCH_FAILED, e)
            raise

        self.action_log.input_switch(rule.app_pattern, rule.target_input, ACTION_SWITCH_SUCCESS)
        self.logger.info(f"Switched input method to {rule.target_input}")

    def test_rule(self, rule: Rule) -> tuple[bool, WindowObservation]:
        """
        Check whether ``rule``'s app would be selected for the focused window.

        :raises TransientObservationError: If the active window cannot be read
        """
        observation = self.monitor.window_query.query()
        matched = self.matcher.match(observation)
        return matched is not None and matched.app_pattern == rule.app_pattern, observation

    # ========== rule editing ==========

    def get_config(self) -> Config:
        config = self.matcher.get_config()
        if config is None:
            raise ConfigError("config not loaded")
        return config

    def save_config(self, config: Config) -> Config:
        saved = self.matcher.save_config(config)
        self.action_log.set_enabled(saved.general.enable_logging)
        self.action_log.info("Config saved")
        return saved

    def add_rule(self, rule: Rule) -> Config:
        config = self.matcher.add_rule(rule)
        self.action_log.info(f"Rule added: {rule}")
        return config

    def update_rule(self, index: int, rule: Rule) -> Config:
        config = self.matcher.update_rule(index, rule)
        self.action_log.info(f"Rule {index} updated: {rule}")
        return config

    def delete_rule(self, index: int) -> Rule:
        removed = self.matcher.delete_rule(index)
        self.action_log.info(f"Rule {index} deleted: {removed}")
        return removed

    # ========== log access ==========

    def recent_logs(self, limit: int) -> list[LogEntry]:
        self.action_log.flush()
        return self.action_log.recent_entries(limit)

    def log_stats(self) -> dict:
        self.action_log.flush()
        return self.action_log.stats()

    def clear_logs(self):
        self.action_log.clear()
        self.action_log.info("Log file cleared")
