"""
Configuration store for SwitchInput.
Loads, validates and persists the rule set and general settings as JSON.

Expected JSON structure:
{
  "rules": [
    {
      "app": "com.apple.Safari",        # app name, comma-separated alternatives allowed
      "window": "",                     # optional window title pattern, "*" wildcard
      "input": "com.apple.keylayout.ABC",
      "enabled": true,                  # optional, default: true
      "priority": 1                     # optional, lower wins, default: 0
    }
  ],
  "general": {
    "autoStart": false,
    "checkInterval": 500,               # poll interval in ms, default: 500
    "switchDelay": 100,                 # delay before switching in ms, default: 100
    "enableLogging": true,
    "logLevel": "info",                 # debug, info, warn, error
    "showNotifications": true
  },
  "lastModified": "2024-01-01T00:00:00+00:00"
}

Rule sets can also be exported to / imported from standalone YAML or JSON
files holding just the list of rules.
"""
import copy
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import yaml

from .models import LOG_LEVELS, Config, GeneralSettings, Rule

PINYIN_INPUT = "com.tencent.inputmethod.wetype.pinyin"
ABC_INPUT = "com.apple.keylayout.ABC"

YAML_SUFFIXES = (".yml", ".yaml")


class ConfigError(Exception):
    """Exception raised when the persisted configuration cannot be read or written."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""


def default_config() -> Config:
    """Built-in rule set written on first start."""
    return Config(
        rules=[
            Rule(app_pattern="com.apple.Safari", target_input=PINYIN_INPUT, priority=1),
            Rule(app_pattern="com.google.Chrome", target_input=PINYIN_INPUT, priority=1),
            Rule(app_pattern="com.apple.Terminal", target_input=ABC_INPUT, priority=1),
            Rule(app_pattern="com.microsoft.VSCode", target_input=ABC_INPUT, priority=1),
        ],
        general=GeneralSettings(),
    )


def validate_rule(rule_def, context="Rule"):
    """
    Validate a single rule definition in its JSON form.

    :param rule_def: Dictionary with the rule fields
    :param context: Prefix used in error messages
    :raises ConfigValidationError: If the rule is malformed
    """
    if not isinstance(rule_def, dict):
        raise ConfigValidationError(f"{context} definition must be a dictionary")

    for required in ("app", "input"):
        if required not in rule_def:
            raise ConfigValidationError(f"{context} is missing '{required}' field")
        value = rule_def[required]
        if not isinstance(value, str) or not value.strip():
            raise ConfigValidationError(f"{context}: '{required}' must be a non-empty string")

    window = rule_def.get("window")
    if window is not None and not isinstance(window, str):
        raise ConfigValidationError(f"{context}: 'window' must be a string")

    if "enabled" in rule_def and not isinstance(rule_def["enabled"], bool):
        raise ConfigValidationError(f"{context}: 'enabled' must be true or false")

    if "priority" in rule_def:
        priority = rule_def["priority"]
        # bool is an int subclass, reject it explicitly
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ConfigValidationError(f"{context}: 'priority' must be an integer")


class ConfigStore:
    """Read and write the SwitchInput JSON configuration file."""

    def __init__(self, config_path):
        """
        Initialize the configuration store.

        :param config_path: Path to the JSON configuration file
        """
        self.config_path = Path(config_path)
        self.logger = logging.getLogger(__name__)

    def exists(self) -> bool:
        return self.config_path.exists()

    def read(self) -> Config:
        """
        Load and validate the configuration file.

        :return: Parsed Config with general defaults filled in
        :raises FileNotFoundError: If the config file doesn't exist
        :raises ConfigError: If the file cannot be read or is not valid UTF-8 JSON
        :raises ConfigValidationError: If the content is invalid
        """
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            raise ConfigError(f"Failed to parse config {self.config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read config {self.config_path}: {e}") from e

        self._validate_config(data)
        config = Config.from_dict(data)
        self.logger.debug(f"Loaded {len(config.rules)} rules from {self.config_path}")
        return config

    def write(self, config: Config) -> Config:
        """
        Persist a configuration, pretty-printed, replacing the whole file.

        The given config is not modified; a stamped copy is returned once the
        file has been replaced.

        :raises ConfigError: If the file cannot be written
        """
        stamped = copy.deepcopy(config)
        stamped.last_modified = datetime.now(timezone.utc).isoformat()

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            self._atomic_write(json.dumps(stamped.to_dict(), indent=2, ensure_ascii=False))
        except OSError as e:
            raise ConfigError(f"Failed to write config {self.config_path}: {e}") from e

        return stamped

    def _atomic_write(self, text):
        fd, temp_path = tempfile.mkstemp(
            dir=self.config_path.parent, prefix=f".{self.config_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.config_path)
        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

    def _validate_config(self, data):
        """
        Validate the configuration structure and content.

        :raises ConfigValidationError: If validation fails
        """
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration root must be an object")

        rules = data.get("rules")
        if rules is not None:
            if not isinstance(rules, list):
                raise ConfigValidationError("'rules' must be a list")
            for i, rule_def in enumerate(rules):
                validate_rule(rule_def, context=f"Rule {i}")

        general = data.get("general")
        if general is not None:
            self._validate_general(general)

    def _validate_general(self, general):
        """Validate general settings section."""
        if not isinstance(general, dict):
            raise ConfigValidationError("'general' must be an object")

        for key in ("checkInterval", "switchDelay"):
            if key in general:
                value = general[key]
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise ConfigValidationError(f"{key} must be a non-negative integer (milliseconds)")

        for key in ("autoStart", "enableLogging", "showNotifications"):
            if key in general and not isinstance(general[key], bool):
                raise ConfigValidationError(f"{key} must be true or false")

        level = general.get("logLevel")
        if level and level not in LOG_LEVELS:
            raise ConfigValidationError(
                f"invalid logLevel '{level}'. Valid values: {', '.join(LOG_LEVELS)}"
            )

    # ========== rule import / export ==========

    @staticmethod
    def export_rules(rules, path):
        """
        Write a list of rules to a standalone file.

        YAML is used for ``.yml``/``.yaml`` targets, JSON otherwise.
        """
        path = Path(path)
        payload = [rule.to_dict() for rule in rules]
        with open(path, "w", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                yaml.safe_dump({"rules": payload}, f, sort_keys=False, allow_unicode=True)
            else:
                json.dump({"rules": payload}, f, indent=2, ensure_ascii=False)

    @staticmethod
    def read_rules(path) -> list[Rule]:
        """
        Read and validate a rule list exported by :meth:`export_rules`.

        A bare list at the top level is accepted as well.

        :raises ConfigError: If the file cannot be parsed
        :raises ConfigValidationError: If any rule is malformed
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.suffix.lower() in YAML_SUFFIXES:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except FileNotFoundError:
            raise
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(f"Failed to parse rules file {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read rules file {path}: {e}") from e

        if isinstance(data, dict):
            data = data.get("rules")
        if not isinstance(data, list):
            raise ConfigValidationError(f"Rules file {path} must contain a list of rules")

        for i, rule_def in enumerate(data):
            validate_rule(rule_def, context=f"Rule {i}")
        return [Rule.from_dict(rule_def) for rule_def in data]
