"""
Filesystem locations for SwitchInput.

Config lives at ``<config-dir>/config.json`` and the action log at
``<config-dir>/logs/app.log``. The config directory defaults to
``~/.switch-input`` and can be overridden with ``SWITCH_INPUT_HOME``.
"""
import os
from pathlib import Path

CONFIG_DIR_ENV = "SWITCH_INPUT_HOME"
CONFIG_DIR_NAME = ".switch-input"
CONFIG_FILE_NAME = "config.json"
LOG_DIR_NAME = "logs"
LOG_FILE_NAME = "app.log"


def config_dir(override=None) -> Path:
    """Resolve the config directory: explicit override, env var, then home."""
    if override:
        return Path(override).expanduser()
    env_value = os.environ.get(CONFIG_DIR_ENV)
    if env_value:
        return Path(env_value).expanduser()
    return Path.home() / CONFIG_DIR_NAME


def config_path(base: Path) -> Path:
    return base / CONFIG_FILE_NAME


def log_path(base: Path) -> Path:
    return base / LOG_DIR_NAME / LOG_FILE_NAME
