"""
Data models for SwitchInput.

This module contains the dataclass definitions shared by the window monitor,
the rule matcher and the action log, together with their JSON mappings.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

LOG_LEVELS = ("debug", "info", "warn", "error")

DEFAULT_CHECK_INTERVAL = 500  # ms
DEFAULT_SWITCH_DELAY = 100  # ms
DEFAULT_LOG_LEVEL = "info"


@dataclass(frozen=True)
class WindowObservation:
    """
    A single snapshot of the currently focused application/window.

    Attributes:
        app_name: Application name or bundle identifier
        app_path: Executable path, may be empty
        window_name: Title of the focused window, may be empty
        pid: Process id of the owning application, 0 when unknown
    """
    app_name: str
    app_path: str = ""
    window_name: str = ""
    pid: int = 0

    def same_app(self, other: "WindowObservation | None") -> bool:
        """Two observations are the same focus target iff their app names are equal."""
        return other is not None and other.app_name == self.app_name

    def to_dict(self) -> dict:
        return {
            "appName": self.app_name,
            "appPath": self.app_path,
            "windowName": self.window_name,
            "pid": self.pid,
        }


@dataclass(frozen=True)
class Rule:
    """
    A user-authored mapping from an application to a target input method.

    Attributes:
        app_pattern: App name; may hold comma-separated alternatives
        target_input: Input method identifier to switch to
        window_pattern: Window title pattern, "" matches every window
        enabled: Disabled rules are never indexed
        priority: Lower value wins
    """
    app_pattern: str
    target_input: str
    window_pattern: str = ""
    enabled: bool = True
    priority: int = 0

    def app_tokens(self) -> list[str]:
        """Split the app pattern on commas, dropping empty alternatives."""
        return [token.strip() for token in self.app_pattern.split(",") if token.strip()]

    def to_dict(self) -> dict:
        return {
            "app": self.app_pattern,
            "window": self.window_pattern,
            "input": self.target_input,
            "enabled": self.enabled,
            "priority": self.priority,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Rule":
        return cls(
            app_pattern=data["app"],
            target_input=data["input"],
            window_pattern=data.get("window") or "",
            enabled=data.get("enabled", True),
            priority=data.get("priority", 0),
        )

    def __str__(self) -> str:
        window = f" [{self.window_pattern}]" if self.window_pattern else ""
        return f"{self.app_pattern}{window} -> {self.target_input}"


@dataclass
class GeneralSettings:
    """Application-wide settings stored under the ``general`` key."""
    auto_start: bool = False
    check_interval: int = DEFAULT_CHECK_INTERVAL
    switch_delay: int = DEFAULT_SWITCH_DELAY
    enable_logging: bool = True
    log_level: str = DEFAULT_LOG_LEVEL
    show_notifications: bool = True

    def to_dict(self) -> dict:
        return {
            "autoStart": self.auto_start,
            "checkInterval": self.check_interval,
            "switchDelay": self.switch_delay,
            "enableLogging": self.enable_logging,
            "logLevel": self.log_level,
            "showNotifications": self.show_notifications,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GeneralSettings":
        # Zero or missing numeric fields fall back to defaults
        return cls(
            auto_start=data.get("autoStart", False),
            check_interval=data.get("checkInterval") or DEFAULT_CHECK_INTERVAL,
            switch_delay=data.get("switchDelay") or DEFAULT_SWITCH_DELAY,
            enable_logging=data.get("enableLogging", True),
            log_level=data.get("logLevel") or DEFAULT_LOG_LEVEL,
            show_notifications=data.get("showNotifications", True),
        )


@dataclass
class Config:
    """
    The persisted rule set together with general settings.

    Rule identity is positional: CRUD operations address rules by their
    index in ``rules``.
    """
    rules: list[Rule] = field(default_factory=list)
    general: GeneralSettings = field(default_factory=GeneralSettings)
    last_modified: str = ""

    def to_dict(self) -> dict:
        return {
            "rules": [rule.to_dict() for rule in self.rules],
            "general": self.general.to_dict(),
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        return cls(
            rules=[Rule.from_dict(item) for item in data.get("rules") or []],
            general=GeneralSettings.from_dict(data.get("general") or {}),
            last_modified=data.get("lastModified", ""),
        )


@dataclass
class LogEntry:
    """
    One record of the action log.

    Optional fields are omitted from the serialized form when empty.
    """
    level: str
    message: str
    app_name: str = ""
    input: str = ""
    action: str = ""
    error: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        data = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "message": self.message,
        }
        for key, value in (("appName", self.app_name), ("input", self.input),
                           ("action", self.action), ("error", self.error)):
            if value:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "LogEntry":
        return cls(
            level=data.get("level", ""),
            message=data.get("message", ""),
            app_name=data.get("appName", ""),
            input=data.get("input", ""),
            action=data.get("action", ""),
            error=data.get("error", ""),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
