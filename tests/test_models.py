from datetime import datetime, timezone

from SwitchInput.models import Config, GeneralSettings, LogEntry, Rule, WindowObservation


def test_same_app_ignores_title():
    a = WindowObservation("Chrome", window_name="A", pid=1)
    b = WindowObservation("Chrome", window_name="B", pid=2)
    assert a.same_app(b)
    assert not a.same_app(WindowObservation("Safari"))
    assert not a.same_app(None)


def test_rule_tokens_and_str():
    rule = Rule("Safari, Chrome ,", "pinyin", window_pattern="*mail*")
    assert rule.app_tokens() == ["Safari", "Chrome"]
    assert str(rule) == "Safari, Chrome , [*mail*] -> pinyin"
    assert str(Rule("Terminal", "abc")) == "Terminal -> abc"


def test_general_settings_zero_falls_back_to_defaults():
    general = GeneralSettings.from_dict({"checkInterval": 0, "switchDelay": 0, "logLevel": ""})
    assert general == GeneralSettings()


def test_config_from_dict_tolerates_missing_sections():
    config = Config.from_dict({})
    assert config.rules == []
    assert config.general == GeneralSettings()
    assert config.last_modified == ""


class TestLogEntry:
    def test_empty_optional_fields_are_omitted(self):
        entry = LogEntry(level="info", message="hello")
        assert set(entry.to_dict()) == {"timestamp", "level", "message"}

    def test_all_fields(self):
        ts = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        entry = LogEntry("error", "failed", app_name="Safari", input="abc",
                         action="switch_failed", error="timeout", timestamp=ts)
        data = entry.to_dict()
        assert data == {
            "timestamp": "2024-05-01T12:00:00+00:00",
            "level": "error",
            "message": "failed",
            "appName": "Safari",
            "input": "abc",
            "action": "switch_failed",
            "error": "timeout",
        }
        assert LogEntry.from_dict(data) == entry

    def test_default_timestamp_is_utc(self):
        assert LogEntry("info", "x").timestamp.tzinfo is timezone.utc
