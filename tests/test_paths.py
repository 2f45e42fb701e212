from pathlib import Path

from SwitchInput.paths import CONFIG_DIR_ENV, config_dir, config_path, log_path


def test_override_wins(monkeypatch, tmp_path):
    monkeypatch.setenv(CONFIG_DIR_ENV, "/somewhere/else")
    assert config_dir(tmp_path) == tmp_path


def test_env_var(monkeypatch, tmp_path):
    monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path))
    assert config_dir() == tmp_path


def test_home_default(monkeypatch):
    monkeypatch.delenv(CONFIG_DIR_ENV, raising=False)
    assert config_dir() == Path.home() / ".switch-input"


def test_file_locations(tmp_path):
    assert config_path(tmp_path) == tmp_path / "config.json"
    assert log_path(tmp_path) == tmp_path / "logs" / "app.log"
