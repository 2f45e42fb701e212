from unittest.mock import patch

from SwitchInput.dependency_check import DependencyChecker


def test_platform_tools():
    assert [d.name for d in DependencyChecker("darwin").tools] == ["osascript", "im-select"]
    assert [d.name for d in DependencyChecker("linux").tools] == ["xdotool", "ibus"]


@patch("os.access", return_value=False)
@patch("shutil.which", return_value=None)
def test_missing_tools_reported(mock_which, mock_access):
    checker = DependencyChecker("linux")
    report = checker.format_report()

    assert "xdotool      MISSING" in report
    assert "Active window query disabled" in report
    assert "PyYAML" in report
    assert "Install hint: Debian/Ubuntu" in report
    assert not checker.has_critical_failures()
    assert checker.get_summary() == "Dependency Status: OK (tools 0/2 found)"


@patch("shutil.which", return_value="/usr/bin/tool")
def test_all_found(mock_which):
    checker = DependencyChecker("darwin")
    assert all(dep.installed for dep in checker.run_check())
    assert "tools 2/2 found" in checker.get_summary()
    assert "Install hint" not in checker.format_report()


@patch("os.access", side_effect=lambda path, mode: path == "/opt/homebrew/bin/im-select")
@patch("shutil.which", return_value=None)
def test_im_select_homebrew_fallback(mock_which, mock_access):
    checker = DependencyChecker("darwin")
    im_select = [d for d in checker.run_check() if d.name == "im-select"][0]
    assert im_select.location == "/opt/homebrew/bin/im-select"


@patch("importlib.util.find_spec", return_value=None)
def test_missing_python_package_is_critical(mock_find_spec):
    checker = DependencyChecker("linux")
    assert checker.has_critical_failures()
    assert "Required Python packages are missing" in checker.format_report()
    assert checker.get_summary().startswith("Dependency Status: CRITICAL MISSING")
