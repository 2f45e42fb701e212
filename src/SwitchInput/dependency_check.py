"""
Dependency report for the ``check-deps`` command.

SwitchInput needs one tool to read the focused window and one to switch
the input method; which ones depends on the platform. Missing tools only
disable the feature they back, while a missing Python package is fatal.
"""
import importlib.metadata
import importlib.util
import logging
import os
import shutil
import sys
from dataclasses import dataclass, field
from typing import List, Optional

from .input_switcher import HOMEBREW_IM_SELECT

logger = logging.getLogger(__name__)

INSTALL_HINTS = {
    "darwin": "brew tap daipeihust/tap && brew install im-select",
    "linux": "Debian/Ubuntu: sudo apt install xdotool ibus   Fedora: sudo dnf install xdotool ibus",
}


@dataclass
class Dependency:
    name: str
    purpose: str
    required: bool = False
    is_package: bool = False
    distribution: Optional[str] = None
    fallback_paths: List[str] = field(default_factory=list)
    location: Optional[str] = None
    version: Optional[str] = None

    @property
    def installed(self) -> bool:
        return self.location is not None


class DependencyChecker:
    """Resolve the packages and platform tools SwitchInput relies on."""

    def __init__(self, platform: str = sys.platform):
        self.platform = platform
        self.packages = [
            Dependency("yaml", "Rule import/export", required=True, is_package=True,
                       distribution="PyYAML"),
        ]
        if platform == "darwin":
            self.tools = [
                Dependency("osascript", "Active window query"),
                Dependency("im-select", "Input switching", fallback_paths=[HOMEBREW_IM_SELECT]),
            ]
        else:
            self.tools = [
                Dependency("xdotool", "Active window query"),
                Dependency("ibus", "Input switching"),
            ]

    def _locate_tool(self, dep: Dependency) -> Optional[str]:
        found = shutil.which(dep.name)
        if found:
            return found
        for path in dep.fallback_paths:
            if os.access(path, os.X_OK):
                return path
        return None

    def _locate_package(self, dep: Dependency) -> Optional[str]:
        try:
            spec = importlib.util.find_spec(dep.name)
        except (ImportError, ValueError) as e:
            logger.debug(f"Could not resolve {dep.name}: {e}")
            return None
        if spec is None:
            return None

        try:
            dep.version = importlib.metadata.version(dep.distribution or dep.name)
        except importlib.metadata.PackageNotFoundError:
            dep.version = None
        return spec.origin or dep.name

    def run_check(self) -> List[Dependency]:
        """Resolve every dependency and return them, packages first."""
        for dep in self.packages:
            dep.location = self._locate_package(dep)
        for dep in self.tools:
            dep.location = self._locate_tool(dep)
        return self.packages + self.tools

    def format_report(self) -> str:
        results = self.run_check()
        lines = [f"SwitchInput dependencies ({self.platform})", ""]

        lines.append("Python packages:")
        for dep in results:
            if dep.is_package:
                state = f"ok {dep.version}" if dep.installed and dep.version else ("ok" if dep.installed else "MISSING")
                lines.append(f"  {(dep.distribution or dep.name):<12} {state:<14} {dep.purpose}")

        lines.append("")
        lines.append("Tools:")
        missing_tool = False
        for dep in results:
            if dep.is_package:
                continue
            if dep.installed:
                lines.append(f"  {dep.name:<12} {dep.location}")
            else:
                missing_tool = True
                lines.append(f"  {dep.name:<12} MISSING        {dep.purpose} disabled")

        if self.has_critical_failures(results):
            lines.append("")
            lines.append("Required Python packages are missing: pip install switch-input")
        if missing_tool:
            hint = INSTALL_HINTS.get(self.platform, INSTALL_HINTS["linux"])
            lines.append("")
            lines.append(f"Install hint: {hint}")
        return "\n".join(lines)

    def has_critical_failures(self, results: Optional[List[Dependency]] = None) -> bool:
        if results is None:
            results = self.run_check()
        return any(dep.required and not dep.installed for dep in results)

    def get_summary(self) -> str:
        results = self.run_check()
        tools = [dep for dep in results if not dep.is_package]
        found = sum(1 for dep in tools if dep.installed)
        status = "CRITICAL MISSING" if self.has_critical_failures(results) else "OK"
        return f"Dependency Status: {status} (tools {found}/{len(tools)} found)"
