"""Platform detection and config path resolution."""

from __future__ import annotations

import os
import sys
from pathlib import Path

APP_NAME = "raccoon"


def get_platform() -> str:
    if sys.platform == "win32":
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def get_config_dir() -> Path:
    """Per-user config directory."""
    env = os.environ.get("RACCOON_CONFIG_DIR")
    if env:
        return Path(env)

    platform = get_platform()
    if platform == "windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / APP_NAME
    if platform == "macos":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    # Linux / XDG
    xdg = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(xdg) / APP_NAME


def get_system_config_dirs() -> list[Path]:
    """System-wide config directories, most preferred first."""
    platform = get_platform()
    if platform == "windows":
        base = Path(os.environ.get("PROGRAMDATA", "C:/ProgramData"))
        return [base / APP_NAME]
    if platform == "macos":
        return [Path("/Library/Application Support") / APP_NAME]

    xdg_dirs = os.environ.get("XDG_CONFIG_DIRS") or "/etc/xdg"
    dirs = [Path(d) / APP_NAME for d in xdg_dirs.split(os.pathsep) if d]
    dirs.append(Path("/etc") / APP_NAME)
    return dirs


def config_search_path() -> list[Path]:
    """User dir, then system dirs, then the working directory."""
    return [get_config_dir(), *get_system_config_dirs(), Path.cwd()]
