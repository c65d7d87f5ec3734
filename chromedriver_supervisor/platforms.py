"""Platform detection and driver binary resolution."""

from __future__ import annotations

import enum
import os
import sys
from pathlib import Path

EXEC_DIR = Path(__file__).parent / "exec"


class Platform(enum.Enum):
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    UNKNOWN = "unknown"

    @property
    def is_unix(self) -> bool:
        return self in (Platform.MACOS, Platform.LINUX)


def detect_platform(system: str | None = None) -> Platform:
    """Map a ``sys.platform`` string (default: the running one) to a Platform."""
    system = sys.platform if system is None else system
    if system.startswith("win") or system == "cygwin":
        return Platform.WINDOWS
    if system == "darwin":
        return Platform.MACOS
    if system.startswith("linux"):
        return Platform.LINUX
    return Platform.UNKNOWN


def driver_file_name(platform: Platform | None = None) -> str:
    platform = platform or detect_platform()
    return "chromedriver.exe" if platform is Platform.WINDOWS else "chromedriver"


def default_binary_path(platform: Platform | None = None) -> Path:
    return EXEC_DIR / driver_file_name(platform)


def is_existing_file(path: str | os.PathLike[str]) -> bool:
    return Path(path).is_file()
