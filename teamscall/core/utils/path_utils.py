"""Path utility functions for teamscall."""

import os
import sys
from collections.abc import Mapping
from pathlib import Path


def normalize_file_path(path: Path | str) -> Path:
    """Resolve a path to canonical form.

    Watchdog reports event paths the way the OS hands them over, which is not
    always how the user spelled the watched path (macOS /var -> /private/var,
    Windows 8.3 short names, symlinked home directories). Both sides of a
    comparison must go through here.
    """
    return Path(os.fsdecode(path)).resolve()


def default_log_file_path(
    platform: str | None = None,
    home: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Return where the Teams desktop client writes logs.txt on this platform.

    Args:
        platform: sys.platform style identifier (defaults to the running one)
        home: Home directory (defaults to Path.home())
        environ: Environment used to look up APPDATA on Windows

    Returns:
        Absolute path of the Teams log file (it may not exist yet)
    """
    platform = platform or sys.platform
    home = home or Path.home()
    environ = os.environ if environ is None else environ

    if platform == "darwin":
        return home / "Library" / "Application Support" / "Microsoft" / "Teams" / "logs.txt"
    if platform == "win32":
        appdata = environ.get("APPDATA")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / "Microsoft" / "Teams" / "logs.txt"
    return home / ".config" / "Microsoft" / "Microsoft Teams" / "logs.txt"
