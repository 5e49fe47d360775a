"""Where the activity document lives."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs


APP_NAME = "daytrack"
DATA_FILENAME = "activities.json"


def get_data_path() -> Path:
    """Default activity file in the per-user data directory."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=False, roaming=True)
    return Path(dirs.user_data_path) / DATA_FILENAME


def resolve_data_path(path: Optional[Path] = None) -> Path:
    """Expand a user-supplied location; a directory gets the default file name.

    The parent directory is created so the first save can succeed.
    """
    resolved = Path(path).expanduser() if path is not None else get_data_path()
    if resolved.is_dir():
        resolved = resolved / DATA_FILENAME
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved
