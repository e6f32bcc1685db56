"""Config file discovery.

Walk-up finder locates actionctl.toml from the working directory, the way
git finds .git/. ``ACTIONCTL_CONFIG`` and ``--config`` take precedence.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "actionctl.toml"
CONFIG_ENV_VAR = "ACTIONCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest actionctl.toml at or above *start* (default: cwd).

    When ``ACTIONCTL_CONFIG`` is set it wins outright: the file it names
    is returned if it exists, and no walk-up happens otherwise.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidate = Path(env_path).expanduser()
        return candidate if candidate.is_file() else None

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
