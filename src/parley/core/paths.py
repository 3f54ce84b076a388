"""Central paths for Parley."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_HOME = Path.home() / ".parley"


def get_home() -> Path:
    """Return the Parley home directory.

    ``PARLEY_HOME`` overrides the default ``~/.parley``.
    """
    override = os.environ.get("PARLEY_HOME")
    if override:
        return Path(override).expanduser()
    return DEFAULT_HOME


def get_config_path() -> Path:
    return get_home() / "config.yaml"
