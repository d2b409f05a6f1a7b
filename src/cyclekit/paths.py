from __future__ import annotations

import os
from pathlib import Path


def cyclekit_home() -> Path:
    env = os.environ.get("CYCLEKIT_HOME", "").strip()
    if env:
        return Path(env).expanduser().resolve()
    return (Path.home() / ".cyclekit").resolve()


def settings_path() -> Path:
    return cyclekit_home() / "settings.yaml"
