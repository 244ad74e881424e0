"""App path helpers (cross-platform).

SSOT for preset library app data paths.

Environment overrides (useful for portable/dev launches and tests):
- PL_DATA_DIR: base app data dir
- PL_PRESETS_DIR: explicit presets dir (overrides PL_DATA_DIR/presets)
"""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_data_dir

from src.config import PRESETS_SUBDIR

APP_NAME = "PresetLibrary"


def _env_path(name: str) -> Path | None:
    v = os.environ.get(name)
    if not v:
        return None
    return Path(os.path.expanduser(v)).resolve()


def get_app_data_dir() -> Path:
    """Base app data dir."""
    data_dir = _env_path("PL_DATA_DIR")
    if data_dir is not None:
        return data_dir
    return Path(user_data_dir(APP_NAME, appauthor=False, roaming=True)).resolve()


def get_presets_dir() -> Path:
    """Presets dir under the app data dir (created on demand)."""
    presets_dir = _env_path("PL_PRESETS_DIR")
    if presets_dir is None:
        presets_dir = get_app_data_dir() / PRESETS_SUBDIR
    presets_dir.mkdir(parents=True, exist_ok=True)
    return presets_dir
