"""Storage layout for the waiter POS: one base folder, env overridable.

Other modules read these attributes through the module (``paths.DB_PATH``) so
``use_base_dir`` takes effect without re-importing anything.
"""
from __future__ import annotations

import os
from pathlib import Path

__all__ = [
    "BASE_DIR",
    "DATA_DIR",
    "CONFIG_DIR",
    "REPORTS_DIR",
    "DB_PATH",
    "SETTINGS_FILE",
    "ensure_storage_dirs",
    "use_base_dir",
]

BASE_DIR: Path
DATA_DIR: Path
CONFIG_DIR: Path
REPORTS_DIR: Path
DB_PATH: Path
SETTINGS_FILE: Path


def _detect_base_dir() -> Path:
    env_override = os.getenv("WAITER_POS_DATA_ROOT")
    if env_override:
        return Path(env_override).expanduser().resolve()
    if os.name == "nt":
        return Path(os.environ.get("PROGRAMDATA") or r"C:\ProgramData") / "WaiterPOS"
    return Path.home() / ".waiter_pos"


def use_base_dir(base: Path) -> None:
    """Point every storage path at *base* (tests and portable installs)."""
    global BASE_DIR, DATA_DIR, CONFIG_DIR, REPORTS_DIR, DB_PATH, SETTINGS_FILE
    BASE_DIR = Path(base)
    DATA_DIR = BASE_DIR / "data"
    CONFIG_DIR = BASE_DIR / "config"
    REPORTS_DIR = BASE_DIR / "reports"
    DB_PATH = DATA_DIR / "waiter_pos.db"
    SETTINGS_FILE = CONFIG_DIR / "settings.json"


def ensure_storage_dirs() -> None:
    for path in (DATA_DIR, CONFIG_DIR, REPORTS_DIR):
        path.mkdir(parents=True, exist_ok=True)


use_base_dir(_detect_base_dir())
