"""Operator settings kept as JSON in the config folder.

Writes go through a temp file and ``os.replace`` so a crash never leaves a
half-written settings file. Missing keys are filled from the defaults on every
load, and the typed getters below repair values an operator mistyped.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional

from . import paths

LOGGER = logging.getLogger(__name__)

SYNC_LEVELS = ("OFF", "NORMAL", "FULL", "EXTRA")

_LOCK = RLock()
_DEFAULTS: Dict[str, Any] = {
    "admin_password": "admin123",
    "table_count": 8,
    "currency_symbol": "Rs.",
    "sqlite_synchronous": "FULL",
    "reports_dir": "",
}


def _write(payload: Dict[str, Any]) -> None:
    target = paths.SETTINGS_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_suffix(".tmp")
    with tmp_path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2, sort_keys=True)
    os.replace(tmp_path, target)


def _read() -> Dict[str, Any]:
    try:
        with paths.SETTINGS_FILE.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError:
        LOGGER.warning("Settings file %s is not valid JSON; using defaults", paths.SETTINGS_FILE)
        return {}
    return data if isinstance(data, dict) else {}


def load_config() -> Dict[str, Any]:
    with _LOCK:
        stored = _read()
        merged = {**_DEFAULTS, **stored}
        if merged != stored:
            _write(merged)
        return merged


def save_config(data: Dict[str, Any]) -> None:
    with _LOCK:
        _write({**_DEFAULTS, **data})


def get_config_value(key: str, default: Any = None) -> Any:
    return load_config().get(key, default)


def set_config_value(key: str, value: Any) -> None:
    with _LOCK:
        config = load_config()
        if config.get(key) == value:
            return
        config[key] = value
        save_config(config)


def get_table_count() -> int:
    """Number of tables on the floor; falls back to the default on bad input."""
    try:
        count = int(get_config_value("table_count"))
    except (TypeError, ValueError):
        return _DEFAULTS["table_count"]
    return count if count > 0 else _DEFAULTS["table_count"]


def get_admin_password() -> str:
    return str(get_config_value("admin_password") or "")


def get_currency_symbol() -> str:
    return str(get_config_value("currency_symbol") or "")


def get_sqlite_synchronous() -> str:
    value = str(get_config_value("sqlite_synchronous") or "").upper()
    if value not in SYNC_LEVELS:
        LOGGER.warning("Unknown sqlite_synchronous %r; using %s", value, _DEFAULTS["sqlite_synchronous"])
        value = _DEFAULTS["sqlite_synchronous"]
        set_config_value("sqlite_synchronous", value)
    return value


def get_reports_dir() -> Optional[Path]:
    raw = str(get_config_value("reports_dir") or "").strip()
    return Path(raw).expanduser() if raw else None
