"""Whole-state JSON document and UI theme kept in the settings table."""
from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ..core.db import init_db, setting_get, setting_set
from ..core.errors import PersistenceFailure

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

STATE_KEY = "restaurant_state"
THEME_KEY = "theme"
DEFAULT_THEME = "normal"

STATE_FIELDS = (
    "currentOrders",
    "kitchenOrders",
    "tableStatus",
    "ownerBills",
    "unavailableItems",
    "lastResetDate",
    "menu",
)

_STORE_ERRORS = (sqlite3.Error, SQLAlchemyError, OSError)
_ROW_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


def parse_rows(rows, parse: Callable[[dict], T], label: str) -> Tuple[List[T], int]:
    """Parse a stored list one record at a time.

    Unreadable records are logged and skipped; returns the parsed records and
    how many were skipped. A value that is not a list at all raises TypeError.
    """
    if rows is None:
        return [], 0
    if not isinstance(rows, list):
        raise TypeError(f"Stored {label} list has type {type(rows).__name__}")
    parsed: List[T] = []
    skipped = 0
    for row in rows:
        try:
            if not isinstance(row, dict):
                raise TypeError(f"expected an object, got {type(row).__name__}")
            parsed.append(parse(row))
        except _ROW_ERRORS as exc:
            skipped += 1
            LOGGER.warning("Skipping unreadable %s %r: %s", label, row, exc)
    return parsed, skipped


def load_state() -> Optional[Dict[str, Any]]:
    """Return the stored document, or None when nothing usable is stored.

    A corrupt document is logged and treated as missing; a broken store
    raises PersistenceFailure.
    """
    try:
        init_db()
        raw = setting_get(STATE_KEY)
    except _STORE_ERRORS as exc:
        raise PersistenceFailure(f"Could not read stored state: {exc}") from exc
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        LOGGER.error("Stored state is not valid JSON; starting from defaults")
        return None
    if not isinstance(data, dict):
        LOGGER.error("Stored state has unexpected type %s; starting from defaults", type(data).__name__)
        return None
    return data


def save_state(document: Dict[str, Any]) -> None:
    payload = {key: document.get(key) for key in STATE_FIELDS}
    try:
        encoded = json.dumps(payload, ensure_ascii=False)
        init_db()
        setting_set(STATE_KEY, encoded)
    except (TypeError, ValueError) as exc:
        raise PersistenceFailure(f"State is not serialisable: {exc}") from exc
    except _STORE_ERRORS as exc:
        raise PersistenceFailure(f"Could not write state: {exc}") from exc


def load_theme() -> str:
    try:
        init_db()
        value = setting_get(THEME_KEY)
    except _STORE_ERRORS:
        LOGGER.exception("Could not read theme; using %s", DEFAULT_THEME)
        return DEFAULT_THEME
    return (value or "").strip() or DEFAULT_THEME


def save_theme(name: str) -> str:
    cleaned = (name or "").strip() or DEFAULT_THEME
    try:
        init_db()
        setting_set(THEME_KEY, cleaned)
    except _STORE_ERRORS as exc:
        raise PersistenceFailure(f"Could not write theme: {exc}") from exc
    return cleaned
