"""SQLite key/value storage and audit log behind a SQLAlchemy engine."""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from . import paths
from .config_store import get_sqlite_synchronous

_ENGINE: Optional[Engine] = None


def _apply_pragmas(dbapi_conn, _):
    dbapi_conn.row_factory = sqlite3.Row
    dbapi_conn.isolation_level = None  # explicit transactions via BEGIN
    cursor = dbapi_conn.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute(f"PRAGMA synchronous={get_sqlite_synchronous()};")
    finally:
        cursor.close()


def get_engine() -> Engine:
    """Create the engine on first use so the storage root can be chosen first."""
    global _ENGINE
    if _ENGINE is None:
        paths.ensure_storage_dirs()
        _ENGINE = create_engine(
            f"sqlite:///{paths.DB_PATH.as_posix()}",
            connect_args={"check_same_thread": False},
        )
        event.listen(_ENGINE, "connect", _apply_pragmas)
    return _ENGINE


def get_conn() -> sqlite3.Connection:
    return get_engine().raw_connection()


@contextmanager
def db_transaction(begin_stmt: str = "BEGIN IMMEDIATE"):
    conn = get_conn()
    try:
        conn.execute(begin_stmt)
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def close_engine() -> None:
    global _ENGINE
    if _ENGINE is not None:
        _ENGINE.dispose()
        _ENGINE = None


def init_db() -> None:
    conn = get_conn()
    try:
        cur = conn.cursor()
        cur.execute(
            """CREATE TABLE IF NOT EXISTS settings(
                    key TEXT PRIMARY KEY,
                    value TEXT
                )"""
        )
        cur.execute(
            """CREATE TABLE IF NOT EXISTS audit_log(
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ts TEXT NOT NULL,
                    username TEXT NOT NULL,
                    action TEXT NOT NULL,
                    entity_type TEXT,
                    entity_name TEXT,
                    old_value TEXT,
                    new_value TEXT
                )"""
        )
    finally:
        conn.close()


def log_action(username, action, entity_type=None, entity_name=None, old_value=None, new_value=None):
    with db_transaction() as conn:
        conn.execute(
            """INSERT INTO audit_log(ts,username,action,entity_type,entity_name,old_value,new_value)
                   VALUES(?,?,?,?,?,?,?)""",
            (
                datetime.now().astimezone().isoformat(),
                username,
                action,
                entity_type,
                entity_name,
                old_value,
                new_value,
            ),
        )


def recent_actions(limit: int = 50) -> list[dict]:
    conn = get_conn()
    try:
        cur = conn.cursor()
        cur.execute(
            """SELECT ts, username, action, entity_type, entity_name, old_value, new_value
                   FROM audit_log ORDER BY id DESC LIMIT ?""",
            (limit,),
        )
        return [dict(row) for row in cur.fetchall()]
    finally:
        conn.close()


def setting_get(key: str, default: Optional[str] = None) -> Optional[str]:
    conn = get_conn()
    try:
        cur = conn.cursor()
        cur.execute("SELECT value FROM settings WHERE key=?", (key,))
        row = cur.fetchone()
        return row["value"] if row else default
    finally:
        conn.close()


def setting_set(key: str, value: str) -> None:
    with db_transaction() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO settings(key,value) VALUES(?,?)",
            (key, value),
        )
