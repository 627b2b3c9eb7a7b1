from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from ennote.config import ENNOTE_HOME
from ennote.exceptions import StorageError

logger = logging.getLogger(__name__)

DB_DIR = ENNOTE_HOME
DB_PATH = DB_DIR / "ennote.db"

# Used when DB_PATH cannot be opened; lives as long as the keeper connection.
_SESSION_URI = "file:ennote-session?mode=memory&cache=shared"
_session_conn: sqlite3.Connection | None = None

SCHEMA = """\
CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    content TEXT NOT NULL,
    is_completed INTEGER NOT NULL DEFAULT 0,
    sort_order INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    completed_at TEXT,
    CHECK (
        (is_completed = 0 AND completed_at IS NULL)
        OR (is_completed = 1 AND completed_at IS NOT NULL)
    )
);

CREATE INDEX IF NOT EXISTS idx_notes_active ON notes (is_completed, sort_order);

CREATE TABLE IF NOT EXISTS stacks (
    id TEXT PRIMARY KEY,
    notes TEXT NOT NULL DEFAULT '[]',
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    fetched INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


def _connect(db_path: Path | None = None) -> sqlite3.Connection:
    if db_path is None and _session_conn is not None:
        conn = sqlite3.connect(_SESSION_URI, uri=True)
    else:
        conn = sqlite3.connect(str(db_path or DB_PATH))
        conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Path | None = None) -> bool:
    """Create the schema.

    Returns False when DB_PATH could not be used and the process is now
    running on a session-only in-memory store.
    """
    target = db_path or DB_PATH
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        conn = _connect(target)
        try:
            conn.executescript(SCHEMA)
        finally:
            conn.close()
    except (sqlite3.Error, OSError):
        logger.warning(
            "Could not open note store at %s, falling back to a session-only store",
            target,
            exc_info=True,
        )
        _open_session_store()
        return False

    if db_path is None:
        close_session_store()
    return True


def _open_session_store() -> None:
    global _session_conn
    if _session_conn is not None:
        return
    try:
        conn = sqlite3.connect(_SESSION_URI, uri=True, check_same_thread=False)
        conn.executescript(SCHEMA)
    except sqlite3.Error as exc:
        raise StorageError("Could not allocate a session-only note store") from exc
    _session_conn = conn


def close_session_store() -> None:
    global _session_conn
    if _session_conn is not None:
        _session_conn.close()
        _session_conn = None


def is_ephemeral() -> bool:
    return _session_conn is not None


@contextmanager
def get_db(db_path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    conn = _connect(db_path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def get_setting(key: str, db_path: Path | None = None) -> str | None:
    with get_db(db_path) as db:
        row = db.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    return row["value"] if row else None


def set_setting(key: str, value: str | None, db_path: Path | None = None) -> None:
    with get_db(db_path) as db:
        if value is None:
            db.execute("DELETE FROM settings WHERE key = ?", (key,))
        else:
            db.execute(
                "INSERT INTO settings (key, value) VALUES (?, ?)"
                " ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
