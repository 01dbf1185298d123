"""SQLite schema for the durable snapshot slot."""

import sqlite3
import time

SCHEMA_VERSION = 1

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS snapshots (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    saved_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables."""
    conn.executescript(_SCHEMA_SQL)
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
        ("schema_version", str(SCHEMA_VERSION)),
    )
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the current schema version, or None if metadata table doesn't exist."""
    try:
        row = conn.execute(
            "SELECT value FROM metadata WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        return None
    return int(row[0]) if row else None


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Create or migrate the database schema to the latest version."""
    version = get_schema_version(conn)
    if version is None:
        create_schema(conn)


def read_snapshot(conn: sqlite3.Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM snapshots WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def write_snapshot(conn: sqlite3.Connection, key: str, value: str) -> None:
    """Replace the snapshot stored under key (last write wins)."""
    conn.execute(
        "INSERT OR REPLACE INTO snapshots (key, value, saved_at) VALUES (?, ?, ?)",
        (key, value, int(time.time() * 1000)),
    )
    conn.commit()


def delete_snapshot(conn: sqlite3.Connection, key: str) -> None:
    conn.execute("DELETE FROM snapshots WHERE key = ?", (key,))
    conn.commit()
