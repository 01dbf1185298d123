"""Tests for the SQLite schema helpers."""

import sqlite3

from scrivener_tree.core.database.schema import (
    SCHEMA_VERSION,
    create_schema,
    delete_snapshot,
    get_schema_version,
    migrate_schema,
    read_snapshot,
    write_snapshot,
)


def test_fresh_database_has_no_version() -> None:
    conn = sqlite3.connect(":memory:")

    assert get_schema_version(conn) is None


def test_create_schema_sets_version() -> None:
    conn = sqlite3.connect(":memory:")

    create_schema(conn)

    assert get_schema_version(conn) == SCHEMA_VERSION
    tables = {
        row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    }
    assert {"snapshots", "metadata"} <= tables


def test_migrate_is_idempotent() -> None:
    conn = sqlite3.connect(":memory:")
    migrate_schema(conn)
    write_snapshot(conn, "projects", "[]")

    migrate_schema(conn)

    assert read_snapshot(conn, "projects") == "[]"


def test_write_snapshot_replaces_value() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)

    write_snapshot(conn, "projects", "[1]")
    write_snapshot(conn, "projects", "[2]")

    assert read_snapshot(conn, "projects") == "[2]"
    (count,) = conn.execute("SELECT COUNT(*) FROM snapshots").fetchone()
    assert count == 1


def test_delete_snapshot() -> None:
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    write_snapshot(conn, "projects", "[]")

    delete_snapshot(conn, "projects")

    assert read_snapshot(conn, "projects") is None
