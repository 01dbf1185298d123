"""Durable whole-forest snapshots.

The forest is stored as one JSON value under one key. Every save replaces the
previous value; there is no merging and no history.
"""

import sqlite3
from pathlib import Path

from loguru import logger

from scrivener_tree.config import SNAPSHOT_KEY
from scrivener_tree.core.database.schema import (
    delete_snapshot,
    migrate_schema,
    read_snapshot,
    write_snapshot,
)
from scrivener_tree.core.snapshot.codec import dumps_snapshot, import_forest
from scrivener_tree.errors import ParseError, PersistenceError
from scrivener_tree.models.node import Forest
from scrivener_tree.protocols import SnapshotSlotProtocol


class SqliteSnapshotSlot:
    """Snapshot slot backed by the ``snapshots`` table of a SQLite database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        migrate_schema(conn)

    @classmethod
    def open(cls, db_path: Path) -> "SqliteSnapshotSlot":
        """Open (creating if needed) the database at db_path."""
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return cls(sqlite3.connect(str(db_path)))

    def read(self, key: str) -> str | None:
        return read_snapshot(self.conn, key)

    def write(self, key: str, value: str) -> None:
        write_snapshot(self.conn, key, value)

    def delete(self, key: str) -> None:
        delete_snapshot(self.conn, key)

    def close(self) -> None:
        self.conn.close()


class PersistenceAdapter:
    """Save, load and clear the forest snapshot in a slot."""

    def __init__(self, slot: SnapshotSlotProtocol, *, key: str = SNAPSHOT_KEY) -> None:
        self.slot = slot
        self.key = key

    def save(self, forest: Forest) -> None:
        """Write the whole forest, replacing whatever was stored.

        Raises:
            PersistenceError: the slot could not be written.
        """
        payload = dumps_snapshot(forest)
        try:
            self.slot.write(self.key, payload)
        except (sqlite3.Error, OSError) as e:
            msg = f"Failed to save snapshot {self.key!r}: {e}"
            raise PersistenceError(msg) from e
        logger.debug("Saved snapshot {!r} ({} root nodes, {} bytes)", self.key, len(forest), len(payload))

    def load(self) -> Forest:
        """Return the last saved forest, or an empty one.

        Never raises: a missing, unreadable or corrupt snapshot is treated as no data.
        """
        try:
            payload = self.slot.read(self.key)
        except Exception:
            logger.opt(exception=True).warning("Could not read snapshot {!r}, starting empty", self.key)
            return ()
        if not payload:
            return ()
        try:
            forest = import_forest(payload)
        except ParseError as e:
            logger.warning("Stored snapshot {!r} is corrupt, starting empty: {}", self.key, e)
            return ()
        except Exception:
            logger.opt(exception=True).error("Could not decode snapshot {!r}, starting empty", self.key)
            return ()
        logger.debug("Loaded snapshot {!r} ({} root nodes)", self.key, len(forest))
        return forest

    def clear(self) -> None:
        """Erase the stored snapshot.

        Raises:
            PersistenceError: the slot could not be written.
        """
        try:
            self.slot.delete(self.key)
        except (sqlite3.Error, OSError) as e:
            msg = f"Failed to clear snapshot {self.key!r}: {e}"
            raise PersistenceError(msg) from e
        logger.info("Cleared snapshot {!r}", self.key)
