"""Writing-project tree: containers, documents and writing-progress metadata."""

from scrivener_tree.core.persistence.adapter import PersistenceAdapter, SqliteSnapshotSlot
from scrivener_tree.core.tree.store import TreeStore
from scrivener_tree.models.node import Metadata, MetadataPatch, Node, NodeKind, Status
from scrivener_tree.protocols import SnapshotSlotProtocol

__all__ = [
    "Metadata",
    "MetadataPatch",
    "Node",
    "NodeKind",
    "PersistenceAdapter",
    "SnapshotSlotProtocol",
    "SqliteSnapshotSlot",
    "Status",
    "TreeStore",
]
