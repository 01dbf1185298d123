"""Shared test fixtures."""

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import pytest

from scrivener_tree.core.content.draft import from_plain_text, serialize
from scrivener_tree.core.metadata.engine import default_metadata
from scrivener_tree.core.persistence.adapter import PersistenceAdapter
from scrivener_tree.core.snapshot.codec import export_forest
from scrivener_tree.core.tree.store import TreeStore
from scrivener_tree.models.node import Forest, Metadata, Node, NodeKind, Status
from tests.unit.fakes import FakeSlot, TickingClock

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_metadata(**overrides: Any) -> Metadata:
    return replace(default_metadata(FIXED_NOW), **overrides)


def make_doc(node_id: int, name: str, *, text: str = "", **meta: Any) -> Node:
    return Node(
        id=node_id,
        name=name,
        kind=NodeKind.DOCUMENT,
        metadata=make_metadata(**meta),
        content=serialize(from_plain_text(text)) if text else "",
    )


def make_container(node_id: int, name: str, *children: Node, **meta: Any) -> Node:
    return Node(
        id=node_id,
        name=name,
        kind=NodeKind.CONTAINER,
        metadata=make_metadata(**meta),
        children=children,
    )


@pytest.fixture
def sample_forest() -> Forest:
    """My Novel > Manuscript > (Chapter 1, Chapter 2), Research notes; Essays."""
    chapter1 = make_doc(
        3,
        "Chapter 1",
        text="It was a dark and stormy night.",
        word_count_goal=2000,
        tags=("chapter",),
        author="John Doe",
    )
    chapter2 = make_doc(4, "Chapter 2")
    manuscript = make_container(
        2, "Manuscript", chapter1, chapter2, status=Status.IN_PROGRESS, word_count_goal=50000
    )
    notes = make_doc(5, "Research notes")
    novel = make_container(1, "My Novel", manuscript, notes, tags=("novel",))
    essays = make_container(6, "Essays")
    return (novel, essays)


@pytest.fixture
def slot() -> FakeSlot:
    return FakeSlot()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock(FIXED_NOW)


@pytest.fixture
def store(slot: FakeSlot, clock: TickingClock) -> TreeStore:
    """An empty, loaded store backed by an in-memory slot."""
    tree_store = TreeStore(PersistenceAdapter(slot), clock=clock)
    tree_store.load()
    return tree_store


@pytest.fixture
def populated_store(store: TreeStore, sample_forest: Forest, slot: FakeSlot) -> TreeStore:
    """A store holding the sample forest, with the import write cleared."""
    store.import_text(export_forest(sample_forest))
    slot.writes.clear()
    return store
