"""Tests for sibling reordering and drag-end handling."""

import pytest

from scrivener_tree.core.tree.operations import find_node, iter_nodes
from scrivener_tree.core.tree.reorder import (
    ROOT_LEVEL_KEY,
    DragLocation,
    DragResult,
    ReorderController,
    level_key,
    parse_level_key,
    reorder_siblings,
)
from scrivener_tree.models.node import Forest
from tests.unit.conftest import make_container, make_doc


@pytest.fixture
def chapters() -> Forest:
    """One root container with chapters A, B, C, D."""
    return (
        make_container(
            1,
            "Book",
            make_doc(10, "A"),
            make_doc(11, "B"),
            make_doc(12, "C"),
            make_doc(13, "D"),
        ),
        make_container(2, "Other"),
        make_container(3, "Third"),
    )


def _child_names(forest: Forest, parent_id: int) -> list[str]:
    parent = find_node(forest, parent_id)
    assert parent is not None
    return [c.name for c in parent.children]


def test_level_keys_round_trip() -> None:
    assert level_key(None) == ROOT_LEVEL_KEY
    assert level_key(42) == "node-42"
    assert parse_level_key("root") is None
    assert parse_level_key("node-42") == 42
    assert parse_level_key(level_key(-5)) == -5
    assert parse_level_key(level_key(0)) == 0


@pytest.mark.parametrize(
    "key", ["", "node-", "node-x", "node-+1", "node-1.5", "node- 1", "node---1", "folder-3"]
)
def test_parse_level_key_rejects_malformed(key: str) -> None:
    with pytest.raises(ValueError, match="Malformed level key"):
        parse_level_key(key)


def test_move_first_to_last(chapters: Forest) -> None:
    forest = reorder_siblings(chapters, 1, 0, 3)

    assert _child_names(forest, 1) == ["B", "C", "D", "A"]


def test_move_last_to_first(chapters: Forest) -> None:
    forest = reorder_siblings(chapters, 1, 3, 0)

    assert _child_names(forest, 1) == ["D", "A", "B", "C"]


def test_move_preserves_membership(chapters: Forest) -> None:
    forest = reorder_siblings(chapters, 1, 1, 2)

    assert _child_names(forest, 1) == ["A", "C", "B", "D"]
    assert sorted(n.id for n in iter_nodes(forest)) == sorted(n.id for n in iter_nodes(chapters))
    assert forest[1] is chapters[1]


def test_reorder_root_list(chapters: Forest) -> None:
    forest = reorder_siblings(chapters, None, 2, 0)

    assert [n.name for n in forest] == ["Third", "Book", "Other"]
    assert forest[1] is chapters[0]


def test_same_index_returns_same_forest(chapters: Forest) -> None:
    assert reorder_siblings(chapters, 1, 2, 2) is chapters
    assert reorder_siblings(chapters, None, 0, 0) is chapters


def test_unknown_parent_is_noop(chapters: Forest) -> None:
    assert reorder_siblings(chapters, 99, 0, 1) is chapters


@pytest.mark.parametrize(("source", "dest"), [(4, 0), (0, 4), (-1, 0), (5, 5)])
def test_out_of_range_indices_raise(chapters: Forest, source: int, dest: int) -> None:
    with pytest.raises(IndexError):
        reorder_siblings(chapters, 1, source, dest)


def test_on_reorder_uses_level_key(chapters: Forest) -> None:
    controller = ReorderController()

    forest = controller.on_reorder(chapters, "node-1", 0, 1)

    assert _child_names(forest, 1) == ["B", "A", "C", "D"]


def test_on_drag_end_within_level(chapters: Forest) -> None:
    controller = ReorderController()
    result = DragResult(
        source=DragLocation("node-1", 3),
        destination=DragLocation("node-1", 1),
    )

    forest = controller.on_drag_end(chapters, result)

    assert _child_names(forest, 1) == ["A", "D", "B", "C"]


def test_on_drag_end_without_destination_is_noop(chapters: Forest) -> None:
    controller = ReorderController()
    result = DragResult(source=DragLocation("node-1", 0))

    assert controller.on_drag_end(chapters, result) is chapters


def test_on_drag_end_across_levels_raises(chapters: Forest) -> None:
    controller = ReorderController()
    result = DragResult(
        source=DragLocation("node-1", 0),
        destination=DragLocation(ROOT_LEVEL_KEY, 0),
    )

    with pytest.raises(ValueError, match="Cross-level move"):
        controller.on_drag_end(chapters, result)


def test_reorder_children_of_negative_id_container() -> None:
    forest = (make_container(-5, "Imported", make_doc(-6, "X"), make_doc(-7, "Y")),)

    moved = ReorderController().on_reorder(forest, level_key(-5), 0, 1)

    assert _child_names(moved, -5) == ["Y", "X"]
