"""Tests for the pure forest operations."""

from datetime import timedelta

import pytest

from scrivener_tree.core.content.draft import from_plain_text, serialize
from scrivener_tree.core.tree.operations import (
    create_node,
    delete_node,
    find_node,
    find_parent_id,
    iter_nodes,
    max_node_id,
    rename_node,
    replace_node,
    update_content,
    update_metadata,
)
from scrivener_tree.errors import NotFoundError
from scrivener_tree.models.node import Forest, MetadataPatch, NodeKind, Status
from tests.unit.conftest import FIXED_NOW

LATER = FIXED_NOW + timedelta(hours=1)


def _ids(forest: Forest) -> list[int]:
    return [n.id for n in iter_nodes(forest)]


def test_iter_nodes_is_depth_first_in_sibling_order(sample_forest: Forest) -> None:
    assert _ids(sample_forest) == [1, 2, 3, 4, 5, 6]


def test_find_helpers(sample_forest: Forest) -> None:
    assert find_node(sample_forest, 4).name == "Chapter 2"  # type: ignore[union-attr]
    assert find_node(sample_forest, 99) is None
    assert find_parent_id(sample_forest, 3) == 2
    assert find_parent_id(sample_forest, 1) is None
    assert max_node_id(sample_forest) == 6
    assert max_node_id(()) == 0


def test_replace_node_returns_same_forest_for_unknown_id(sample_forest: Forest) -> None:
    assert replace_node(sample_forest, 99, lambda n: n) is sample_forest


def test_create_root_container_appends_to_root_list(sample_forest: Forest) -> None:
    forest = create_node(sample_forest, None, NodeKind.CONTAINER, "Poems", node_id=7, now=LATER)

    assert [n.name for n in forest] == ["My Novel", "Essays", "Poems"]
    new = forest[-1]
    assert new.kind is NodeKind.CONTAINER
    assert new.children == ()
    assert new.content is None
    assert new.metadata.creation_date == LATER
    assert new.metadata.status is Status.NOT_STARTED


def test_create_document_under_container(sample_forest: Forest) -> None:
    forest = create_node(sample_forest, 2, NodeKind.DOCUMENT, "Chapter 3", node_id=7, now=LATER)

    manuscript = find_node(forest, 2)
    assert manuscript is not None
    assert [c.name for c in manuscript.children] == ["Chapter 1", "Chapter 2", "Chapter 3"]
    assert manuscript.children[-1].content == ""
    # Untouched subtrees are shared, not copied.
    assert forest[1] is sample_forest[1]
    assert forest[0].children[1] is sample_forest[0].children[1]


def test_create_does_not_mutate_input(sample_forest: Forest) -> None:
    before = _ids(sample_forest)

    create_node(sample_forest, 2, NodeKind.DOCUMENT, "Chapter 3", node_id=7, now=LATER)

    assert _ids(sample_forest) == before


def test_create_under_unknown_parent_raises(sample_forest: Forest) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        create_node(sample_forest, 42, NodeKind.DOCUMENT, "Lost", node_id=7, now=LATER)
    assert exc_info.value.node_id == 42


def test_create_under_document_raises(sample_forest: Forest) -> None:
    with pytest.raises(ValueError, match="Cannot add children to document"):
        create_node(sample_forest, 3, NodeKind.DOCUMENT, "Nested", node_id=7, now=LATER)


def test_create_with_used_id_raises(sample_forest: Forest) -> None:
    with pytest.raises(ValueError, match="already in use"):
        create_node(sample_forest, None, NodeKind.CONTAINER, "Dup", node_id=3, now=LATER)


def test_delete_removes_subtree_only(sample_forest: Forest) -> None:
    forest = delete_node(sample_forest, 2)

    assert _ids(forest) == [1, 5, 6]
    assert find_node(forest, 5) == find_node(sample_forest, 5)
    assert forest[1] is sample_forest[1]


def test_delete_root_node(sample_forest: Forest) -> None:
    forest = delete_node(sample_forest, 1)

    assert _ids(forest) == [6]


def test_delete_nested_leaf_keeps_sibling_order(sample_forest: Forest) -> None:
    forest = delete_node(sample_forest, 3)

    manuscript = find_node(forest, 2)
    assert manuscript is not None
    assert [c.id for c in manuscript.children] == [4]
    assert manuscript.metadata == find_node(sample_forest, 2).metadata  # type: ignore[union-attr]


def test_delete_unknown_id_is_noop(sample_forest: Forest) -> None:
    assert delete_node(sample_forest, 99) is sample_forest


def test_rename_changes_only_name(sample_forest: Forest) -> None:
    forest = rename_node(sample_forest, 3, "X")

    renamed = find_node(forest, 3)
    original = find_node(sample_forest, 3)
    assert renamed is not None and original is not None
    assert renamed.name == "X"
    assert renamed.metadata == original.metadata
    assert renamed.content == original.content
    assert find_node(forest, 4) is find_node(sample_forest, 4)
    assert find_node(forest, 2).name == "Manuscript"  # type: ignore[union-attr]
    assert forest[1] is sample_forest[1]


def test_rename_unknown_id_is_noop(sample_forest: Forest) -> None:
    assert rename_node(sample_forest, 99, "X") is sample_forest


def test_update_content_derives_metadata(sample_forest: Forest) -> None:
    text = " ".join(["word"] * 500)
    payload = serialize(from_plain_text(text))

    forest = update_content(sample_forest, 3, payload, text, now=LATER)

    chapter = find_node(forest, 3)
    assert chapter is not None
    assert chapter.content == payload
    assert chapter.metadata.actual_word_count == 500
    assert chapter.metadata.estimated_reading_time == 2
    assert chapter.metadata.completion_percentage == 25.0
    assert chapter.metadata.last_modified == LATER
    assert chapter.metadata.creation_date == FIXED_NOW
    assert chapter.metadata.tags == ("chapter",)


def test_update_content_on_container_raises(sample_forest: Forest) -> None:
    with pytest.raises(ValueError, match="container"):
        update_content(sample_forest, 2, "{}", "text", now=LATER)


def test_update_content_unknown_id_is_noop(sample_forest: Forest) -> None:
    assert update_content(sample_forest, 99, "{}", "text", now=LATER) is sample_forest


def test_update_metadata_merges_present_fields(sample_forest: Forest) -> None:
    forest = update_metadata(
        sample_forest, 3, MetadataPatch(status=Status.COMPLETED, author="Jane"), now=LATER
    )

    meta = find_node(forest, 3).metadata  # type: ignore[union-attr]
    before = find_node(sample_forest, 3).metadata  # type: ignore[union-attr]
    assert meta.status is Status.COMPLETED
    assert meta.author == "Jane"
    assert meta.word_count_goal == before.word_count_goal
    assert meta.tags == before.tags
    assert meta.actual_word_count == before.actual_word_count
    assert meta.last_modified == LATER
    assert meta.creation_date == before.creation_date


def test_update_metadata_coerces_goal_and_normalizes_tags(sample_forest: Forest) -> None:
    patch = MetadataPatch(word_count_goal=float("nan"), tags=(" draft ", "", "draft", "act one"))  # type: ignore[arg-type]

    forest = update_metadata(sample_forest, 4, patch, now=LATER)

    meta = find_node(forest, 4).metadata  # type: ignore[union-attr]
    assert meta.word_count_goal == 0
    assert meta.tags == ("draft", "act one")


def test_update_metadata_leaves_derived_fields_unless_included(sample_forest: Forest) -> None:
    forest = update_metadata(sample_forest, 3, MetadataPatch(word_count_goal=10), now=LATER)
    meta = find_node(forest, 3).metadata  # type: ignore[union-attr]
    assert meta.completion_percentage == 0.0

    forest = update_metadata(
        forest, 3, MetadataPatch(actual_word_count=7, completion_percentage=70.0), now=LATER
    )
    meta = find_node(forest, 3).metadata  # type: ignore[union-attr]
    assert meta.actual_word_count == 7
    assert meta.completion_percentage == 70.0


def test_update_metadata_explicit_last_modified_wins(sample_forest: Forest) -> None:
    stamp = FIXED_NOW - timedelta(days=3)

    forest = update_metadata(sample_forest, 5, MetadataPatch(last_modified=stamp), now=LATER)

    assert find_node(forest, 5).metadata.last_modified == stamp  # type: ignore[union-attr]


def test_update_metadata_unknown_id_is_noop(sample_forest: Forest) -> None:
    patch = MetadataPatch(status=Status.COMPLETED)
    assert update_metadata(sample_forest, 99, patch, now=LATER) is sample_forest
