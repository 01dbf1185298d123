"""Drag-and-drop reordering within a single sibling list.

Each sibling list is one "level": the root list, or the children of one
container. A drag always starts and ends in the same level.
"""

import re
from dataclasses import dataclass, replace

from loguru import logger

from scrivener_tree.core.tree.operations import find_node, replace_node
from scrivener_tree.models.node import Forest, Node

ROOT_LEVEL_KEY = "root"
_NODE_LEVEL_PREFIX = "node-"
_NODE_ID_RE = re.compile(r"-?[0-9]+")


def level_key(parent_id: int | None) -> str:
    """Key identifying the sibling list owned by ``parent_id`` (root list for None)."""
    if parent_id is None:
        return ROOT_LEVEL_KEY
    return f"{_NODE_LEVEL_PREFIX}{parent_id}"


def parse_level_key(key: str) -> int | None:
    """Inverse of level_key().

    Raises:
        ValueError: the key is not one level_key() produces.
    """
    if key == ROOT_LEVEL_KEY:
        return None
    if key.startswith(_NODE_LEVEL_PREFIX):
        raw = key.removeprefix(_NODE_LEVEL_PREFIX)
        if _NODE_ID_RE.fullmatch(raw):
            return int(raw)
    msg = f"Malformed level key: {key!r}"
    raise ValueError(msg)


def _move_item(items: tuple[Node, ...], source_index: int, dest_index: int) -> tuple[Node, ...]:
    size = len(items)
    if not 0 <= source_index < size or not 0 <= dest_index < size:
        msg = f"Reorder indices ({source_index}, {dest_index}) out of range for {size} siblings"
        raise IndexError(msg)
    moved = list(items)
    item = moved.pop(source_index)
    moved.insert(dest_index, item)
    return tuple(moved)


def reorder_siblings(
    forest: Forest,
    parent_id: int | None,
    source_index: int,
    dest_index: int,
) -> Forest:
    """Move one element of a sibling list to a new position in the same list.

    Args:
        forest: Current forest.
        parent_id: Owner of the sibling list; None for the root list.
        source_index: Position of the element to move.
        dest_index: Position it ends up at.

    Returns:
        The new forest. Unknown parents and equal indices return ``forest``.

    Raises:
        IndexError: an index is outside [0, len(siblings)).
    """
    if parent_id is None:
        if source_index == dest_index and 0 <= source_index < len(forest):
            return forest
        return _move_item(forest, source_index, dest_index)

    parent = find_node(forest, parent_id)
    if parent is None:
        logger.warning("Reorder ignored: parent {} not found", parent_id)
        return forest
    if source_index == dest_index and 0 <= source_index < len(parent.children):
        return forest
    children = _move_item(parent.children, source_index, dest_index)
    return replace_node(forest, parent_id, lambda p: replace(p, children=children))


@dataclass(frozen=True)
class DragLocation:
    """One end of a drag: the level it belongs to and the index within it."""

    level_key: str
    index: int


@dataclass(frozen=True)
class DragResult:
    """What the drag surface reports when a drag ends."""

    source: DragLocation
    destination: DragLocation | None = None


class ReorderController:
    """Translate drag results into sibling-list permutations."""

    def on_reorder(
        self,
        forest: Forest,
        key: str,
        source_index: int,
        dest_index: int,
    ) -> Forest:
        return reorder_siblings(forest, parse_level_key(key), source_index, dest_index)

    def on_drag_end(self, forest: Forest, result: DragResult) -> Forest:
        """Apply a finished drag.

        A drag without destination (dropped outside any list) changes nothing.

        Raises:
            ValueError: the destination is in a different level than the source.
        """
        if result.destination is None:
            logger.debug("Drag from {} cancelled", result.source.level_key)
            return forest
        if result.destination.level_key != result.source.level_key:
            msg = (
                f"Cross-level move from {result.source.level_key!r} "
                f"to {result.destination.level_key!r} is not supported"
            )
            raise ValueError(msg)
        return self.on_reorder(
            forest, result.source.level_key, result.source.index, result.destination.index
        )
