"""Pure forest operations: every function returns a new forest, never mutates.

Updated nodes are rebuilt along the path from the root; untouched subtrees
are shared with the input forest. When the target id is absent the input
forest object itself is returned.
"""

from collections.abc import Callable, Iterator
from dataclasses import fields, replace
from datetime import datetime

from scrivener_tree.core.metadata.engine import coerce_goal, default_metadata, derive_on_save
from scrivener_tree.errors import NotFoundError
from scrivener_tree.models.node import Forest, Metadata, MetadataPatch, Node, NodeKind


def iter_nodes(forest: Forest) -> Iterator[Node]:
    """Yield every node, depth-first, in sibling order."""
    for node in forest:
        yield node
        yield from iter_nodes(node.children)


def find_node(forest: Forest, node_id: int) -> Node | None:
    for node in iter_nodes(forest):
        if node.id == node_id:
            return node
    return None


def find_parent_id(forest: Forest, node_id: int) -> int | None:
    """Return the id of the node's parent, or None for root-level (or unknown) nodes."""
    for node in iter_nodes(forest):
        if any(child.id == node_id for child in node.children):
            return node.id
    return None


def max_node_id(forest: Forest) -> int:
    """Highest id in the forest, 0 for an empty forest."""
    return max((node.id for node in iter_nodes(forest)), default=0)


def replace_node(forest: Forest, node_id: int, update: Callable[[Node], Node]) -> Forest:
    """Replace the node with ``node_id`` by ``update(node)``, else recurse into children."""
    changed = False
    result: list[Node] = []
    for node in forest:
        if node.id == node_id:
            new_node = update(node)
        elif node.children:
            new_children = replace_node(node.children, node_id, update)
            new_node = node if new_children is node.children else replace(node, children=new_children)
        else:
            new_node = node
        changed = changed or new_node is not node
        result.append(new_node)
    return tuple(result) if changed else forest


def create_node(
    forest: Forest,
    parent_id: int | None,
    kind: NodeKind,
    name: str,
    *,
    node_id: int,
    now: datetime,
) -> Forest:
    """Append a fresh node to the parent's children, or to the root list.

    Raises:
        NotFoundError: parent_id is given but not in the forest.
        ValueError: the parent is a document, or node_id is already used.
    """
    if find_node(forest, node_id) is not None:
        msg = f"Node id {node_id} is already in use"
        raise ValueError(msg)

    new_node = Node(
        id=node_id,
        name=name,
        kind=kind,
        metadata=default_metadata(now),
        content="" if kind is NodeKind.DOCUMENT else None,
    )
    if parent_id is None:
        return (*forest, new_node)

    parent = find_node(forest, parent_id)
    if parent is None:
        raise NotFoundError(parent_id)
    if parent.is_document:
        msg = f"Cannot add children to document {parent_id}"
        raise ValueError(msg)
    return replace_node(
        forest, parent_id, lambda p: replace(p, children=(*p.children, new_node))
    )


def delete_node(forest: Forest, node_id: int) -> Forest:
    """Remove the node and its whole subtree. Unknown ids are a no-op."""
    changed = False
    result: list[Node] = []
    for node in forest:
        if node.id == node_id:
            changed = True
            continue
        if node.children:
            new_children = delete_node(node.children, node_id)
            if new_children is not node.children:
                node = replace(node, children=new_children)
                changed = True
        result.append(node)
    return tuple(result) if changed else forest


def rename_node(forest: Forest, node_id: int, name: str) -> Forest:
    """Change only the name; last_modified is left alone."""
    return replace_node(forest, node_id, lambda n: replace(n, name=name))


def update_content(
    forest: Forest,
    node_id: int,
    content: str,
    plain_text: str,
    *,
    now: datetime,
) -> Forest:
    """Store new content on a document and re-derive its metadata.

    Raises:
        ValueError: the node is a container.
    """

    def _apply(node: Node) -> Node:
        if not node.is_document:
            msg = f"Node {node.id} is a container and has no content"
            raise ValueError(msg)
        return replace(
            node,
            content=content,
            metadata=derive_on_save(node.metadata, plain_text, now=now),
        )

    return replace_node(forest, node_id, _apply)


def merge_metadata(base: Metadata, patch: MetadataPatch, *, now: datetime) -> Metadata:
    """Overlay the fields present in ``patch`` onto ``base``.

    last_modified becomes ``now`` unless the patch sets it explicitly.
    """
    changes = {
        f.name: getattr(patch, f.name)
        for f in fields(patch)
        if getattr(patch, f.name) is not None
    }
    if "word_count_goal" in changes:
        changes["word_count_goal"] = coerce_goal(changes["word_count_goal"])
    if "tags" in changes:
        changes["tags"] = normalize_tags(changes["tags"])
    changes.setdefault("last_modified", now)
    return replace(base, **changes)


def update_metadata(
    forest: Forest,
    node_id: int,
    patch: MetadataPatch,
    *,
    now: datetime,
) -> Forest:
    return replace_node(
        forest,
        node_id,
        lambda n: replace(n, metadata=merge_metadata(n.metadata, patch, now=now)),
    )


def normalize_tags(tags: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """Trim tags, drop blanks and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        cleaned = tag.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)
