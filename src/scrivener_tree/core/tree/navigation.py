"""Tree navigation: breadcrumbs, siblings, children."""

from scrivener_tree.models.node import Breadcrumb, Forest, Node, NodeContext


def _path_to(forest: Forest, node_id: int) -> tuple[Node, ...] | None:
    """Nodes from a root down to and including ``node_id``, or None if absent."""
    for node in forest:
        if node.id == node_id:
            return (node,)
        below = _path_to(node.children, node_id)
        if below is not None:
            return (node, *below)
    return None


def get_breadcrumbs(forest: Forest, node_id: int) -> tuple[Breadcrumb, ...]:
    """Get ancestor breadcrumbs for a node.

    Returns breadcrumbs in order from root to immediate parent (excludes the node itself).
    """
    path = _path_to(forest, node_id)
    if not path:
        return ()
    return tuple(
        Breadcrumb(node_id=n.id, name=n.name, depth=depth) for depth, n in enumerate(path[:-1])
    )


def node_depth(forest: Forest, node_id: int) -> int | None:
    """Depth of a node (0 for roots), None if absent."""
    path = _path_to(forest, node_id)
    return len(path) - 1 if path else None


def sibling_list(forest: Forest, node_id: int) -> tuple[Node, ...]:
    """The sibling list that contains ``node_id`` (empty if absent)."""
    path = _path_to(forest, node_id)
    if not path:
        return ()
    return forest if len(path) == 1 else path[-2].children


def get_siblings(
    forest: Forest,
    node_id: int,
    *,
    count: int = 3,
) -> tuple[tuple[Node, ...], tuple[Node, ...]]:
    """Get siblings before and after a node.

    Returns (siblings_before, siblings_after) tuples.
    """
    siblings = sibling_list(forest, node_id)
    for index, node in enumerate(siblings):
        if node.id == node_id:
            return siblings[max(index - count, 0) : index], siblings[index + 1 : index + 1 + count]
    return (), ()


def get_children(forest: Forest, node_id: int, *, limit: int = 50) -> tuple[Node, ...]:
    """Get direct children of a node, in sibling order."""
    path = _path_to(forest, node_id)
    if not path:
        return ()
    return path[-1].children[:limit]


def get_node_context(forest: Forest, node_id: int, *, sibling_count: int = 3) -> NodeContext | None:
    path = _path_to(forest, node_id)
    if not path:
        return None
    before, after = get_siblings(forest, node_id, count=sibling_count)
    return NodeContext(
        node=path[-1],
        breadcrumbs=get_breadcrumbs(forest, node_id),
        siblings_before=before,
        siblings_after=after,
    )
