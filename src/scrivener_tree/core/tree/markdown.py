"""Render node subtrees as markdown and documents as plain text."""

import io

from scrivener_tree.core.content.draft import plain_text_of
from scrivener_tree.core.tree.operations import find_node
from scrivener_tree.models.node import Forest, Node


def _summary(node: Node) -> str:
    meta = node.metadata
    if node.is_document:
        goal = f"/{meta.word_count_goal}" if meta.word_count_goal else ""
        return f"{meta.status.value}, {meta.actual_word_count}{goal} words"
    return meta.status.value


def render_subtree_as_markdown(
    forest: Forest,
    node_id: int | None = None,
    *,
    max_depth: int | None = None,
    include_metadata: bool = True,
) -> str:
    """Render a node (or the whole forest) and its descendants as indented markdown.

    Args:
        forest: Forest to render from.
        node_id: The root node to start rendering from (None = every root).
        max_depth: Max levels below the start node to include (None = unlimited).
        include_metadata: Whether to append status and word counts.

    Returns:
        Markdown string with bullet-list hierarchy, or "" if node_id is unknown.
    """
    if node_id is None:
        roots = forest
    else:
        start = find_node(forest, node_id)
        if start is None:
            return ""
        roots = (start,)

    out = io.StringIO()

    def _write(node: Node, depth: int) -> None:
        indent = "    " * depth
        marker = "- " if node.is_document else "- **"
        name = node.name if node.is_document else f"{node.name}**"
        line = f"{indent}{marker}{name}"
        if include_metadata:
            line += f" ({_summary(node)})"
        out.write(line + "\n")
        if include_metadata and node.metadata.tags:
            out.write(f"{indent}  > tags: {', '.join(node.metadata.tags)}\n")

        if not node.children:
            return
        # Truncation indicator when children are cut off by max_depth
        if max_depth is not None and depth >= max_depth:
            count = len(node.children)
            noun = "child" if count == 1 else "children"
            out.write(f"{indent}    - ... ({count} more {noun}, id={node.id})\n")
            return
        for child in node.children:
            _write(child, depth + 1)

    for root in roots:
        _write(root, 0)
    return out.getvalue()


def render_document_text(node: Node) -> str:
    """Name heading followed by the document's plain text, for file export."""
    body = plain_text_of(node.content) if node.is_document else ""
    return f"{node.name}\n\n{body}\n" if body else f"{node.name}\n"
