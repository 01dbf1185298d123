"""MCP server exposing the writing-project tree as tools."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from scrivener_tree.config import DB_FILENAME, LOG_FILENAME, resolve_data_directory
from scrivener_tree.core.content.draft import plain_text_of
from scrivener_tree.core.persistence.adapter import PersistenceAdapter, SqliteSnapshotSlot
from scrivener_tree.core.snapshot.codec import format_timestamp, node_to_dict
from scrivener_tree.core.tree.markdown import render_subtree_as_markdown
from scrivener_tree.core.tree.navigation import (
    get_breadcrumbs,
    get_children,
    get_node_context,
    node_depth,
)
from scrivener_tree.core.tree.operations import find_parent_id
from scrivener_tree.core.tree.store import TreeStore
from scrivener_tree.errors import ScrivenerError
from scrivener_tree.logging_config import configure_logging
from scrivener_tree.models.node import MetadataPatch, Node, NodeKind, Status


def _breadcrumbs_str(store: TreeStore, node_id: int) -> str:
    crumbs = get_breadcrumbs(store.forest, node_id)
    return " > ".join(c.name[:40] for c in crumbs) if crumbs else ""


def _not_found(node_id: int) -> dict[str, Any]:
    return {"error": f"Node '{node_id}' not found."}


def _node_summary(node: Node) -> dict[str, Any]:
    meta = node.metadata
    return {
        "id": node.id,
        "name": node.name,
        "kind": node.kind.value,
        "status": meta.status.value,
        "word_count": meta.actual_word_count,
        "word_count_goal": meta.word_count_goal,
        "completion_percentage": round(meta.completion_percentage, 2),
        "last_modified": format_timestamp(meta.last_modified),
        "child_count": len(node.children),
    }


# --- Core functions (testable without MCP context) ---


def scrivener_list_tree(
    store: TreeStore,
    *,
    max_depth: int | None = None,
    output_format: str = "markdown",
) -> dict[str, Any]:
    """List the whole forest as a markdown outline or structured JSON.

    Args:
        max_depth: Max depth levels to include (None = unlimited).
        output_format: "markdown" or "json".
    """
    if output_format == "markdown":
        return {
            "content": render_subtree_as_markdown(store.forest, max_depth=max_depth),
            "root_count": len(store.forest),
        }

    def _build(nodes: tuple[Node, ...], remaining_depth: int | None) -> list[dict[str, Any]]:
        result = []
        for node in nodes:
            entry = _node_summary(node)
            if remaining_depth is None or remaining_depth > 0:
                next_depth = None if remaining_depth is None else remaining_depth - 1
                entry["children"] = _build(node.children, next_depth)
            result.append(entry)
        return result

    return {"nodes": _build(store.forest, max_depth), "root_count": len(store.forest)}


def scrivener_read_node(
    store: TreeStore,
    *,
    node_id: int,
    max_depth: int | None = None,
    output_format: str = "markdown",
) -> dict[str, Any]:
    """Read a node: a document's text, or a container's subtree.

    Args:
        node_id: Node ID to read.
        max_depth: Max depth levels to include for containers (None = unlimited).
        output_format: "markdown" or "json".
    """
    node = store.get(node_id)
    if node is None:
        return _not_found(node_id)

    result: dict[str, Any] = {
        "node_id": node_id,
        "breadcrumbs": _breadcrumbs_str(store, node_id),
        "depth": node_depth(store.forest, node_id),
    }
    if node.is_document:
        result["text"] = plain_text_of(node.content)
    if output_format == "markdown":
        result["content"] = render_subtree_as_markdown(store.forest, node_id, max_depth=max_depth)
    else:
        result["node"] = node_to_dict(node)
    return result


def scrivener_get_node_context(
    store: TreeStore,
    *,
    node_id: int,
    sibling_count: int = 3,
) -> dict[str, Any]:
    """Get a node with breadcrumbs, siblings, and children."""
    context = get_node_context(store.forest, node_id, sibling_count=sibling_count)
    if context is None:
        return _not_found(node_id)
    return {
        "node": _node_summary(context.node),
        "parent_id": find_parent_id(store.forest, node_id),
        "breadcrumbs": _breadcrumbs_str(store, node_id),
        "siblings_before": [{"id": s.id, "name": s.name} for s in context.siblings_before],
        "siblings_after": [{"id": s.id, "name": s.name} for s in context.siblings_after],
        "children": [_node_summary(c) for c in get_children(store.forest, node_id)],
    }


# --- Write core functions ---


def scrivener_create_node(
    store: TreeStore,
    *,
    name: str,
    kind: str = "document",
    parent_id: int | None = None,
) -> dict[str, Any]:
    """Create a container or document under parent_id (or at the root)."""
    try:
        node_kind = NodeKind(kind)
    except ValueError:
        return {"error": f"Unknown kind '{kind}'. Expected 'container' or 'document'."}
    try:
        node = store.create(parent_id, node_kind, name)
    except (ScrivenerError, ValueError) as e:
        return {"error": str(e)}
    return {"success": True, "node_id": node.id, "saved": not store.unsaved}


def scrivener_rename_node(store: TreeStore, *, node_id: int, name: str) -> dict[str, Any]:
    if store.get(node_id) is None:
        return _not_found(node_id)
    store.rename(node_id, name)
    return {"success": True, "node_id": node_id, "saved": not store.unsaved}


def scrivener_write_content(store: TreeStore, *, node_id: int, text: str) -> dict[str, Any]:
    """Replace a document's text and return the re-derived progress."""
    node = store.get(node_id)
    if node is None:
        return _not_found(node_id)
    if not node.is_document:
        return {"error": f"Node '{node_id}' is a container and has no content."}
    store.save_text(node_id, text)
    updated = store.get(node_id)
    assert updated is not None
    return {"success": True, "saved": not store.unsaved, **_node_summary(updated)}


def scrivener_update_metadata(
    store: TreeStore,
    *,
    node_id: int,
    status: str | None = None,
    word_count_goal: int | None = None,
    tags: list[str] | None = None,
    author: str | None = None,
    version: str | None = None,
) -> dict[str, Any]:
    """Update user-editable metadata fields; omitted fields are left alone."""
    if store.get(node_id) is None:
        return _not_found(node_id)
    try:
        status_value = Status(status) if status is not None else None
    except ValueError:
        choices = ", ".join(s.value for s in Status)
        return {"error": f"Unknown status '{status}'. Expected one of: {choices}."}
    patch = MetadataPatch(
        status=status_value,
        word_count_goal=word_count_goal,
        tags=tuple(tags) if tags is not None else None,
        author=author,
        version=version,
    )
    if patch.is_empty():
        return {"success": False, "error": "No fields to update."}
    store.update_metadata(node_id, patch)
    updated = store.get(node_id)
    assert updated is not None
    return {"success": True, "saved": not store.unsaved, **_node_summary(updated)}


def scrivener_move_node(
    store: TreeStore,
    *,
    source_index: int,
    dest_index: int,
    parent_id: int | None = None,
) -> dict[str, Any]:
    """Reorder a node within its sibling list (root list when parent_id is None)."""
    if parent_id is not None:
        parent = store.get(parent_id)
        if parent is None:
            return _not_found(parent_id)
        size = len(parent.children)
    else:
        size = len(store.forest)
    if not (0 <= source_index < size and 0 <= dest_index < size):
        return {"error": f"Indices must be between 0 and {size - 1}."}
    store.move(parent_id, source_index, dest_index)
    return {"success": True, "saved": not store.unsaved}


def scrivener_delete_node(store: TreeStore, *, node_id: int) -> dict[str, Any]:
    """Delete a node together with its whole subtree."""
    if store.get(node_id) is None:
        return _not_found(node_id)
    store.delete(node_id)
    return {"success": True, "node_id": node_id, "saved": not store.unsaved}


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    store: TreeStore
    slot: SqliteSnapshotSlot
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open the snapshot database on startup, close on shutdown."""
    db_path = resolve_data_directory() / DB_FILENAME
    slot = SqliteSnapshotSlot.open(db_path)
    store = TreeStore(PersistenceAdapter(slot))
    try:
        store.load()
        logger.info("Loaded {} root nodes from {}", len(store.forest), db_path)
        yield ServerContext(store=store, slot=slot)
    finally:
        slot.close()


mcp_server = FastMCP(
    "scrivener-tree",
    instructions="""\
The writing project is a tree of containers (folders, projects, parts) and
documents (chapters, scenes). Every node has an integer id.

1. Call scrivener_list_tree_tool to see the outline and find node ids.
2. Call scrivener_read_node_tool on a document to read its text.
3. Word count, completion percentage and reading time are derived from the
   text on every write; set a word_count_goal to track progress.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def scrivener_list_tree_tool(
    ctx: Context,
    max_depth: int | None = None,
    output_format: str = "markdown",
) -> dict[str, Any]:
    """List the writing project as an outline.

    Args:
        max_depth: Max depth levels (None = unlimited).
        output_format: "markdown" (human-readable) or "json" (structured).
    """
    async with _ctx(ctx).lock:
        return scrivener_list_tree(_ctx(ctx).store, max_depth=max_depth, output_format=output_format)


@mcp_server.tool()
async def scrivener_read_node_tool(
    ctx: Context,
    node_id: int,
    max_depth: int | None = None,
    output_format: str = "markdown",
) -> dict[str, Any]:
    """Read a document's text or a container's subtree.

    Args:
        node_id: Node ID to read.
        max_depth: Max depth levels for containers (None = unlimited).
        output_format: "markdown" or "json".
    """
    async with _ctx(ctx).lock:
        return scrivener_read_node(
            _ctx(ctx).store, node_id=node_id, max_depth=max_depth, output_format=output_format
        )


@mcp_server.tool()
async def scrivener_get_node_context_tool(
    ctx: Context,
    node_id: int,
    sibling_count: int = 3,
) -> dict[str, Any]:
    """Get a node with its ancestors, neighbouring siblings and children."""
    async with _ctx(ctx).lock:
        return scrivener_get_node_context(
            _ctx(ctx).store, node_id=node_id, sibling_count=sibling_count
        )


@mcp_server.tool()
async def scrivener_create_node_tool(
    ctx: Context,
    name: str,
    kind: str = "document",
    parent_id: int | None = None,
) -> dict[str, Any]:
    """Create a node.

    Args:
        name: Display name.
        kind: "container" or "document".
        parent_id: Container to add to (None = top level).
    """
    async with _ctx(ctx).lock:
        return scrivener_create_node(_ctx(ctx).store, name=name, kind=kind, parent_id=parent_id)


@mcp_server.tool()
async def scrivener_rename_node_tool(ctx: Context, node_id: int, name: str) -> dict[str, Any]:
    """Rename a node."""
    async with _ctx(ctx).lock:
        return scrivener_rename_node(_ctx(ctx).store, node_id=node_id, name=name)


@mcp_server.tool()
async def scrivener_write_content_tool(ctx: Context, node_id: int, text: str) -> dict[str, Any]:
    """Replace a document's text. Progress metadata is recomputed.

    Args:
        node_id: Document ID.
        text: Full new text (lines become paragraphs).
    """
    async with _ctx(ctx).lock:
        return scrivener_write_content(_ctx(ctx).store, node_id=node_id, text=text)


@mcp_server.tool()
async def scrivener_update_metadata_tool(
    ctx: Context,
    node_id: int,
    status: str | None = None,
    word_count_goal: int | None = None,
    tags: list[str] | None = None,
    author: str | None = None,
    version: str | None = None,
) -> dict[str, Any]:
    """Update a node's status, goal, tags, author or version.

    Args:
        node_id: Node ID.
        status: "Not Started", "In Progress" or "Completed".
        word_count_goal: Target word count.
        tags: Replacement tag list.
        author: Author name.
        version: Version label.
    """
    async with _ctx(ctx).lock:
        return scrivener_update_metadata(
            _ctx(ctx).store,
            node_id=node_id,
            status=status,
            word_count_goal=word_count_goal,
            tags=tags,
            author=author,
            version=version,
        )


@mcp_server.tool()
async def scrivener_move_node_tool(
    ctx: Context,
    source_index: int,
    dest_index: int,
    parent_id: int | None = None,
) -> dict[str, Any]:
    """Move a node to another position among its siblings.

    Args:
        source_index: Current position in the sibling list.
        dest_index: New position in the same list.
        parent_id: Owner of the sibling list (None = top level).
    """
    async with _ctx(ctx).lock:
        return scrivener_move_node(
            _ctx(ctx).store, source_index=source_index, dest_index=dest_index, parent_id=parent_id
        )


@mcp_server.tool()
async def scrivener_delete_node_tool(ctx: Context, node_id: int) -> dict[str, Any]:
    """Delete a node and everything below it."""
    async with _ctx(ctx).lock:
        return scrivener_delete_node(_ctx(ctx).store, node_id=node_id)


def run_mcp_server() -> None:
    """Run the MCP server on stdio, logging to stderr and the data directory."""
    configure_logging(verbose=False, log_file=resolve_data_directory() / LOG_FILENAME)
    mcp_server.run(transport="stdio")
