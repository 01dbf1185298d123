"""CLI for scrivener-tree (outline, edit, import/export, MCP server)."""

import json
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from scrivener_tree.config import DB_FILENAME, EXPORT_FILENAME, resolve_data_directory
from scrivener_tree.core.persistence.adapter import PersistenceAdapter, SqliteSnapshotSlot
from scrivener_tree.core.snapshot.codec import forest_to_data
from scrivener_tree.core.tree.markdown import render_document_text, render_subtree_as_markdown
from scrivener_tree.core.tree.store import TreeStore
from scrivener_tree.errors import ScrivenerError
from scrivener_tree.logging_config import configure_logging
from scrivener_tree.models.node import MetadataPatch, NodeKind, Status
from scrivener_tree.writer import FileWriter, safe_basename

app = typer.Typer(help="scrivener-tree: organise a writing project into containers and documents.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory holding the project database"),
]

DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", help="Report what would be written without writing"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


@contextmanager
def _open_store(data_dir: Path | None) -> Iterator[TreeStore]:
    """Open the project database and load the forest."""
    dst = data_dir or resolve_data_directory()
    slot = SqliteSnapshotSlot.open(dst / DB_FILENAME)
    try:
        store = TreeStore(PersistenceAdapter(slot))
        store.load()
        yield store
    finally:
        slot.close()


def _fail(message: str) -> typer.Exit:
    logger.error(message)
    return typer.Exit(1)


def _check_saved(store: TreeStore) -> None:
    if store.unsaved:
        raise _fail("Changes could not be saved.")


def _require_node(store: TreeStore, node_id: int) -> None:
    if store.get(node_id) is None:
        raise _fail(f"Node {node_id} not found.")


@app.command()
def tree(
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max depth levels to render"),
    ] = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    data_dir: DataDirOption = None,
) -> None:
    """Show the whole project outline."""
    with _open_store(data_dir) as store:
        if output_json:
            typer.echo(json.dumps(forest_to_data(store.forest), indent=2))
        elif not store.forest:
            typer.echo("No projects yet. Create one with 'add'.")
        else:
            typer.echo(render_subtree_as_markdown(store.forest, max_depth=max_depth), nl=False)


@app.command()
def add(
    name: str = typer.Argument(..., help="Name of the new node"),
    parent: Annotated[
        int | None,
        typer.Option("--parent", "-p", help="Container to add to (default: top level)"),
    ] = None,
    document: bool = typer.Option(False, "--doc", help="Create a document instead of a container"),
    data_dir: DataDirOption = None,
) -> None:
    """Create a container or document."""
    kind = NodeKind.DOCUMENT if document else NodeKind.CONTAINER
    with _open_store(data_dir) as store:
        try:
            node = store.create(parent, kind, name)
        except (ScrivenerError, ValueError) as e:
            raise _fail(str(e)) from e
        _check_saved(store)
        typer.echo(f"Created {kind.value} {name!r} [id={node.id}]")


@app.command()
def rm(
    node_id: int = typer.Argument(..., help="Node ID to delete (with its subtree)"),
    data_dir: DataDirOption = None,
) -> None:
    """Delete a node and everything below it."""
    with _open_store(data_dir) as store:
        _require_node(store, node_id)
        store.delete(node_id)
        _check_saved(store)
        typer.echo(f"Deleted {node_id}")


@app.command()
def rename(
    node_id: int = typer.Argument(..., help="Node ID"),
    name: str = typer.Argument(..., help="New name"),
    data_dir: DataDirOption = None,
) -> None:
    """Rename a node."""
    with _open_store(data_dir) as store:
        _require_node(store, node_id)
        store.rename(node_id, name)
        _check_saved(store)
        typer.echo(f"Renamed {node_id} to {name!r}")


@app.command()
def write(
    node_id: int = typer.Argument(..., help="Document ID"),
    source: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Read text from this file (default: stdin)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Replace a document's text and update its progress metadata."""
    text = source.read_text(encoding="utf-8") if source else sys.stdin.read()
    with _open_store(data_dir) as store:
        _require_node(store, node_id)
        try:
            store.save_text(node_id, text.rstrip("\n"))
        except ValueError as e:
            raise _fail(str(e)) from e
        _check_saved(store)
        node = store.get(node_id)
        assert node is not None
        meta = node.metadata
        typer.echo(
            f"Saved {node.name!r}: {meta.actual_word_count} words, "
            f"{meta.completion_percentage:.2f}% of goal, "
            f"~{meta.estimated_reading_time} min read"
        )


@app.command()
def meta(
    node_id: int = typer.Argument(..., help="Node ID"),
    status: Annotated[
        Status | None,
        typer.Option("--status", "-s", help="Writing status"),
    ] = None,
    goal: Annotated[int | None, typer.Option("--goal", "-g", help="Word count goal")] = None,
    tags: Annotated[
        str | None,
        typer.Option("--tags", "-t", help="Comma-separated tags (replaces existing)"),
    ] = None,
    author: Annotated[str | None, typer.Option("--author", help="Author")] = None,
    version: Annotated[str | None, typer.Option("--version", help="Version label")] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Update a node's metadata; omitted options are left unchanged."""
    patch = MetadataPatch(
        status=status,
        word_count_goal=goal,
        tags=tuple(tags.split(",")) if tags is not None else None,
        author=author,
        version=version,
    )
    if patch.is_empty():
        raise _fail("No fields to update.")
    with _open_store(data_dir) as store:
        _require_node(store, node_id)
        store.update_metadata(node_id, patch)
        _check_saved(store)
        typer.echo(f"Updated metadata of {node_id}")


@app.command()
def move(
    source_index: int = typer.Argument(..., help="Current position among siblings"),
    dest_index: int = typer.Argument(..., help="New position among siblings"),
    parent: Annotated[
        int | None,
        typer.Option("--parent", "-p", help="Container whose children to reorder (default: top level)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Reorder nodes within one sibling list."""
    with _open_store(data_dir) as store:
        if parent is not None:
            _require_node(store, parent)
            node = store.get(parent)
            assert node is not None
            size = len(node.children)
        else:
            size = len(store.forest)
        if not (0 <= source_index < size and 0 <= dest_index < size):
            raise _fail(f"Indices must be between 0 and {size - 1}.")
        try:
            store.move(parent, source_index, dest_index)
        except (ValueError, IndexError) as e:
            raise _fail(str(e)) from e
        _check_saved(store)
        typer.echo(f"Moved position {source_index} to {dest_index}")


@app.command()
def read(
    node_id: int = typer.Argument(..., help="Node ID to read"),
    max_depth: Annotated[
        int | None,
        typer.Option("--max-depth", "-m", help="Max depth levels to render"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Print a document's text, or a container's outline."""
    with _open_store(data_dir) as store:
        node = store.get(node_id)
        if node is None:
            raise _fail(f"Node {node_id} not found.")
        if node.is_document:
            typer.echo(render_document_text(node), nl=False)
        else:
            typer.echo(render_subtree_as_markdown(store.forest, node_id, max_depth=max_depth), nl=False)


@app.command(name="export")
def export_cmd(
    out_dir: Annotated[
        Path,
        typer.Option("--out-dir", "-o", help="Directory to write the export file to"),
    ] = Path("."),
    filename: str = typer.Option(EXPORT_FILENAME, "--name", "-n", help="Export file name"),
    dry_run: DryRunOption = False,
    data_dir: DataDirOption = None,
) -> None:
    """Export all projects to a JSON file."""
    with _open_store(data_dir) as store:
        try:
            writer = FileWriter(out_dir, dry_run=dry_run)
            path = writer.make_data_file(filename, contents=store.export_text())
        except ValueError as e:
            raise _fail(str(e)) from e
        typer.echo(f"Exported {len(store.forest)} projects to {path} ({writer.summary()})")


@app.command(name="import")
def import_cmd(
    source: Path = typer.Argument(..., help="JSON file produced by 'export'"),
    data_dir: DataDirOption = None,
) -> None:
    """Replace all projects with the contents of an export file."""
    try:
        text = source.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise _fail(f"Cannot read {source}: {e}") from e
    with _open_store(data_dir) as store:
        try:
            store.import_text(text)
        except ScrivenerError as e:
            raise _fail(f"Import failed, nothing changed: {e}") from e
        _check_saved(store)
        typer.echo(f"Imported {len(store.forest)} projects from {source}")


@app.command(name="export-doc")
def export_doc(
    node_ids: list[int] = typer.Argument(..., help="Document IDs to export"),
    out_dir: Annotated[
        Path,
        typer.Option("--out-dir", "-o", help="Directory to write text files to"),
    ] = Path("."),
    dry_run: DryRunOption = False,
    data_dir: DataDirOption = None,
) -> None:
    """Export documents as plain-text files named after them."""
    with _open_store(data_dir) as store:
        try:
            writer = FileWriter(out_dir, dry_run=dry_run)
        except ValueError as e:
            raise _fail(str(e)) from e
        for node_id in node_ids:
            node = store.get(node_id)
            if node is None or not node.is_document:
                raise _fail(f"Document {node_id} not found.")
            fname = writer.make_unique_name(safe_basename(node.name), suffix=".txt")
            path = writer.make_data_file(fname, contents=render_document_text(node))
            typer.echo(f"{'Would write' if dry_run else 'Wrote'} {path}")
        typer.echo(writer.summary())


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    data_dir: DataDirOption = None,
) -> None:
    """Erase all projects."""
    if not yes:
        typer.confirm("Delete all projects?", abort=True)
    with _open_store(data_dir) as store:
        try:
            store.clear()
        except ScrivenerError as e:
            raise _fail(str(e)) from e
        typer.echo("All projects cleared.")


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from scrivener_tree.mcp.server import run_mcp_server

    run_mcp_server()
