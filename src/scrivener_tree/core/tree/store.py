"""The owned store holding the current forest.

TreeStore is the only writer of the canonical forest. Each mutation runs a
pure operation from ``operations`` / ``reorder``, swaps in the resulting
forest and immediately writes a snapshot through the PersistenceAdapter.
"""

from collections.abc import Callable
from datetime import datetime

from loguru import logger

from scrivener_tree.core.content import draft
from scrivener_tree.core.persistence.adapter import PersistenceAdapter
from scrivener_tree.core.snapshot.codec import export_forest, import_forest
from scrivener_tree.core.tree import operations
from scrivener_tree.core.tree.reorder import DragResult, ReorderController, level_key
from scrivener_tree.errors import PersistenceError
from scrivener_tree.models.node import Forest, MetadataPatch, Node, NodeKind, utc_now


class TreeStore:
    """Current forest plus its load/save lifecycle."""

    def __init__(
        self,
        persistence: PersistenceAdapter,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.persistence = persistence
        self.clock = clock
        self.reorder = ReorderController()
        self._forest: Forest = ()
        # Highest id ever issued or seen; new ids are always above it.
        self._last_id = 0
        # True when the in-memory forest is newer than the durable snapshot.
        self.unsaved = False

    @property
    def forest(self) -> Forest:
        return self._forest

    def get(self, node_id: int) -> Node | None:
        return operations.find_node(self._forest, node_id)

    # --- Lifecycle ---

    def load(self) -> Forest:
        """Replace the in-memory forest with the stored snapshot (empty if none)."""
        self._forest = self.persistence.load()
        self._last_id = max(self._last_id, operations.max_node_id(self._forest))
        self.unsaved = False
        return self._forest

    def save(self) -> None:
        """Write the current forest explicitly.

        Raises:
            PersistenceError: the snapshot could not be written.
        """
        self.persistence.save(self._forest)
        self.unsaved = False

    def clear(self) -> None:
        """Erase the stored snapshot and empty the in-memory forest."""
        self.persistence.clear()
        self._forest = ()
        self.unsaved = False

    def _commit(self, forest: Forest) -> Forest:
        if forest is self._forest:
            return forest
        self._forest = forest
        try:
            self.persistence.save(forest)
        except PersistenceError as e:
            self.unsaved = True
            logger.error("Auto-save failed, changes are kept in memory only: {}", e)
        else:
            self.unsaved = False
        return forest

    def _allocate_id(self, now: datetime) -> int:
        node_id = max(int(now.timestamp() * 1000), self._last_id + 1)
        self._last_id = node_id
        return node_id

    # --- Mutations ---

    def create(self, parent_id: int | None, kind: NodeKind, name: str) -> Node:
        """Create a node and return it.

        Raises:
            NotFoundError: parent_id is not in the forest.
            ValueError: the parent is a document.
        """
        now = self.clock()
        node_id = self._allocate_id(now)
        forest = operations.create_node(
            self._forest, parent_id, kind, name, node_id=node_id, now=now
        )
        self._commit(forest)
        logger.debug("Created {} {} {!r} under {}", kind.value, node_id, name, parent_id)
        node = operations.find_node(forest, node_id)
        assert node is not None
        return node

    def delete(self, node_id: int) -> Forest:
        forest = operations.delete_node(self._forest, node_id)
        if forest is self._forest:
            logger.debug("Delete ignored: node {} not found", node_id)
        return self._commit(forest)

    def rename(self, node_id: int, name: str) -> Forest:
        return self._commit(operations.rename_node(self._forest, node_id, name))

    def update_content(self, node_id: int, content: str, plain_text: str) -> Forest:
        return self._commit(
            operations.update_content(
                self._forest, node_id, content, plain_text, now=self.clock()
            )
        )

    def save_text(self, node_id: int, text: str) -> Forest:
        """Store plain text as the document's rich-text content."""
        raw = draft.from_plain_text(text)
        return self.update_content(node_id, draft.serialize(raw), draft.to_plain_text(raw))

    def update_metadata(self, node_id: int, patch: MetadataPatch) -> Forest:
        return self._commit(
            operations.update_metadata(self._forest, node_id, patch, now=self.clock())
        )

    def move(self, parent_id: int | None, source_index: int, dest_index: int) -> Forest:
        """Reorder within one sibling list (root list when parent_id is None)."""
        return self._commit(
            self.reorder.on_reorder(self._forest, level_key(parent_id), source_index, dest_index)
        )

    def on_drag_end(self, result: DragResult) -> Forest:
        return self._commit(self.reorder.on_drag_end(self._forest, result))

    # --- Import / export ---

    def export_text(self) -> str:
        return export_forest(self._forest)

    def import_text(self, text: str) -> Forest:
        """Replace the forest with an imported snapshot.

        Raises:
            ParseError: the text is invalid; the current forest is left untouched.
        """
        forest = import_forest(text)
        self._last_id = max(self._last_id, operations.max_node_id(forest))
        logger.info("Imported {} root nodes", len(forest))
        return self._commit(forest)
