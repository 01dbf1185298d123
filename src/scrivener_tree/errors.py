"""Exception hierarchy for tree, content and snapshot failures."""


class ScrivenerError(Exception):
    """Base class for errors surfaced to the user."""


class NotFoundError(ScrivenerError):
    """A mutation referenced a node id that is not in the forest."""

    def __init__(self, node_id: int) -> None:
        super().__init__(f"Node {node_id} not found")
        self.node_id = node_id


class ParseError(ScrivenerError):
    """Snapshot text is malformed or does not match the node schema."""


class ContentDecodeError(ScrivenerError):
    """An opaque rich-text payload could not be decoded."""


class PersistenceError(ScrivenerError):
    """The durable snapshot slot could not be read or written."""
