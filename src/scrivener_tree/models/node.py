"""Domain models for the writing-project tree."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from scrivener_tree.config import DEFAULT_VERSION


class NodeKind(str, Enum):
    CONTAINER = "container"
    DOCUMENT = "document"


class Status(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


def to_snapshot_precision(value: datetime) -> datetime:
    """Truncate to milliseconds, the precision snapshots keep; naive values are UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


def utc_now() -> datetime:
    return to_snapshot_precision(datetime.now(UTC))


@dataclass(frozen=True)
class Metadata:
    """Writing-progress metadata carried by every node."""

    status: Status
    word_count_goal: int
    actual_word_count: int
    completion_percentage: float
    estimated_reading_time: int
    last_modified: datetime
    creation_date: datetime
    tags: tuple[str, ...] = ()
    author: str = ""
    version: str = DEFAULT_VERSION

    def __post_init__(self) -> None:
        object.__setattr__(self, "last_modified", to_snapshot_precision(self.last_modified))
        object.__setattr__(self, "creation_date", to_snapshot_precision(self.creation_date))


@dataclass(frozen=True)
class MetadataPatch:
    """A partial metadata update. Fields left as None are not touched.

    creation_date is absent: it never changes after creation.
    """

    status: Status | None = None
    word_count_goal: int | None = None
    actual_word_count: int | None = None
    completion_percentage: float | None = None
    estimated_reading_time: int | None = None
    last_modified: datetime | None = None
    tags: tuple[str, ...] | None = None
    author: str | None = None
    version: str | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.__dataclass_fields__)


@dataclass(frozen=True)
class Node:
    """A container or document in the forest."""

    id: int
    name: str
    kind: NodeKind
    metadata: Metadata
    children: tuple["Node", ...] = ()
    content: str | None = None

    def __post_init__(self) -> None:
        # Documents always carry a payload, empty when never written.
        if self.kind is NodeKind.DOCUMENT and self.content is None:
            object.__setattr__(self, "content", "")

    @property
    def is_document(self) -> bool:
        return self.kind is NodeKind.DOCUMENT


@dataclass(frozen=True)
class Breadcrumb:
    """A single ancestor in a breadcrumb trail."""

    node_id: int
    name: str
    depth: int


@dataclass(frozen=True)
class NodeContext:
    """A node with its surrounding context."""

    node: Node
    breadcrumbs: tuple[Breadcrumb, ...]
    siblings_before: tuple[Node, ...] = ()
    siblings_after: tuple[Node, ...] = ()


Forest = tuple[Node, ...]
