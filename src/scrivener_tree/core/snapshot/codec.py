"""Serialize the forest to JSON and parse it back with schema validation.

The wire format is an array of root nodes. Metadata keys are camelCase, as in
exports of the browser version of the app. Older exports used ``"type"`` with
``project``/``folder``/``chapter``/``file`` instead of ``"kind"``; those are
still accepted on import.
"""

import json
import math
from datetime import UTC, datetime
from typing import Any

from scrivener_tree.config import DEFAULT_VERSION
from scrivener_tree.core.metadata.engine import coerce_goal
from scrivener_tree.core.tree.operations import normalize_tags
from scrivener_tree.errors import ParseError
from scrivener_tree.models.node import Forest, Metadata, Node, NodeKind, Status

_LEGACY_KINDS: dict[str, NodeKind] = {
    "project": NodeKind.CONTAINER,
    "folder": NodeKind.CONTAINER,
    "chapter": NodeKind.DOCUMENT,
    "file": NodeKind.DOCUMENT,
}

_REQUIRED_NODE_KEYS = ("id", "name", "children", "metadata")
_REQUIRED_METADATA_KEYS = ("status", "wordCountGoal", "lastModified", "creationDate")


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a trailing Z."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _metadata_to_dict(metadata: Metadata) -> dict[str, Any]:
    return {
        "status": metadata.status.value,
        "wordCountGoal": metadata.word_count_goal,
        "actualWordCount": metadata.actual_word_count,
        "completionPercentage": metadata.completion_percentage,
        "estimatedReadingTime": metadata.estimated_reading_time,
        "lastModified": format_timestamp(metadata.last_modified),
        "creationDate": format_timestamp(metadata.creation_date),
        "tags": list(metadata.tags),
        "author": metadata.author,
        "version": metadata.version,
    }


def node_to_dict(node: Node) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": node.id,
        "name": node.name,
        "kind": node.kind.value,
        "children": [node_to_dict(child) for child in node.children],
        "metadata": _metadata_to_dict(node.metadata),
    }
    if node.is_document:
        data["content"] = node.content or ""
    return data


def forest_to_data(forest: Forest) -> list[dict[str, Any]]:
    return [node_to_dict(node) for node in forest]


def export_forest(forest: Forest) -> str:
    """Canonical pretty JSON for export files."""
    return json.dumps(forest_to_data(forest), sort_keys=True, indent=4, ensure_ascii=False) + "\n"


def dumps_snapshot(forest: Forest) -> str:
    """Compact JSON for the durable snapshot slot."""
    return json.dumps(forest_to_data(forest), separators=(",", ":"), ensure_ascii=False)


# --- Parsing ---


def _fail(path: str, problem: str) -> ParseError:
    return ParseError(f"{path}: {problem}")


def _parse_timestamp(value: Any, path: str) -> datetime:
    if not isinstance(value, str):
        raise _fail(path, "expected an ISO-8601 timestamp string")
    try:
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
    except (ValueError, OverflowError) as e:
        raise _fail(path, f"invalid timestamp {value!r}") from e


def _parse_number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise _fail(path, "expected a number")
    try:
        finite = math.isfinite(value)
    except OverflowError as e:
        raise _fail(path, "number out of range") from e
    return value if finite else 0


def _parse_str(data: dict[str, Any], key: str, path: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise _fail(f"{path}.{key}", "expected a string")
    return value


def _parse_metadata(data: Any, path: str) -> Metadata:
    if not isinstance(data, dict):
        raise _fail(path, "expected an object")
    for key in _REQUIRED_METADATA_KEYS:
        if key not in data:
            raise _fail(path, f"missing required field {key!r}")

    if not isinstance(data["status"], str):
        raise _fail(f"{path}.status", "expected a string")
    try:
        status = Status(data["status"])
    except ValueError as e:
        raise _fail(f"{path}.status", f"unknown status {data['status']!r}") from e

    goal = data["wordCountGoal"]
    if isinstance(goal, bool) or not isinstance(goal, int | float | str):
        raise _fail(f"{path}.wordCountGoal", "expected a number")

    tags = data.get("tags", [])
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise _fail(f"{path}.tags", "expected an array of strings")

    return Metadata(
        status=status,
        word_count_goal=coerce_goal(goal),
        actual_word_count=int(_parse_number(data.get("actualWordCount", 0), f"{path}.actualWordCount")),
        completion_percentage=float(
            _parse_number(data.get("completionPercentage", 0), f"{path}.completionPercentage")
        ),
        estimated_reading_time=int(
            _parse_number(data.get("estimatedReadingTime", 0), f"{path}.estimatedReadingTime")
        ),
        last_modified=_parse_timestamp(data["lastModified"], f"{path}.lastModified"),
        creation_date=_parse_timestamp(data["creationDate"], f"{path}.creationDate"),
        tags=normalize_tags(tags),
        author=_parse_str(data, "author", path, ""),
        version=_parse_str(data, "version", path, DEFAULT_VERSION),
    )


def _parse_kind(data: dict[str, Any], path: str) -> NodeKind:
    if "kind" in data:
        if not isinstance(data["kind"], str):
            raise _fail(f"{path}.kind", "expected a string")
        try:
            return NodeKind(data["kind"])
        except ValueError as e:
            raise _fail(f"{path}.kind", f"unknown kind {data['kind']!r}") from e
    if "type" in data:
        if not isinstance(data["type"], str):
            raise _fail(f"{path}.type", "expected a string")
        kind = _LEGACY_KINDS.get(data["type"])
        if kind is None:
            raise _fail(f"{path}.type", f"unknown type {data['type']!r}")
        return kind
    raise _fail(path, "missing required field 'kind'")


def node_from_dict(data: Any, path: str, seen_ids: set[int]) -> Node:
    """Validate one node object (recursively) and build the Node.

    Args:
        data: Decoded JSON value.
        path: Location used in error messages, e.g. ``$[0].children[2]``.
        seen_ids: Ids already parsed; extended in place.
    """
    if not isinstance(data, dict):
        raise _fail(path, "expected an object")
    for key in _REQUIRED_NODE_KEYS:
        if key not in data:
            raise _fail(path, f"missing required field {key!r}")

    node_id = data["id"]
    if isinstance(node_id, bool) or not isinstance(node_id, int):
        raise _fail(f"{path}.id", "expected an integer")
    if node_id in seen_ids:
        raise _fail(f"{path}.id", f"duplicate id {node_id}")
    seen_ids.add(node_id)

    name = data["name"]
    if not isinstance(name, str):
        raise _fail(f"{path}.name", "expected a string")

    kind = _parse_kind(data, path)
    raw_children = data["children"]
    if not isinstance(raw_children, list):
        raise _fail(f"{path}.children", "expected an array")

    content = data.get("content")
    if kind is NodeKind.DOCUMENT:
        if raw_children:
            raise _fail(f"{path}.children", "a document cannot have children")
        if content is None:
            content = ""
        elif not isinstance(content, str):
            raise _fail(f"{path}.content", "expected a string")
    elif content:
        raise _fail(f"{path}.content", "a container cannot have content")
    else:
        content = None

    children = tuple(
        node_from_dict(child, f"{path}.children[{i}]", seen_ids)
        for i, child in enumerate(raw_children)
    )
    return Node(
        id=node_id,
        name=name,
        kind=kind,
        metadata=_parse_metadata(data["metadata"], f"{path}.metadata"),
        children=children,
        content=content,
    )


def forest_from_data(data: Any) -> Forest:
    if not isinstance(data, list):
        raise _fail("$", "expected an array of nodes")
    seen_ids: set[int] = set()
    return tuple(node_from_dict(item, f"$[{i}]", seen_ids) for i, item in enumerate(data))


def import_forest(text: str) -> Forest:
    """Parse and validate snapshot text.

    Raises:
        ParseError: the text is not JSON or does not match the node schema.
    """
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        msg = f"Invalid JSON: {e}"
        raise ParseError(msg) from e
    try:
        return forest_from_data(data)
    except RecursionError as e:
        msg = "Nodes are nested too deeply"
        raise ParseError(msg) from e
