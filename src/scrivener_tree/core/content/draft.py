"""Draft.js raw content: the opaque payload stored on document nodes.

The tree never looks inside a payload. This module is the editor-side
collaborator: it turns plain text into raw content, projects raw content back
to plain text for word counting, and decodes stored payloads tolerantly.
"""

import json
import uuid
from typing import Any

from loguru import logger

from scrivener_tree.errors import ContentDecodeError


def _block(text: str) -> dict[str, Any]:
    return {
        "key": uuid.uuid4().hex[:5],
        "text": text,
        "type": "unstyled",
        "depth": 0,
        "inlineStyleRanges": [],
        "entityRanges": [],
        "data": {},
    }


def empty_content() -> dict[str, Any]:
    return {"blocks": [_block("")], "entityMap": {}}


def from_plain_text(text: str) -> dict[str, Any]:
    """Build raw content with one unstyled block per line."""
    lines = text.split("\n") if text else [""]
    return {"blocks": [_block(line) for line in lines], "entityMap": {}}


def to_plain_text(raw: dict[str, Any]) -> str:
    """Plain-text projection: block texts joined by newlines."""
    return "\n".join(block.get("text", "") for block in raw["blocks"])


def serialize(raw: dict[str, Any]) -> str:
    return json.dumps(raw, separators=(",", ":"), ensure_ascii=False)


def deserialize(payload: str) -> dict[str, Any]:
    """Decode a stored payload into raw content.

    Raises:
        ContentDecodeError: the payload is not JSON or not shaped like raw content.
    """
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as e:
        msg = f"Content is not valid JSON: {e}"
        raise ContentDecodeError(msg) from e
    if not isinstance(raw, dict) or not isinstance(raw.get("blocks"), list):
        msg = "Content has no 'blocks' list"
        raise ContentDecodeError(msg)
    for i, block in enumerate(raw["blocks"]):
        if not isinstance(block, dict) or not isinstance(block.get("text", ""), str):
            msg = f"Content block {i} is malformed"
            raise ContentDecodeError(msg)
    raw.setdefault("entityMap", {})
    return raw


def load_editable(payload: str | None) -> dict[str, Any]:
    """Decode a payload for editing, substituting an empty document on failure.

    An unreadable payload is logged and replaced; the next save overwrites it.
    """
    if not payload:
        return empty_content()
    try:
        return deserialize(payload)
    except ContentDecodeError as e:
        logger.warning("Error parsing content, starting from an empty document: {}", e)
        return empty_content()


def plain_text_of(payload: str | None) -> str:
    return to_plain_text(load_editable(payload))
