"""Derive word count, reading time and completion from plain text."""

import math
import re
from dataclasses import replace
from datetime import datetime
from typing import Any

from scrivener_tree.config import WORDS_PER_MINUTE
from scrivener_tree.models.node import Metadata, Status

_MARKUP_RE = re.compile(r"<[^>]+>")


def count_words(plain_text: str) -> int:
    """Count whitespace-separated words after stripping ``<...>`` markup.

    Empty or whitespace-only text counts as 0 words.
    """
    stripped = _MARKUP_RE.sub("", plain_text).strip()
    if not stripped:
        return 0
    return len(re.split(r"\s+", stripped))


def estimate_reading_time(word_count: int) -> int:
    """Estimated reading time in whole minutes, rounded up."""
    return math.ceil(word_count / WORDS_PER_MINUTE)


def coerce_goal(value: Any) -> int:
    """Coerce a user-supplied word-count goal to a non-negative int.

    Anything that is not a finite, non-negative number becomes 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    if not isinstance(value, int | float):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(int(value), 0)


def completion_percentage(word_count: int, goal: Any) -> float:
    """Percentage of the goal reached, clamped to [0, 100]; 0 when there is no goal."""
    goal = coerce_goal(goal)
    if goal == 0:
        return 0.0
    return min(max(word_count / goal * 100, 0.0), 100.0)


def default_metadata(now: datetime) -> Metadata:
    return Metadata(
        status=Status.NOT_STARTED,
        word_count_goal=0,
        actual_word_count=0,
        completion_percentage=0.0,
        estimated_reading_time=0,
        last_modified=now,
        creation_date=now,
    )


def derive_on_save(existing: Metadata, plain_text: str, *, now: datetime) -> Metadata:
    """Recompute the derived fields for freshly saved content.

    Word count, completion and reading time change together, along with
    last_modified. Every other field is copied from ``existing``.
    """
    words = count_words(plain_text)
    return replace(
        existing,
        actual_word_count=words,
        completion_percentage=completion_percentage(words, existing.word_count_goal),
        estimated_reading_time=estimate_reading_time(words),
        last_modified=now,
    )
