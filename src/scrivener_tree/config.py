"""Configuration constants for scrivener-tree."""

import os
from pathlib import Path

# Environment variable overriding the data directory.
DATA_DIR_ENV: str = "SCRIVENER_TREE_DIR"

# Directory with data. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/scrivener-tree").expanduser(),
    Path("~/.scrivener-tree").expanduser(),
    Path("~/.config/scrivener-tree").expanduser(),
]

# SQLite file holding the durable snapshot, inside the data directory.
DB_FILENAME: str = "scrivener.db"

# Key of the single snapshot slot.
SNAPSHOT_KEY: str = "projects"

# Default filename for exported projects.
EXPORT_FILENAME: str = "scrivener_projects.json"

# Average reading speed used for reading-time estimates.
WORDS_PER_MINUTE: int = 250

DEFAULT_VERSION: str = "1.0"

# Log file written by the MCP server, inside the data directory.
LOG_FILENAME: str = "scrivener.log"


def resolve_data_directory() -> Path:
    """Return the data directory to use.

    The environment override wins; otherwise the first existing candidate,
    falling back to the first candidate (created on demand by callers).
    """
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]
