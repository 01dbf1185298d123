"""Protocols for dependency injection in the tree store."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class SnapshotSlotProtocol(Protocol):
    """Protocol for durable key/value slots holding whole-forest snapshots."""

    def read(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def write(self, key: str, value: str) -> None:
        """Replace the value stored under key."""
        ...

    def delete(self, key: str) -> None:
        """Remove the value stored under key, if any."""
        ...
