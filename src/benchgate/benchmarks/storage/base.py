"""Base protocol for object store backends.

This module defines the ObjectStoreProtocol that all storage backends must implement.
Keys are hierarchical, slash-separated path strings.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ObjectStoreProtocol(Protocol):
    """Protocol for object store backends.

    All storage backends must implement these async methods.

    Example:
        >>> class MyStore:
        ...     async def get(self, key: str) -> bytes | None: ...
        ...     # ... implement other methods
        >>> isinstance(MyStore(), ObjectStoreProtocol)
        True
    """

    async def get(self, key: str) -> bytes | None:
        """Fetch an object.

        Args:
            key: Object key.

        Returns:
            The object content, or None if the key does not exist.

        Raises:
            StorageError: If the store cannot be reached.
        """
        ...

    async def put(self, key: str, data: bytes) -> None:
        """Create or overwrite an object.

        Args:
            key: Object key.
            data: Object content.

        Raises:
            StorageError: If the write fails.
        """
        ...

    async def copy(self, dst_key: str, src_key: str) -> None:
        """Copy an existing object to another key.

        Args:
            dst_key: Destination key (overwritten if present).
            src_key: Source key.

        Raises:
            StorageError: If the copy fails or the source does not exist.
        """
        ...

    async def list(self, prefix: str) -> list[str]:
        """List keys starting with a prefix.

        Args:
            prefix: Key prefix.

        Returns:
            Matching keys in lexicographic order.

        Raises:
            StorageError: If the listing fails.
        """
        ...
