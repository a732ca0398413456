"""In-memory object store implementation."""

from __future__ import annotations

from benchgate.core.exceptions import StorageError


class MemoryObjectStore:
    """In-memory object store.

    Simple dictionary-based store. Data is lost when the process exits.
    Every write is recorded in ``writes`` so callers can inspect what a run
    published.

    Example:
        >>> store = MemoryObjectStore()
        >>> await store.put("acme/engine/best/1-gpu-test_add.json", b"{}")
        >>> await store.list("acme/engine/best/")
        ['acme/engine/best/1-gpu-test_add.json']
    """

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        """Initialize the memory store.

        Args:
            objects: Initial objects keyed by key.
        """
        self._objects: dict[str, bytes] = dict(objects or {})
        self.writes: list[str] = []

    async def get(self, key: str) -> bytes | None:
        """Fetch an object."""
        return self._objects.get(key)

    async def put(self, key: str, data: bytes) -> None:
        """Create or overwrite an object."""
        self._objects[key] = bytes(data)
        self.writes.append(key)

    async def copy(self, dst_key: str, src_key: str) -> None:
        """Copy an existing object to another key."""
        if src_key not in self._objects:
            raise StorageError(f"Copy source not found: {src_key}")
        self._objects[dst_key] = self._objects[src_key]
        self.writes.append(dst_key)

    async def list(self, prefix: str) -> list[str]:
        """List keys starting with a prefix."""
        return sorted(key for key in self._objects if key.startswith(prefix))

    def __contains__(self, key: object) -> bool:
        return key in self._objects

    def __len__(self) -> int:
        """Return the number of stored objects."""
        return len(self._objects)
