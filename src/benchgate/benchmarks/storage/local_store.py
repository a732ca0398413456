"""Directory-backed object store.

This module provides a local filesystem backend, useful for dry runs and
for self-hosted runners that keep results on a shared volume.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from benchgate.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class LocalObjectStore:
    """Object store rooted at a local directory.

    Each key maps to a file below the root. Uses atomic writes
    (temp file + rename) so readers never see partial objects.

    Example:
        >>> store = LocalObjectStore(".benchgate/store")
        >>> await store.put("acme/engine/best/1-gpu-test_add.json", payload)
        >>> await store.list("acme/engine/best/")
        ['acme/engine/best/1-gpu-test_add.json']
    """

    def __init__(self, root: str | Path = ".benchgate/store") -> None:
        """Initialize the local store.

        Args:
            root: Directory holding the objects.
        """
        self._root = Path(root)

    def _path(self, key: str) -> Path:
        parts = [part for part in key.split("/") if part]
        if not parts or any(part in {".", ".."} for part in parts):
            raise StorageError(f"Invalid object key: {key!r}")
        return self._root.joinpath(*parts)

    async def get(self, key: str) -> bytes | None:
        """Fetch an object."""
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    async def put(self, key: str, data: bytes) -> None:
        """Create or overwrite an object with an atomic write."""
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".object_", suffix=".tmp")
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

        try:
            with os.fdopen(temp_fd, "wb") as f:
                f.write(data)
            # Atomic rename
            Path(temp_path).replace(path)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug(f"[push] {key}")

    async def copy(self, dst_key: str, src_key: str) -> None:
        """Copy an existing object to another key."""
        data = await self.get(src_key)
        if data is None:
            raise StorageError(f"Copy source not found: {src_key}")
        await self.put(dst_key, data)

    async def list(self, prefix: str) -> list[str]:
        """List keys starting with a prefix."""
        if not self._root.exists():
            return []
        keys = []
        for path in self._root.rglob("*"):
            if not path.is_file() or path.name.startswith(".object_"):
                continue
            key = path.relative_to(self._root).as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)
