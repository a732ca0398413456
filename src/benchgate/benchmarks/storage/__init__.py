"""Object store backends for benchmark results.

This module provides the storage protocol and its implementations.

Example:
    >>> from benchgate.benchmarks.storage import LocalObjectStore
    >>> store = LocalObjectStore(".benchgate/store")
    >>> await store.put("acme/engine/best/1-gpu-test_add.json", payload)
"""

from __future__ import annotations

from benchgate.benchmarks.storage.base import ObjectStoreProtocol
from benchgate.benchmarks.storage.http_store import HTTPObjectStore
from benchgate.benchmarks.storage.local_store import LocalObjectStore
from benchgate.benchmarks.storage.memory import MemoryObjectStore

__all__ = [
    "HTTPObjectStore",
    "LocalObjectStore",
    "MemoryObjectStore",
    "ObjectStoreProtocol",
]
