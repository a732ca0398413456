"""HTTP object store backend for benchgate.

This module provides an async client for S3-style object storage REST APIs
(Aliyun OSS, MinIO, S3 with pre-authorized access), implementing
ObjectStoreProtocol.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from benchgate.core.exceptions import StorageError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_TIMEOUT = 3600.0
DEFAULT_MAX_KEYS = 1000
COPY_SOURCE_HEADER = "x-amz-copy-source"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


class HTTPObjectStore:
    """Async client for an S3-style object store.

    Objects live at ``{endpoint}/{bucket}/{key}``. Uses httpx for async HTTP
    requests with connection pooling.

    A read-only store serves reads normally and skips writes with a warning,
    which lets runs from forks without publishing secrets still gate against
    the stored history.

    Attributes:
        endpoint: Base URL of the store.
        bucket: Bucket name.
        timeout: Request timeout in seconds.
        read_only: Whether writes are skipped.

    Example:
        >>> async with HTTPObjectStore("https://oss-cn-beijing.aliyuncs.com", "benchmarks") as store:
        ...     best = await store.get("acme/engine/best/1-gpu-test_add.json")
    """

    def __init__(
        self,
        endpoint: str,
        bucket: str,
        timeout: float = DEFAULT_TIMEOUT,
        read_only: bool = False,
        max_keys: int = DEFAULT_MAX_KEYS,
    ) -> None:
        """Initialize HTTPObjectStore client.

        Args:
            endpoint: Base URL of the store.
            bucket: Bucket name.
            timeout: Request timeout in seconds. Defaults to one hour.
            read_only: Skip writes instead of sending them.
            max_keys: Page size for listings.
        """
        self.endpoint = endpoint.rstrip("/")
        self.bucket = bucket
        self.timeout = timeout
        self.read_only = read_only
        self.max_keys = max_keys
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HTTPObjectStore:
        """Enter async context manager, creating a reusable HTTP client."""
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context manager, closing the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @asynccontextmanager
    async def _get_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Get an HTTP client for making requests.

        Yields:
            The managed client, or a temporary one outside the context manager.
        """
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    @property
    def bucket_url(self) -> str:
        return f"{self.endpoint}/{self.bucket}"

    def object_url(self, key: str) -> str:
        """Public URL of an object."""
        return f"{self.bucket_url}/{quote(key)}"

    def _error(self, action: str, key: str, e: Exception) -> StorageError:
        if isinstance(e, httpx.HTTPStatusError):
            msg = f"Object store error on {action} {key}: {e.response.status_code} - {e.response.text}"
        elif isinstance(e, httpx.TimeoutException):
            msg = f"Object store {action} {key} timed out after {self.timeout}s: {e}"
        elif isinstance(e, httpx.ConnectError):
            msg = f"Failed to connect to object store at {self.endpoint}: {e}"
        else:
            msg = f"Unexpected object store error on {action} {key}: {e}"
        return StorageError(msg)

    async def get(self, key: str) -> bytes | None:
        """Fetch an object.

        Returns:
            The object content, or None on 404.

        Raises:
            StorageError: If the request fails for any other reason.
        """
        try:
            async with self._get_client() as client:
                response = await client.get(self.object_url(key))
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise self._error("get", key, e) from e

    async def put(self, key: str, data: bytes) -> None:
        """Create or overwrite an object.

        Raises:
            StorageError: If the upload fails.
        """
        if self.read_only:
            logger.warning(f"Read-only object store, skipping upload of {key}")
            return
        try:
            async with self._get_client() as client:
                response = await client.put(self.object_url(key), content=data)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise self._error("put", key, e) from e
        logger.info(f"[push] {key}")
        logger.info(f"[url] {self.object_url(key)}")

    async def copy(self, dst_key: str, src_key: str) -> None:
        """Server-side copy of an object.

        Raises:
            StorageError: If the copy fails.
        """
        if self.read_only:
            logger.warning(f"Read-only object store, skipping copy of {src_key} to {dst_key}")
            return
        headers = {COPY_SOURCE_HEADER: f"/{self.bucket}/{quote(src_key)}"}
        try:
            async with self._get_client() as client:
                response = await client.put(self.object_url(dst_key), headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise self._error("copy", dst_key, e) from e
        logger.info(f"[copy] {src_key} -> {dst_key}")

    async def list(self, prefix: str) -> list[str]:
        """List keys starting with a prefix, following continuation tokens.

        Raises:
            StorageError: If a listing request fails or returns invalid XML.
        """
        keys: list[str] = []
        token: str | None = None
        try:
            async with self._get_client() as client:
                while True:
                    params = {"list-type": "2", "prefix": prefix, "max-keys": str(self.max_keys)}
                    if token:
                        params["continuation-token"] = token
                    response = await client.get(f"{self.bucket_url}/", params=params)
                    response.raise_for_status()
                    page_keys, token = self._parse_listing(response.content)
                    keys.extend(page_keys)
                    if not token:
                        break
        except httpx.HTTPError as e:
            raise self._error("list", prefix, e) from e
        except ET.ParseError as e:
            raise StorageError(f"Invalid listing for {prefix}: {e}") from e
        return sorted(keys)

    def _parse_listing(self, body: bytes) -> tuple[list[str], str | None]:
        """Extract keys and the next continuation token from a ListBucketResult."""
        root = ET.fromstring(body)
        keys: list[str] = []
        truncated = False
        token: str | None = None
        for element in root:
            name = _local_name(element.tag)
            if name == "Contents":
                for child in element:
                    if _local_name(child.tag) == "Key" and child.text:
                        keys.append(child.text)
            elif name == "IsTruncated":
                truncated = (element.text or "").strip().lower() == "true"
            elif name == "NextContinuationToken":
                token = element.text
        return keys, token if truncated else None
