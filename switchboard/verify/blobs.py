"""Blob storage for batch results too large to keep inline."""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path

from switchboard.observability.logging import get_logger
from switchboard.stores.errors import ConnectionError, NotFoundError

logger = get_logger(__name__)


class BlobStore(ABC):
    """Bucketed object storage."""

    @abstractmethod
    async def put(self, bucket: str, key: str, data: bytes) -> None:
        """Write an object, replacing any existing one."""
        pass

    @abstractmethod
    async def get(self, bucket: str, key: str) -> bytes:
        """Read an object.

        Raises:
            NotFoundError: If the object does not exist
        """
        pass


class InMemoryBlobStore(BlobStore):
    """In-memory blob store for testing and development."""

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], bytes] = {}

    async def put(self, bucket: str, key: str, data: bytes) -> None:
        self._objects[(bucket, key)] = data

    async def get(self, bucket: str, key: str) -> bytes:
        data = self._objects.get((bucket, key))
        if data is None:
            raise NotFoundError(f"Blob not found: {bucket}/{key}")
        return data

    def keys(self, bucket: str) -> list[str]:
        return sorted(key for b, key in self._objects if b == bucket)


class FileSystemBlobStore(BlobStore):
    """Blob store writing objects under {root}/{bucket}/{key}."""

    def __init__(self, root_path: str | Path) -> None:
        self._root = Path(root_path)

    def _path(self, bucket: str, key: str) -> Path:
        path = (self._root / bucket / key).resolve()
        if not path.is_relative_to(self._root.resolve()):
            raise ValueError(f"Blob key escapes the store root: {key}")
        return path

    async def put(self, bucket: str, key: str, data: bytes) -> None:
        path = self._path(bucket, key)
        try:
            await asyncio.to_thread(_write, path, data)
        except OSError as e:
            logger.error("blob_write_error", bucket=bucket, key=key, error=str(e))
            raise ConnectionError(f"Failed to write blob: {e}", cause=e) from e

    async def get(self, bucket: str, key: str) -> bytes:
        path = self._path(bucket, key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise NotFoundError(f"Blob not found: {bucket}/{key}", cause=e) from e
        except OSError as e:
            logger.error("blob_read_error", bucket=bucket, key=key, error=str(e))
            raise ConnectionError(f"Failed to read blob: {e}", cause=e) from e


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
