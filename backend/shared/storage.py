"""
Object storage for uploaded files (namecard images).

Supabase Storage in production; an in-memory bucket map for the memory
back end and tests.
"""

import asyncio
from typing import Protocol, runtime_checkable

from supabase import Client

from .exceptions import ExternalServiceError


@runtime_checkable
class IObjectStorage(Protocol):
    """Contract for the object storage collaborator."""

    async def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` at ``bucket/path`` and return its public URL."""
        ...

    async def delete(self, bucket: str, path: str) -> None:
        """Remove ``bucket/path``. Missing objects are not an error."""
        ...


class SupabaseObjectStorage:
    """Object storage backed by Supabase Storage buckets."""

    def __init__(self, db: Client) -> None:
        self._db = db

    async def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        store = self._db.storage.from_(bucket)
        try:
            await asyncio.to_thread(
                store.upload,
                path,
                data,
                {"content-type": content_type, "upsert": "false"},
            )
        except Exception as e:
            raise ExternalServiceError(
                f"Failed to upload {path}: {e}",
                service="storage",
            ) from e
        return store.get_public_url(path)

    async def delete(self, bucket: str, path: str) -> None:
        try:
            await asyncio.to_thread(self._db.storage.from_(bucket).remove, [path])
        except Exception as e:
            raise ExternalServiceError(
                f"Failed to delete {path}: {e}",
                service="storage",
            ) from e


class InMemoryObjectStorage:
    """Keeps objects in a dict keyed by (bucket, path)."""

    def __init__(self, base_url: str = "memory://") -> None:
        self._objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self._base_url = base_url

    async def put(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        self._objects[(bucket, path)] = (data, content_type)
        return f"{self._base_url}{bucket}/{path}"

    async def delete(self, bucket: str, path: str) -> None:
        self._objects.pop((bucket, path), None)

    def exists(self, bucket: str, path: str) -> bool:
        return (bucket, path) in self._objects
