# src/storage/base_object_store.py — v1
"""Abstract object store interface (bucket + key addressing)."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseObjectStore(ABC):
    """Unified interface for object storage backends.

    Implementations raise NotFoundError for missing objects and
    ExternalServiceError for any other backend failure.
    """

    @abstractmethod
    async def get(self, bucket: str, key: str) -> bytes:
        """Read an object's bytes."""

    @abstractmethod
    async def put(
        self,
        bucket: str,
        key: str,
        body: bytes | str,
        content_type: str | None = None,
    ) -> None:
        """Write an object, replacing any existing one."""

    @abstractmethod
    async def exists(self, bucket: str, key: str) -> bool:
        """Check whether an object exists."""

    @abstractmethod
    async def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        """List all keys under a prefix (recursive, sorted)."""
