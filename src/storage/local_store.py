# src/storage/local_store.py — v3
"""Local filesystem object store (OBJECT_STORE_BACKEND=local).

Buckets are directories under a root; keys are relative paths inside them.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from syndication.core.errors import ExternalServiceError, NotFoundError, ValidationError
from syndication.storage.base_object_store import BaseObjectStore


class LocalObjectStore(BaseObjectStore):
    """Store objects on the local filesystem."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()

    def _resolve(self, bucket: str, key: str) -> Path:
        """Resolve bucket/key to a path, refusing escapes from the bucket."""
        if not bucket or "/" in bucket or bucket in (".", ".."):
            raise ValidationError(f"Invalid bucket name: {bucket!r}")
        bucket_root = (self._root / bucket).resolve()
        path = (bucket_root / key).resolve()
        if bucket_root != path and bucket_root not in path.parents:
            raise ValidationError(f"Key escapes bucket: {key!r}")
        return path

    async def get(self, bucket: str, key: str) -> bytes:
        path = self._resolve(bucket, key)
        if not path.is_file():
            raise NotFoundError(bucket, key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise ExternalServiceError(f"Read failed for {path}: {exc}") from exc

    async def put(
        self,
        bucket: str,
        key: str,
        body: bytes | str,
        content_type: str | None = None,
    ) -> None:
        path = self._resolve(bucket, key)
        data = body.encode("utf-8") if isinstance(body, str) else body
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as exc:
            raise ExternalServiceError(f"Write failed for {path}: {exc}") from exc

    async def exists(self, bucket: str, key: str) -> bool:
        return self._resolve(bucket, key).is_file()

    async def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        bucket_root = self._root / bucket
        if not bucket_root.is_dir():
            return []
        keys = [
            p.relative_to(bucket_root).as_posix()
            for p in bucket_root.rglob("*")
            if p.is_file()
        ]
        return sorted(k for k in keys if k.startswith(prefix))
