# src/storage/store_factory.py — v3
"""Factory: instantiate the object store from configuration."""

from __future__ import annotations

from syndication.config.settings import Settings
from syndication.storage.base_object_store import BaseObjectStore


def create_object_store(settings: Settings) -> BaseObjectStore:
    """Create the configured object store backend.

    Raises:
        ValueError: If the backend is not supported.
    """
    if settings.object_store_backend == "local":
        from syndication.storage.local_store import LocalObjectStore

        if settings.local_store_root is None:
            raise ValueError("LOCAL_STORE_ROOT must be set when OBJECT_STORE_BACKEND=local")
        return LocalObjectStore(settings.local_store_root)

    if settings.object_store_backend == "s3":
        from syndication.storage.s3_store import S3ObjectStore

        return S3ObjectStore(
            region=settings.aws_region or None,
            endpoint_url=settings.s3_endpoint_url or None,
        )

    raise ValueError(f"Unsupported object store backend: {settings.object_store_backend!r}")
