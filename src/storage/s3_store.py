# src/storage/s3_store.py — v2
"""S3-compatible object store (OBJECT_STORE_BACKEND=s3).

Supports AWS S3, MinIO, and other S3-compatible storage. boto3 calls are
blocking, so each one runs in a worker thread to keep branches concurrent.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from syndication.core.errors import ExternalServiceError, NotFoundError
from syndication.storage.base_object_store import BaseObjectStore

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound", "NoSuchBucket"}


class S3ObjectStore(BaseObjectStore):
    """Read and write objects in S3-compatible storage."""

    def __init__(
        self,
        region: str | None = None,
        endpoint_url: str | None = None,
        client: Any = None,
    ) -> None:
        """Initialize S3 store.

        Args:
            region: AWS region (optional, uses boto3 default if not set).
            endpoint_url: Custom endpoint for MinIO/compatible storage.
            client: Pre-built boto3 S3 client (tests, shared sessions).
        """
        if client is None:
            import boto3

            kwargs: dict[str, Any] = {}
            if region:
                kwargs["region_name"] = region
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            client = boto3.client("s3", **kwargs)
        self._s3 = client

    async def get(self, bucket: str, key: str) -> bytes:
        """Read an object from S3."""
        try:
            response = await asyncio.to_thread(
                self._s3.get_object, Bucket=bucket, Key=key
            )
            body = await asyncio.to_thread(response["Body"].read)
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, bucket, key, "GetObject") from exc
        logger.debug("S3 read: s3://%s/%s (%d bytes)", bucket, key, len(body))
        return body

    async def put(
        self,
        bucket: str,
        key: str,
        body: bytes | str,
        content_type: str | None = None,
    ) -> None:
        """Write an object to S3."""
        data = body.encode("utf-8") if isinstance(body, str) else body
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": data}
        if content_type:
            kwargs["ContentType"] = content_type
        try:
            await asyncio.to_thread(self._s3.put_object, **kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, bucket, key, "PutObject") from exc
        logger.debug("S3 write: s3://%s/%s (%d bytes)", bucket, key, len(data))

    async def exists(self, bucket: str, key: str) -> bool:
        """Check if an S3 object exists."""
        try:
            await asyncio.to_thread(self._s3.head_object, Bucket=bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                return False
            raise _translate(exc, bucket, key, "HeadObject") from exc
        except BotoCoreError as exc:
            raise _translate(exc, bucket, key, "HeadObject") from exc
        return True

    async def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        """List every key under a prefix, following pagination."""

        def _list() -> list[str]:
            paginator = self._s3.get_paginator("list_objects_v2")
            keys: list[str] = []
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
            return keys

        try:
            keys = await asyncio.to_thread(_list)
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, bucket, prefix, "ListObjectsV2") from exc
        return sorted(keys)


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _translate(
    exc: Exception, bucket: str, key: str, operation: str
) -> NotFoundError | ExternalServiceError:
    """Map a botocore failure onto the workflow error taxonomy."""
    if isinstance(exc, ClientError) and _error_code(exc) in _NOT_FOUND_CODES:
        return NotFoundError(bucket, key)
    return ExternalServiceError(f"S3 {operation} failed for s3://{bucket}/{key}: {exc}")
