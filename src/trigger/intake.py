# src/trigger/intake.py — v2
"""Intake trigger: turn object-created notifications into executions.

For each uploaded object the containing folder is re-listed; an execution
starts only when the folder holds the manifest and every file it names.
Anything missing is logged and skipped: a later upload re-triggers. Records
from a bucket other than the configured intake bucket are ignored.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote_plus

from syndication.core.errors import (
    DuplicateExecutionError,
    NotFoundError,
    ValidationError,
)
from syndication.core.models import Asset, Manifest, ObjectRef
from syndication.storage.keys import folder_of, manifest_key

if TYPE_CHECKING:
    from syndication.pipeline.orchestrator import Orchestrator
    from syndication.storage.base_object_store import BaseObjectStore

logger = logging.getLogger(__name__)


class IntakeTrigger:
    """Validate intake folders and start one execution per complete asset.

    Args:
        object_store: Store holding the intake bucket.
        orchestrator: Orchestrator starting executions.
        manifest_filename: Name of the manifest inside each folder.
        source_bucket: Only accept notifications from this bucket; empty or
            None accepts any bucket.
    """

    def __init__(
        self,
        object_store: BaseObjectStore,
        orchestrator: Orchestrator,
        manifest_filename: str = "manifest.json",
        source_bucket: str | None = None,
    ) -> None:
        self._store = object_store
        self._orchestrator = orchestrator
        self._manifest_filename = manifest_filename
        self._source_bucket = source_bucket or None

    async def handle_event(self, event: dict[str, Any]) -> list[str]:
        """Handle an object-created notification with one or more records.

        Each record is judged on its own; a bad record never stops the rest.

        Returns:
            Ids of executions started.
        """
        started: list[str] = []
        for record in event.get("Records", []):
            try:
                bucket = record["s3"]["bucket"]["name"]
                key = unquote_plus(record["s3"]["object"]["key"])
            except (KeyError, TypeError):
                logger.warning("Skipping malformed notification record: %s", record)
                continue
            if self._source_bucket is not None and bucket != self._source_bucket:
                logger.warning(
                    "Skipping s3://%s/%s: not the intake bucket %s", bucket, key, self._source_bucket
                )
                continue
            try:
                execution_id = await self.handle_object(bucket, key)
            except (ValidationError, NotFoundError) as exc:
                logger.warning("Skipping s3://%s/%s: %s", bucket, key, exc)
                continue
            if execution_id is not None:
                started.append(execution_id)
        return started

    async def handle_object(self, bucket: str, key: str) -> str | None:
        """Start an execution for the folder of ``key`` if it is complete.

        Returns:
            The execution id, or None when the folder was skipped.

        Raises:
            ValidationError: If the manifest is malformed.
            NotFoundError: If the manifest vanished between list and read.
        """
        folder = folder_of(key)
        if not folder:
            logger.info("Object %s is not inside an asset folder", key)
            return None

        keys = set(await self._store.list_keys(bucket, prefix=f"{folder}/"))
        mkey = manifest_key(folder, self._manifest_filename)
        if mkey not in keys:
            logger.info("Manifest not found in %s", folder)
            return None

        manifest = Manifest.parse(await self._store.get(bucket, mkey))
        refs = manifest.object_keys(folder)
        missing = sorted(k for k in refs.values() if k not in keys)
        if missing:
            logger.info("Files required by manifest are missing in %s: %s", folder, missing)
            return None

        asset = Asset(
            asset_id=folder,
            video=ObjectRef(bucket_name=bucket, object_key=refs["Video"]),
            image=ObjectRef(bucket_name=bucket, object_key=refs["Image"]),
            metadata=ObjectRef(bucket_name=bucket, object_key=refs["Metadata"]),
        )
        try:
            execution_id = await self._orchestrator.start(asset)
        except DuplicateExecutionError as exc:
            logger.info("Asset %s already processing as %s", folder, exc.execution_id)
            return None

        logger.info("Manifest and files found in %s, started %s", folder, execution_id)
        return execution_id
