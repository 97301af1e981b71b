# src/tasks/metadata_task.py — v1
"""Metadata task: JSON metadata document -> indented XML."""

from __future__ import annotations

import json
import logging

from syndication.core.errors import ValidationError
from syndication.core.models import ProcessingStepResult
from syndication.storage.keys import metadata_output_key
from syndication.tasks.base_task import BaseTask, TaskContext, TaskPayload
from syndication.tasks.xml_codec import json_to_xml

logger = logging.getLogger(__name__)


class MetadataXmlTask(BaseTask):
    """Convert the asset metadata to XML at ``<assetId>/metadata.xml``."""

    step_type = "Metadata"

    @property
    def name(self) -> str:
        return "metadata_xml"

    async def execute(self, payload: TaskPayload, ctx: TaskContext) -> ProcessingStepResult:
        settings = ctx.settings
        body = await ctx.object_store.get(payload.bucket_name, payload.object_key)
        try:
            document = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValidationError(
                f"Metadata {payload.object_key} is not valid JSON: {exc}"
            ) from exc

        xml_text = json_to_xml(document, indent=settings.metadata_indent)
        key = metadata_output_key(payload.asset_id, settings.metadata_output_extension)
        await ctx.object_store.put(
            ctx.output_bucket, key, xml_text.encode("utf-8"), content_type="application/xml"
        )
        logger.info("Metadata %s -> s3://%s/%s", payload.object_key, ctx.output_bucket, key)
        return ProcessingStepResult(
            asset_id=payload.asset_id,
            bucket=ctx.output_bucket,
            key=key,
            type="Metadata",
        )
