# src/tasks/video_task.py — v1
"""Video task: submit a transcode job and suspend until its callback."""

from __future__ import annotations

import logging

from syndication.core.errors import ValidationError
from syndication.tasks.base_task import BaseCallbackTask, TaskContext, TaskPayload
from syndication.transcode.job_request import build_job_request
from syndication.transcode.models import TranscodeJob

logger = logging.getLogger(__name__)


class VideoTranscodeTask(BaseCallbackTask):
    """Hand the asset video to the transcode service.

    The job writes renditions under ``s3://<output bucket>/<assetId>/`` and
    reports back through status events carrying the split continuation token.
    """

    step_type = "Video"

    @property
    def name(self) -> str:
        return "video_transcode"

    async def submit(self, payload: TaskPayload, ctx: TaskContext) -> TranscodeJob:
        if not payload.continuation_token:
            raise ValidationError("Video task payload has no continuation token")
        if ctx.transcode_client is None:
            raise ValidationError(f"Task {self.name} needs a transcode client")

        settings = ctx.settings
        request = build_job_request(
            source_bucket=payload.bucket_name,
            source_key=payload.object_key,
            asset_id=payload.asset_id,
            output_bucket=ctx.output_bucket,
            continuation_token=payload.continuation_token,
            job_template=settings.mediaconvert_job_template,
            queue_arn=settings.mediaconvert_queue_arn,
            role_arn=settings.mediaconvert_role_arn,
            field_size=settings.callback_field_size,
            field_count=settings.callback_field_count,
        )
        job = await ctx.transcode_client.create_job(request)
        logger.info("Submitted transcode job %s for %s", job.job_id, payload.object_key)
        return job
