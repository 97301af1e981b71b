# src/tasks/postprocess.py — v1
"""Checksum postprocessor: MD5 digest of every branch output object."""

from __future__ import annotations

import asyncio
import hashlib
import logging

from syndication.core.models import PartnerResult, ProcessingStepResult
from syndication.tasks.base_task import BasePostprocessor, TaskContext

logger = logging.getLogger(__name__)


class ChecksumPostprocessor(BasePostprocessor):
    """Produce ``{Bucket, Files, Checksums}`` for a partner's outputs.

    ``Bucket`` is the bucket of the first result; results arrive in the
    stable Image, Metadata, Video order.
    """

    @property
    def name(self) -> str:
        return "checksum"

    async def execute(
        self, results: list[ProcessingStepResult], ctx: TaskContext
    ) -> PartnerResult:
        bodies = await asyncio.gather(
            *(ctx.object_store.get(r.bucket, r.key) for r in results)
        )
        checksums = [hashlib.md5(body).hexdigest() for body in bodies]
        files = [r.key for r in results]

        logger.info("Computed %d checksums for %s", len(checksums), ctx.partner_id)
        return PartnerResult(
            provider=ctx.partner_id,
            status="PROCESS_OK",
            output={
                "Bucket": results[0].bucket if results else ctx.output_bucket,
                "Checksums": checksums,
                "Files": files,
            },
        )
