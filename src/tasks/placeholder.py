# src/tasks/placeholder.py — v1
"""Placeholder tasks for partners whose processing is not defined yet.

They dispatch nothing and return empty references, so a partner can be
declared and entitled before its real pipeline exists.
"""

from __future__ import annotations

from syndication.core.models import PartnerResult, ProcessingStepResult
from syndication.tasks.base_task import BasePostprocessor, BaseTask, TaskContext, TaskPayload


class _PlaceholderTask(BaseTask):
    @property
    def name(self) -> str:
        return f"placeholder_{self.step_type.lower()}"

    async def execute(self, payload: TaskPayload, ctx: TaskContext) -> ProcessingStepResult:
        return ProcessingStepResult(asset_id="", bucket="", key="", type=self.step_type)


class PlaceholderImageTask(_PlaceholderTask):
    step_type = "Image"


class PlaceholderMetadataTask(_PlaceholderTask):
    step_type = "Metadata"


class PlaceholderVideoTask(_PlaceholderTask):
    step_type = "Video"


class PlaceholderPostprocessor(BasePostprocessor):
    """Report PROCESS_OK with an empty output."""

    @property
    def name(self) -> str:
        return "placeholder_postprocess"

    async def execute(
        self, results: list[ProcessingStepResult], ctx: TaskContext
    ) -> PartnerResult:
        return PartnerResult(provider=ctx.partner_id, status="PROCESS_OK", output={})
