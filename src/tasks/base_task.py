# src/tasks/base_task.py — v1
"""Standard task interfaces for partner branches.

A branch runs three step tasks (Image, Metadata, Video) and one
postprocessor. Synchronous tasks return their ProcessingStepResult from
``execute``; callback tasks submit work to an external service and suspend
on the callback bridge until a status event resolves them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from syndication.core.errors import ValidationError
from syndication.core.models import ObjectRef, PartnerResult, ProcessingStepResult

if TYPE_CHECKING:
    from syndication.callbacks.bridge import CallbackBridge
    from syndication.config.settings import Settings
    from syndication.storage.base_object_store import BaseObjectStore
    from syndication.transcode.base_client import BaseTranscodeClient
    from syndication.transcode.models import TranscodeJob

logger = logging.getLogger(__name__)


class TaskPayload(BaseModel):
    """Input of one step task: ``{bucketName, objectKey, assetId[, token]}``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    bucket_name: str = Field(alias="bucketName")
    object_key: str = Field(alias="objectKey")
    asset_id: str = Field(alias="assetId")
    continuation_token: str | None = Field(default=None, alias="token")

    @classmethod
    def for_ref(cls, ref: ObjectRef, asset_id: str) -> TaskPayload:
        return cls(bucket_name=ref.bucket_name, object_key=ref.object_key, asset_id=asset_id)

    def with_token(self, token: str) -> TaskPayload:
        return self.model_copy(update={"continuation_token": token})


@dataclass
class TaskContext:
    """Collaborators and identity handed to every task of one branch."""

    execution_id: str
    partner_id: str
    output_bucket: str
    object_store: BaseObjectStore
    settings: Settings
    transcode_client: BaseTranscodeClient | None = None
    bridge: CallbackBridge | None = None


class BaseTask(ABC):
    """Standard interface for step tasks."""

    step_type: str = ""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique task identifier (e.g., 'ace.image')."""

    @abstractmethod
    async def execute(self, payload: TaskPayload, ctx: TaskContext) -> ProcessingStepResult:
        """Run the task to completion.

        Raises:
            SyndicationError subclass on failure. Tasks never retry.
        """


class BaseCallbackTask(BaseTask):
    """Task whose result arrives out-of-band through the callback bridge.

    ``execute`` issues a continuation token, registers it, calls ``submit``
    and then waits on the bridge. The submission's own return value is not
    the task result.
    """

    @abstractmethod
    async def submit(self, payload: TaskPayload, ctx: TaskContext) -> TranscodeJob:
        """Hand the work to the external service, carrying the payload token."""

    async def execute(self, payload: TaskPayload, ctx: TaskContext) -> ProcessingStepResult:
        if ctx.bridge is None:
            raise ValidationError(f"Task {self.name} needs a callback bridge")

        bridge = ctx.bridge
        token = bridge.issue_token()
        await bridge.register(
            token,
            execution_id=ctx.execution_id,
            asset_id=payload.asset_id,
            partner_id=ctx.partner_id,
            step_type=self.step_type,
        )
        try:
            job = await self.submit(payload.with_token(token), ctx)
        except BaseException:
            await bridge.abandon(token, "submission failed")
            raise

        logger.info("Task %s suspended on job %s", self.name, job.job_id)
        return await bridge.wait(
            token, idle_timeout=ctx.settings.video_heartbeat_timeout_seconds
        )


class BasePostprocessor(ABC):
    """Reduce a branch's ordered step results into its PartnerResult."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique postprocessor identifier."""

    @abstractmethod
    async def execute(
        self, results: list[ProcessingStepResult], ctx: TaskContext
    ) -> PartnerResult:
        """Run postprocessing over results ordered Image, Metadata, Video."""
