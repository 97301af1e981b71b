# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

Field aliases carry the wire names (AssetId, Bucket, Key, ...) used in task
payloads, callback metadata and the final report; Python code uses the
snake_case attribute names. Dump with ``by_alias=True`` for the wire shape.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from syndication.core.errors import ValidationError

StepType = Literal["Image", "Metadata", "Video"]
PartnerStatus = Literal["PROCESS_OK", "IGNORED", "ERROR"]
BranchState = Literal["PENDING", "SKIPPED", "RUNNING", "JOINED", "FAILED"]
ExecutionStatus = Literal["RUNNING", "COMPLETE", "FAILED"]
CallbackState = Literal["PENDING", "RESOLVED", "ABANDONED", "TIMED_OUT"]

# Stable order in which step results are handed to postprocessors.
STEP_ORDER: tuple[str, ...] = ("Image", "Metadata", "Video")

# Partner id -> entitled.
EntitlementDecision = dict[str, bool]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


# === INPUTS ===


class ObjectRef(_WireModel):
    """Location of one object in a store: ``{bucketName, objectKey}``."""

    bucket_name: str = Field(alias="bucketName")
    object_key: str = Field(alias="objectKey")

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket_name}/{self.object_key}"


class Asset(_WireModel):
    """Content package identity plus its three input pointers.

    Immutable once an execution starts. ``asset_id`` is the intake folder path.
    """

    asset_id: str = Field(default="", alias="AssetId")
    video: ObjectRef = Field(alias="Video")
    image: ObjectRef = Field(alias="Image")
    metadata: ObjectRef = Field(alias="Metadata")
    attributes: dict[str, Any] = Field(default_factory=dict, alias="Attributes")

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Asset:
        """Build an Asset from an execution input payload.

        Raises:
            ValidationError: If the payload does not describe an asset.
        """
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError(f"Malformed asset payload: {exc}") from exc

    def ref_for(self, step_type: str) -> ObjectRef:
        """Return the input pointer consumed by a given step type."""
        refs = {"Image": self.image, "Metadata": self.metadata, "Video": self.video}
        try:
            return refs[step_type]
        except KeyError as exc:
            raise ValidationError(f"Unknown step type: {step_type!r}") from exc


class Manifest(_WireModel):
    """Companion file naming the video, image and metadata files of a folder."""

    video: str = Field(alias="Video", min_length=1)
    image: str = Field(alias="Image", min_length=1)
    metadata: str = Field(alias="Metadata", min_length=1)

    @classmethod
    def parse(cls, raw: bytes | str) -> Manifest:
        """Parse a manifest document.

        Raises:
            ValidationError: If the document is not JSON or lacks a field.
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValidationError(f"Manifest is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValidationError("Manifest must be a JSON object")
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError(f"Malformed manifest: {exc}") from exc

    def object_keys(self, folder: str) -> dict[str, str]:
        """Map step type -> full object key inside ``folder``."""
        return {
            "Video": f"{folder}/{self.video}",
            "Image": f"{folder}/{self.image}",
            "Metadata": f"{folder}/{self.metadata}",
        }


# === RESULTS ===


class ProcessingStepResult(_WireModel):
    """Normalized output reference for one completed sub-task."""

    asset_id: str = Field(alias="AssetId")
    bucket: str = Field(alias="Bucket")
    key: str = Field(alias="Key")
    type: StepType = Field(alias="Type")


class PartnerResult(_WireModel):
    """Terminal value of one partner branch."""

    provider: str = Field(alias="Provider")
    status: PartnerStatus = Field(alias="Status")
    output: dict[str, Any] | None = Field(default=None, alias="Output")

    @classmethod
    def ignored(cls, provider: str) -> PartnerResult:
        return cls(provider=provider, status="IGNORED")

    @classmethod
    def error(cls, provider: str, message: str, failed_tasks: list[str] | None = None) -> PartnerResult:
        output: dict[str, Any] = {"Error": message}
        if failed_tasks:
            output["FailedTasks"] = failed_tasks
        return cls(provider=provider, status="ERROR", output=output)


class FinalReport(_WireModel):
    """Aggregated report handed to the reporting sink."""

    execution_id: str = Field(alias="ExecutionId")
    asset_id: str = Field(alias="AssetId")
    partners: list[PartnerResult] = Field(alias="Partners")
    completed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="CompletedAt"
    )

    def status_by_partner(self) -> dict[str, str]:
        """Return partner id -> status."""
        return {p.provider: p.status for p in self.partners}

    def get(self, provider: str) -> PartnerResult | None:
        for partner in self.partners:
            if partner.provider == provider:
                return partner
        return None
