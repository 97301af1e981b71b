# src/callbacks/models.py — v2
"""Callback models: transcode status events and pending callbacks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from syndication.core.errors import ValidationError
from syndication.core.models import CallbackState

CallbackOutcome = Literal["RESOLVED", "HEARTBEAT", "IGNORED", "REJECTED"]

HEARTBEAT_STATUSES = frozenset({"PROGRESSING", "STATUS_UPDATE"})
FAILURE_STATUSES = frozenset({"ERROR", "CANCELED"})
SUCCESS_STATUS = "COMPLETE"


class TranscodeStatusEvent(BaseModel):
    """One job state change delivered by the external transcode service."""

    status: str
    job_id: str = ""
    output_paths: list[str] = Field(default_factory=list)
    error_message: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> TranscodeStatusEvent:
        """Parse a "MediaConvert Job State Change" event (or its ``detail``).

        Raises:
            ValidationError: If the detail is not an object or carries no
                status.
        """
        detail = event.get("detail", event)
        if not isinstance(detail, dict):
            raise ValidationError("Status event detail must be an object")
        status = detail.get("status")
        if not isinstance(status, str) or not status:
            raise ValidationError("Status event carries no status")

        output_paths: list[str] = []
        for group in detail.get("outputGroupDetails") or []:
            for output in group.get("outputDetails") or []:
                output_paths.extend(output.get("outputFilePaths") or [])

        try:
            return cls(
                status=status,
                job_id=str(detail.get("jobId", "")),
                output_paths=output_paths,
                error_message=detail.get("errorMessage"),
                user_metadata=detail.get("userMetadata") or {},
            )
        except PydanticValidationError as exc:
            raise ValidationError(f"Malformed status event: {exc}") from exc


class PendingCallback(BaseModel):
    """Correlates a continuation token with one suspended task."""

    token: str
    execution_id: str
    asset_id: str
    partner_id: str
    step_type: str = "Video"
    state: CallbackState = "PENDING"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_heartbeat_at: datetime | None = None
    heartbeats: int = 0
    resolved_at: datetime | None = None
    error: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.state == "PENDING"
