# src/transcode/models.py — v1
"""Transcode job models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class TranscodeJob(BaseModel):
    """Receipt of a submitted transcode job."""

    job_id: str
    status: str = "SUBMITTED"
    timing: dict[str, Any] = Field(default_factory=dict)
