# src/transcode/base_client.py — v1
"""Abstract transcode service interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from syndication.transcode.models import TranscodeJob


class BaseTranscodeClient(ABC):
    """Submit long-running transcode jobs.

    Completion is reported out-of-band through status events, never through
    the return value of ``create_job``.
    """

    @abstractmethod
    async def create_job(self, request: dict[str, Any]) -> TranscodeJob:
        """Submit a job.

        Raises:
            ExternalServiceError: If the service rejects or fails the call.
        """
