# src/transcode/mediaconvert_client.py — v1
"""AWS Elemental MediaConvert client (boto3 ``mediaconvert``)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from syndication.core.errors import ExternalServiceError
from syndication.transcode.base_client import BaseTranscodeClient
from syndication.transcode.models import TranscodeJob

logger = logging.getLogger(__name__)


class MediaConvertClient(BaseTranscodeClient):
    """Submit jobs to MediaConvert through its account-specific endpoint."""

    def __init__(
        self,
        endpoint_url: str | None = None,
        region: str | None = None,
        client: Any = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint_url: Account endpoint (``DescribeEndpoints`` result).
            region: AWS region (optional, uses boto3 default if not set).
            client: Pre-built boto3 mediaconvert client.
        """
        if client is None:
            import boto3

            kwargs: dict[str, Any] = {}
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            if region:
                kwargs["region_name"] = region
            client = boto3.client("mediaconvert", **kwargs)
        self._client = client

    async def create_job(self, request: dict[str, Any]) -> TranscodeJob:
        try:
            response = await asyncio.to_thread(self._client.create_job, **request)
        except (ClientError, BotoCoreError) as exc:
            raise ExternalServiceError(f"MediaConvert CreateJob failed: {exc}") from exc

        job = response.get("Job", {})
        result = TranscodeJob(
            job_id=str(job.get("Id", "")),
            status=str(job.get("Status", "SUBMITTED")),
            timing=job.get("Timing", {}) or {},
        )
        logger.info("Transcode job submitted: %s", result.job_id)
        return result
