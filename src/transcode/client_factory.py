# src/transcode/client_factory.py — v1
"""Factory: instantiate the transcode client from configuration."""

from __future__ import annotations

from syndication.config.settings import Settings
from syndication.transcode.base_client import BaseTranscodeClient


def create_transcode_client(settings: Settings) -> BaseTranscodeClient:
    """Create a MediaConvert client for the configured account endpoint."""
    from syndication.transcode.mediaconvert_client import MediaConvertClient

    return MediaConvertClient(
        endpoint_url=settings.mediaconvert_endpoint_url or None,
        region=settings.aws_region or None,
    )
