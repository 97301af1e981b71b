# src/pipeline/identity.py — v1
"""Execution identity derived deterministically from the AssetId."""

from __future__ import annotations

import hashlib
import re

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")
# Execution names are capped at 80 characters by the state-machine service.
MAX_NAME_LENGTH = 80
_DIGEST_LENGTH = 12


def execution_name(asset_id: str, prefix: str = "S3UploadTriggeredExecution-") -> str:
    """Return ``<prefix><sanitized folder>-<sha256[:12]>`` for an asset.

    The digest keeps names of distinct assets distinct after sanitizing and
    truncation; the same asset always maps to the same name.
    """
    digest = hashlib.sha256(asset_id.encode("utf-8")).hexdigest()[:_DIGEST_LENGTH]
    readable = _UNSAFE.sub("-", asset_id).strip("-")
    room = MAX_NAME_LENGTH - len(prefix) - _DIGEST_LENGTH - 1
    readable = readable[:max(room, 0)].rstrip("-")
    return f"{prefix}{readable}-{digest}" if readable else f"{prefix}{digest}"
