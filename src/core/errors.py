# src/core/errors.py — v1
"""Error taxonomy shared by every component.

Units of work fail by raising one of these. Adapters translate library
exceptions (botocore, PIL, json) into this hierarchy and chain the original.
"""

from __future__ import annotations


class SyndicationError(Exception):
    """Root of all workflow errors."""


class ValidationError(SyndicationError):
    """Malformed input: missing AssetId, missing token fields, bad manifest."""


class NotFoundError(SyndicationError):
    """A referenced source object does not exist."""

    def __init__(self, bucket: str, key: str) -> None:
        self.bucket = bucket
        self.key = key
        super().__init__(f"Object not found: s3://{bucket}/{key}")


class ExternalServiceError(SyndicationError):
    """Object store or transcode service call failed."""


class TranscodeJobFailed(ExternalServiceError):
    """The external transcode job reported ERROR or CANCELED."""


class HeartbeatTimeoutError(SyndicationError):
    """A suspended task saw no heartbeat or terminal event within its idle window."""


class ExecutionTimeoutError(SyndicationError):
    """The execution exceeded its global wall-clock ceiling."""

    def __init__(self, execution_id: str, timeout_s: float) -> None:
        self.execution_id = execution_id
        self.timeout_s = timeout_s
        super().__init__(
            f"Execution '{execution_id}' exceeded timeout of {timeout_s:.0f}s"
        )


class DuplicateExecutionError(SyndicationError):
    """An execution for the same asset is already active."""

    def __init__(self, execution_id: str) -> None:
        self.execution_id = execution_id
        super().__init__(f"Execution '{execution_id}' is already active")
