# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific values: buckets, MediaConvert
endpoint and identifiers, callback token geometry, execution timeout and
logging. Components receive these through their constructors.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Hard ceiling imposed by the transcode service: 3 metadata fields x 256 chars.
MAX_TOKEN_CAPACITY = 768


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Intake ===
    source_bucket: str = "syndication.source"
    manifest_filename: str = "manifest.json"

    # === Partners ===
    partners_enabled: str = ""
    entitlement_policy: dict[str, bool] = Field(
        default_factory=lambda: {"ACE": True, "OtherProvider": False}
    )
    partner_output_buckets: dict[str, str] = Field(
        default_factory=lambda: {"ACE": "syndication.partner.ace"}
    )
    default_output_bucket: str = "syndication.partner.default"

    # === Object store ===
    object_store_backend: Literal["s3", "local"] = "s3"
    local_store_root: Path | None = None
    aws_region: str = ""
    s3_endpoint_url: str = ""

    # === MediaConvert ===
    mediaconvert_endpoint_url: str = ""
    mediaconvert_role_arn: str = ""
    mediaconvert_queue_arn: str = ""
    mediaconvert_job_template: str = "ACE-TranscodingJobTemplate"

    # === Image task ===
    watermark_path: str = "http://awsmedia.s3.amazonaws.com/AWS_Logo_PoweredBy_127px.png"
    watermark_padding: int = 10
    image_output_format: str = "JPEG"

    # === Metadata task ===
    metadata_output_extension: str = "xml"
    metadata_indent: int = 4

    # === Callbacks ===
    callback_token_bytes: int = 480
    callback_field_size: int = 256
    callback_field_count: int = 3
    video_heartbeat_timeout_seconds: float | None = None
    callback_retention_seconds: float = 3600.0

    # === Execution ===
    execution_timeout_seconds: float = 3600.0
    execution_name_prefix: str = "S3UploadTriggeredExecution-"
    execution_history: int = 1000

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("watermark_padding", "metadata_indent")
    @classmethod
    def validate_non_negative(cls, v: int, info) -> int:  # noqa: N805
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        capacity = self.callback_field_size * self.callback_field_count
        if capacity > MAX_TOKEN_CAPACITY:
            errors.append(
                f"CALLBACK_FIELD_SIZE x CALLBACK_FIELD_COUNT ({capacity}) "
                f"exceeds {MAX_TOKEN_CAPACITY}"
            )
        if self.token_length > capacity:
            errors.append(
                f"CALLBACK_TOKEN_BYTES yields {self.token_length} chars, "
                f"above field capacity {capacity}"
            )

        if self.execution_timeout_seconds <= 0:
            errors.append("EXECUTION_TIMEOUT_SECONDS must be > 0")
        if self.execution_history < 1:
            errors.append("EXECUTION_HISTORY must be >= 1")
        if self.callback_retention_seconds < 0:
            errors.append("CALLBACK_RETENTION_SECONDS must be >= 0")

        if (
            self.video_heartbeat_timeout_seconds is not None
            and self.video_heartbeat_timeout_seconds <= 0
        ):
            errors.append("VIDEO_HEARTBEAT_TIMEOUT_SECONDS must be > 0 when set")

        if self.object_store_backend == "local" and self.local_store_root is None:
            errors.append("OBJECT_STORE_BACKEND=local requires LOCAL_STORE_ROOT")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def token_length(self) -> int:
        """Length of an issued token (URL-safe base64 of callback_token_bytes)."""
        return math.ceil(4 * self.callback_token_bytes / 3)

    @property
    def partners_enabled_list(self) -> list[str]:
        """Parse comma-separated enabled partner ids."""
        return [p.strip() for p in self.partners_enabled.split(",") if p.strip()]

    def output_bucket_for(self, partner_id: str) -> str:
        """Return the exclusive output bucket of a partner."""
        return self.partner_output_buckets.get(partner_id, self.default_output_bucket)


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
