# src/storage/keys.py — v1
"""Object key conventions for intake folders and partner outputs."""

from __future__ import annotations

from syndication.core.errors import ValidationError


def folder_of(key: str) -> str:
    """Return the folder containing an object key ("" at bucket root)."""
    parts = key.split("/")
    return "/".join(parts[:-1])


def manifest_key(folder: str, manifest_filename: str = "manifest.json") -> str:
    return f"{folder}/{manifest_filename}"


def metadata_output_key(asset_id: str, extension: str = "xml") -> str:
    """Output key of the converted metadata document."""
    return f"{asset_id}/metadata.{extension}"


def video_destination(bucket: str, asset_id: str) -> str:
    """File-group destination URI for transcoded renditions."""
    return f"s3://{bucket}/{asset_id}/"


def strip_bucket_prefix(uri: str, bucket: str) -> str:
    """Turn ``s3://bucket/some/key`` into ``some/key``.

    Raises:
        ValidationError: If the URI does not point into ``bucket``.
    """
    prefix = f"s3://{bucket}/"
    if not uri.startswith(prefix):
        raise ValidationError(f"Output path {uri!r} is not inside bucket {bucket!r}")
    return uri[len(prefix):]
