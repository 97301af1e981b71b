# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides settings bound to a temp directory, a filesystem object store,
in-memory images, seeded asset folders and a fake transcode client.
No external dependencies: no AWS calls, no network.
"""

from __future__ import annotations

import asyncio
import io
import json
from pathlib import Path
from typing import Any

import pytest
from PIL import Image

from syndication.config.settings import Settings
from syndication.core.models import Asset, ObjectRef
from syndication.storage.local_store import LocalObjectStore
from syndication.transcode.base_client import BaseTranscodeClient
from syndication.transcode.models import TranscodeJob

SOURCE_BUCKET = "intake"
ACE_BUCKET = "out-ace"

SAMPLE_METADATA: dict[str, Any] = {
    "asset": {
        "_attributes": {"id": "A1"},
        "title": "Evening News",
        "duration": 1800,
        "tags": {"tag": ["news", "evening"]},
        "rights": {"territory": "US", "exclusive": True},
    }
}


def make_image_bytes(
    size: tuple[int, int] = (64, 48),
    color: tuple[int, int, int] = (200, 30, 30),
    fmt: str = "JPEG",
) -> bytes:
    """Encode a solid-color image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeTranscodeClient(BaseTranscodeClient):
    """Record create_job requests and build matching status events."""

    def __init__(self, store: LocalObjectStore | None = None, fail: bool = False) -> None:
        self.store = store
        self.fail = fail
        self.requests: list[dict[str, Any]] = []

    async def create_job(self, request: dict[str, Any]) -> TranscodeJob:
        if self.fail:
            from syndication.core.errors import ExternalServiceError

            raise ExternalServiceError("CreateJob rejected")
        self.requests.append(request)
        return TranscodeJob(job_id=f"job-{len(self.requests)}")

    async def wait_for_jobs(self, count: int = 1, timeout: float = 2.0) -> None:
        deadline = asyncio.get_running_loop().time() + timeout
        while len(self.requests) < count:
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError(f"Expected {count} job(s), got {len(self.requests)}")
            await asyncio.sleep(0.01)

    def output_key(self, index: int = 0) -> str:
        request = self.requests[index]
        source = request["UserMetadata"]["Key"]
        stem = Path(source).stem
        return f"{request['UserMetadata']['AssetId']}/{stem}_720p.mp4"

    def event(
        self,
        index: int = 0,
        status: str = "COMPLETE",
        error_message: str | None = None,
        drop_fields: tuple[str, ...] = (),
    ) -> dict[str, Any]:
        """Build a job state change event for the index-th submitted job."""
        metadata = dict(self.requests[index]["UserMetadata"])
        for name in drop_fields:
            metadata.pop(name, None)
        detail: dict[str, Any] = {
            "status": status,
            "jobId": f"job-{index + 1}",
            "userMetadata": metadata,
        }
        if status == "COMPLETE":
            bucket = metadata.get("Bucket", "")
            detail["outputGroupDetails"] = [
                {"outputDetails": [{"outputFilePaths": [f"s3://{bucket}/{self.output_key(index)}"]}]}
            ]
        if error_message is not None:
            detail["errorMessage"] = error_message
        return {"detail-type": "MediaConvert Job State Change", "detail": detail}

    async def finish(self, index: int = 0, body: bytes = b"rendition") -> dict[str, Any]:
        """Write the rendition to the output bucket and return COMPLETE."""
        assert self.store is not None
        bucket = self.requests[index]["UserMetadata"]["Bucket"]
        await self.store.put(bucket, self.output_key(index), body)
        return self.event(index, "COMPLETE")


# === FIXTURES ===


@pytest.fixture
def watermark_file(tmp_path: Path) -> Path:
    """Small RGBA watermark on disk."""
    path = tmp_path / "watermark.png"
    Image.new("RGBA", (16, 8), (0, 0, 255, 255)).save(path, format="PNG")
    return path


@pytest.fixture
def settings(tmp_path: Path, watermark_file: Path) -> Settings:
    """Settings for a local-store deployment, isolated from any .env file."""
    return Settings(
        _env_file=None,
        object_store_backend="local",
        local_store_root=tmp_path / "store",
        source_bucket=SOURCE_BUCKET,
        partner_output_buckets={"ACE": ACE_BUCKET},
        default_output_bucket="out-default",
        watermark_path=str(watermark_file),
        mediaconvert_role_arn="arn:aws:iam::123456789012:role/MediaConvert",
        mediaconvert_queue_arn="arn:aws:mediaconvert:eu-west-1:123456789012:queues/Default",
        log_level="DEBUG",
        log_format="text",
    )


@pytest.fixture
def store(settings: Settings) -> LocalObjectStore:
    assert settings.local_store_root is not None
    return LocalObjectStore(settings.local_store_root)


@pytest.fixture
def transcode_client(store: LocalObjectStore) -> FakeTranscodeClient:
    return FakeTranscodeClient(store)


@pytest.fixture
def seed_asset(store: LocalObjectStore):
    """Write an asset folder; returns a coroutine function.

    ``skip`` names manifest entries (Video/Image/Metadata) to leave out.
    """

    async def _seed(
        folder: str = "A1",
        skip: tuple[str, ...] = (),
        with_manifest: bool = True,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, str]:
        files = {
            "Video": "clip.mp4",
            "Image": "poster.jpg",
            "Metadata": "meta.json",
        }
        bodies = {
            "Video": b"\x00\x00\x00\x18ftypmp42",
            "Image": make_image_bytes(),
            "Metadata": json.dumps(metadata or SAMPLE_METADATA).encode("utf-8"),
        }
        for step, name in files.items():
            if step not in skip:
                await store.put(SOURCE_BUCKET, f"{folder}/{name}", bodies[step])
        if with_manifest:
            await store.put(
                SOURCE_BUCKET, f"{folder}/manifest.json", json.dumps(files).encode("utf-8")
            )
        return {step: f"{folder}/{name}" for step, name in files.items()}

    return _seed


@pytest.fixture
def sample_metadata() -> dict[str, Any]:
    """Copy of the metadata document seeded by seed_asset."""
    return json.loads(json.dumps(SAMPLE_METADATA))


@pytest.fixture
def sample_asset() -> Asset:
    """Asset A1 pointing at the default seeded files."""
    return Asset(
        asset_id="A1",
        video=ObjectRef(bucket_name=SOURCE_BUCKET, object_key="A1/clip.mp4"),
        image=ObjectRef(bucket_name=SOURCE_BUCKET, object_key="A1/poster.jpg"),
        metadata=ObjectRef(bucket_name=SOURCE_BUCKET, object_key="A1/meta.json"),
    )


@pytest.fixture
def s3_event():
    """Build an object-created notification for one or more keys."""

    def _event(*keys: str, bucket: str = SOURCE_BUCKET) -> dict[str, Any]:
        return {
            "Records": [
                {"s3": {"bucket": {"name": bucket}, "object": {"key": key}}}
                for key in keys
            ]
        }

    return _event


@pytest.fixture
def make_image():
    """Factory encoding solid-color images."""
    return make_image_bytes


@pytest.fixture
def failing_transcode_client(store: LocalObjectStore) -> FakeTranscodeClient:
    return FakeTranscodeClient(store, fail=True)


@pytest.fixture
def bridge(settings: Settings):
    from syndication.callbacks.bridge import CallbackBridge

    return CallbackBridge(
        token_bytes=settings.callback_token_bytes,
        field_size=settings.callback_field_size,
        field_count=settings.callback_field_count,
    )


@pytest.fixture
def task_context(settings, store, transcode_client, bridge):
    """TaskContext for the ACE branch of execution 'exec-1'."""
    from syndication.tasks.base_task import TaskContext

    return TaskContext(
        execution_id="exec-1",
        partner_id="ACE",
        output_bucket=ACE_BUCKET,
        object_store=store,
        settings=settings,
        transcode_client=transcode_client,
        bridge=bridge,
    )
