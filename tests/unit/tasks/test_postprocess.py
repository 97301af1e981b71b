# tests/unit/tasks/test_postprocess.py — v1
"""Tests for tasks/postprocess.py — checksum report."""

from __future__ import annotations

import hashlib

import pytest

from syndication.core.errors import NotFoundError
from syndication.core.models import ProcessingStepResult
from syndication.tasks.postprocess import ChecksumPostprocessor


def _result(step: str, key: str, bucket: str = "out-ace") -> ProcessingStepResult:
    return ProcessingStepResult(asset_id="A1", bucket=bucket, key=key, type=step)


class TestChecksumPostprocessor:
    @pytest.mark.asyncio
    async def test_checksums_in_result_order(self, task_context, store):
        bodies = {"A1/poster.jpg": b"img", "A1/metadata.xml": b"<a/>", "A1/clip_720p.mp4": b"vid"}
        for key, body in bodies.items():
            await store.put("out-ace", key, body)
        results = [
            _result("Image", "A1/poster.jpg"),
            _result("Metadata", "A1/metadata.xml"),
            _result("Video", "A1/clip_720p.mp4"),
        ]

        report = await ChecksumPostprocessor().execute(results, task_context)
        assert report.status == "PROCESS_OK"
        assert report.provider == "ACE"
        assert report.output == {
            "Bucket": "out-ace",
            "Files": list(bodies),
            "Checksums": [hashlib.md5(b).hexdigest() for b in bodies.values()],
        }

    @pytest.mark.asyncio
    async def test_bucket_of_first_result(self, task_context, store):
        await store.put("first", "k1", b"1")
        await store.put("second", "k2", b"2")
        report = await ChecksumPostprocessor().execute(
            [_result("Image", "k1", "first"), _result("Metadata", "k2", "second")],
            task_context,
        )
        assert report.output["Bucket"] == "first"

    @pytest.mark.asyncio
    async def test_missing_output(self, task_context):
        with pytest.raises(NotFoundError):
            await ChecksumPostprocessor().execute([_result("Image", "gone.jpg")], task_context)

    @pytest.mark.asyncio
    async def test_wire_shape(self, task_context, store):
        await store.put("out-ace", "A1/poster.jpg", b"x")
        report = await ChecksumPostprocessor().execute(
            [_result("Image", "A1/poster.jpg")], task_context
        )
        wire = report.model_dump(by_alias=True)
        assert set(wire) == {"Provider", "Status", "Output"}
