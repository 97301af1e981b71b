# tests/unit/transcode/test_job_request.py — v1
"""Tests for transcode/job_request.py — CreateJob request shape."""

from __future__ import annotations

import pytest

from syndication.callbacks.token_codec import decode_token_metadata
from syndication.core.errors import ValidationError
from syndication.transcode.job_request import AUDIO_SELECTORS, build_job_request

TOKEN = "t" * 640


def _request(**overrides):
    kwargs = dict(
        source_bucket="intake",
        source_key="A1/clip.mp4",
        asset_id="A1",
        output_bucket="out-ace",
        continuation_token=TOKEN,
        job_template="ACE-TranscodingJobTemplate",
        queue_arn="arn:queue",
        role_arn="arn:role",
    )
    kwargs.update(overrides)
    return build_job_request(**kwargs)


class TestBuildJobRequest:
    def test_input(self):
        job_input = _request()["Settings"]["Inputs"][0]
        assert job_input["FileInput"] == "s3://intake/A1/clip.mp4"
        assert job_input["PsiControl"] == "USE_PSI"
        assert job_input["AudioSelectors"] == AUDIO_SELECTORS

    def test_audio_selection_policy(self):
        selector = AUDIO_SELECTORS["Audio Selector 1"]
        assert selector["SelectorType"] == "TRACK"
        assert selector["Tracks"] == [1]
        assert selector["DefaultSelection"] == "NOT_DEFAULT"

    def test_destination_keyed_by_asset(self):
        group = _request()["Settings"]["OutputGroups"][0]
        assert group["Name"] == "File Group"
        settings = group["OutputGroupSettings"]
        assert settings["Type"] == "FILE_GROUP_SETTINGS"
        assert settings["FileGroupSettings"]["Destination"] == "s3://out-ace/A1/"

    def test_template_role_queue(self):
        request = _request()
        assert request["JobTemplate"] == "ACE-TranscodingJobTemplate"
        assert request["Role"] == "arn:role"
        assert request["Queue"] == "arn:queue"

    def test_no_queue_when_unset(self):
        assert "Queue" not in _request(queue_arn="")

    def test_user_metadata_carries_identity_and_token(self):
        metadata = _request()["UserMetadata"]
        assert metadata["AssetId"] == "A1"
        assert metadata["Bucket"] == "out-ace"
        assert metadata["Key"] == "A1/clip.mp4"
        assert all(len(v) <= 256 for v in metadata.values())
        assert decode_token_metadata(metadata) == TOKEN

    def test_token_over_capacity(self):
        with pytest.raises(ValidationError):
            _request(continuation_token="t" * 800)
