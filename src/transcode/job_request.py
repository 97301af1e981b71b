# src/transcode/job_request.py — v1
"""Build CreateJob requests for the external transcoding service.

Every video job selects the first audio track of program 1, writes one file
group per asset under the partner's output bucket, and carries the
continuation token plus asset identity in user metadata.
"""

from __future__ import annotations

from typing import Any

from syndication.callbacks.token_codec import encode_token_metadata
from syndication.storage.keys import video_destination

AUDIO_SELECTORS: dict[str, Any] = {
    "Audio Selector 1": {
        "DefaultSelection": "NOT_DEFAULT",
        "Offset": 0,
        "ProgramSelection": 1,
        "SelectorType": "TRACK",
        "Tracks": [1],
    }
}


def build_job_request(
    *,
    source_bucket: str,
    source_key: str,
    asset_id: str,
    output_bucket: str,
    continuation_token: str,
    job_template: str,
    queue_arn: str,
    role_arn: str,
    field_size: int = 256,
    field_count: int = 3,
) -> dict[str, Any]:
    """Return keyword arguments for ``mediaconvert.create_job``.

    Raises:
        ValidationError: If the token does not fit the metadata fields.
    """
    job_input = {
        "AudioSelectors": AUDIO_SELECTORS,
        "FileInput": f"s3://{source_bucket}/{source_key}",
        "PsiControl": "USE_PSI",
    }
    user_metadata = {
        "AssetId": asset_id,
        "Bucket": output_bucket,
        "Key": source_key,
        **encode_token_metadata(continuation_token, field_size, field_count),
    }
    request: dict[str, Any] = {
        "JobTemplate": job_template,
        "Role": role_arn,
        "Settings": {
            "Inputs": [job_input],
            "OutputGroups": [
                {
                    "Name": "File Group",
                    "OutputGroupSettings": {
                        "Type": "FILE_GROUP_SETTINGS",
                        "FileGroupSettings": {
                            "Destination": video_destination(output_bucket, asset_id),
                        },
                    },
                }
            ],
        },
        "UserMetadata": user_metadata,
    }
    if queue_arn:
        request["Queue"] = queue_arn
    return request
