# src/config/partners.py — v1
"""Declarative partner branch configuration.

Each entry describes one partner branch: the task class running each step,
the postprocessor joining them, and which steps complete through the
callback bridge. Adding a partner means adding an entry here.
Declared order is the order partners appear in the final report.
"""

from __future__ import annotations

from typing import Any

# Fully qualified class paths for dynamic import by pipeline/registry.py.
PARTNER_REGISTRY: list[dict[str, Any]] = [
    {
        "partner_id": "ACE",
        "tasks": {
            "Image": "syndication.tasks.image_task.ImageWatermarkTask",
            "Metadata": "syndication.tasks.metadata_task.MetadataXmlTask",
            "Video": "syndication.tasks.video_task.VideoTranscodeTask",
        },
        "postprocess": "syndication.tasks.postprocess.ChecksumPostprocessor",
        "callback_steps": ["Video"],
    },
    # Processing for this partner is not defined yet.
    {
        "partner_id": "OtherProvider",
        "tasks": {
            "Image": "syndication.tasks.placeholder.PlaceholderImageTask",
            "Metadata": "syndication.tasks.placeholder.PlaceholderMetadataTask",
            "Video": "syndication.tasks.placeholder.PlaceholderVideoTask",
        },
        "postprocess": "syndication.tasks.placeholder.PlaceholderPostprocessor",
        "callback_steps": [],
    },
]
