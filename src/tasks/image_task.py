# src/tasks/image_task.py — v1
"""Image task: greyscale + watermark, written under the same object key.

The watermark is anchored ``padding`` pixels from the left and bottom edges
of the source image. Pillow work runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import io
import logging
import urllib.error
import urllib.request
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from syndication.core.errors import ExternalServiceError, ValidationError
from syndication.core.models import ProcessingStepResult
from syndication.tasks.base_task import BaseTask, TaskContext, TaskPayload

logger = logging.getLogger(__name__)


def load_watermark_bytes(source: str, timeout: float = 30.0) -> bytes:
    """Read watermark bytes from a local path or an http(s) URL.

    Raises:
        ExternalServiceError: If the watermark cannot be read.
    """
    if source.startswith(("http://", "https://")):
        try:
            with urllib.request.urlopen(source, timeout=timeout) as resp:
                return resp.read()
        except (urllib.error.URLError, OSError) as exc:
            raise ExternalServiceError(f"Cannot fetch watermark {source}: {exc}") from exc
    try:
        return Path(source).read_bytes()
    except OSError as exc:
        raise ExternalServiceError(f"Cannot read watermark {source}: {exc}") from exc


def apply_watermark(
    image_bytes: bytes,
    watermark: Image.Image,
    padding: int = 10,
    image_format: str = "JPEG",
) -> bytes:
    """Greyscale ``image_bytes``, paste ``watermark`` bottom-left, re-encode.

    Raises:
        ValidationError: If the source bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as source:
            canvas = ImageOps.grayscale(source).convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError(f"Cannot decode image: {exc}") from exc

    position = (padding, canvas.height - watermark.height - padding)
    canvas.paste(watermark, position, watermark)

    buffer = io.BytesIO()
    canvas.save(buffer, format=image_format)
    return buffer.getvalue()


class ImageWatermarkTask(BaseTask):
    """Watermark the asset image into the partner's output bucket."""

    step_type = "Image"

    def __init__(self) -> None:
        self._watermarks: dict[str, Image.Image] = {}

    @property
    def name(self) -> str:
        return "image_watermark"

    async def _watermark(self, source: str) -> Image.Image:
        cached = self._watermarks.get(source)
        if cached is not None:
            return cached
        raw = await asyncio.to_thread(load_watermark_bytes, source)
        try:
            with Image.open(io.BytesIO(raw)) as img:
                watermark = img.convert("RGBA")
        except (UnidentifiedImageError, OSError) as exc:
            raise ExternalServiceError(f"Watermark {source} is not an image: {exc}") from exc
        self._watermarks[source] = watermark
        return watermark

    async def execute(self, payload: TaskPayload, ctx: TaskContext) -> ProcessingStepResult:
        settings = ctx.settings
        body = await ctx.object_store.get(payload.bucket_name, payload.object_key)
        watermark = await self._watermark(settings.watermark_path)

        output = await asyncio.to_thread(
            apply_watermark,
            body,
            watermark,
            settings.watermark_padding,
            settings.image_output_format,
        )
        await ctx.object_store.put(
            ctx.output_bucket,
            payload.object_key,
            output,
            content_type=Image.MIME.get(settings.image_output_format.upper()),
        )
        logger.info(
            "Watermarked %s -> s3://%s/%s (%d bytes)",
            payload.object_key, ctx.output_bucket, payload.object_key, len(output),
        )
        return ProcessingStepResult(
            asset_id=payload.asset_id,
            bucket=ctx.output_bucket,
            key=payload.object_key,
            type="Image",
        )
