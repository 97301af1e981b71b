# src/callbacks/token_codec.py — v1
"""Split continuation tokens across capped metadata fields and reassemble them.

The transcode service caps each user-metadata value at 256 characters, so a
token travels as three ordered fields and is rebuilt by plain concatenation.
"""

from __future__ import annotations

from collections.abc import Mapping

from syndication.core.errors import ValidationError

FIELD_PREFIX = "ContinuationToken"
DEFAULT_FIELD_SIZE = 256
DEFAULT_FIELD_COUNT = 3


def field_names(field_count: int = DEFAULT_FIELD_COUNT) -> list[str]:
    """Metadata keys carrying the token: ContinuationToken1..N."""
    return [f"{FIELD_PREFIX}{i}" for i in range(1, field_count + 1)]


def split_token(
    token: str,
    field_size: int = DEFAULT_FIELD_SIZE,
    field_count: int = DEFAULT_FIELD_COUNT,
) -> list[str]:
    """Split a token into exactly ``field_count`` ordered slices.

    Trailing slices are empty strings when the token is short.

    Raises:
        ValidationError: If the token is empty or exceeds field capacity.
    """
    if not token:
        raise ValidationError("Continuation token is empty")
    capacity = field_size * field_count
    if len(token) > capacity:
        raise ValidationError(
            f"Continuation token is {len(token)} chars, capacity is {capacity}"
        )
    return [token[i * field_size:(i + 1) * field_size] for i in range(field_count)]


def encode_token_metadata(
    token: str,
    field_size: int = DEFAULT_FIELD_SIZE,
    field_count: int = DEFAULT_FIELD_COUNT,
) -> dict[str, str]:
    """Return ``{ContinuationToken1: ..., ContinuationToken2: ..., ...}``."""
    slices = split_token(token, field_size, field_count)
    return dict(zip(field_names(field_count), slices))


def decode_token_metadata(
    user_metadata: Mapping[str, object],
    field_count: int = DEFAULT_FIELD_COUNT,
) -> str:
    """Reassemble a token from user metadata by ordered concatenation.

    Raises:
        ValidationError: If any token field is absent, or the result is empty.
    """
    missing = [name for name in field_names(field_count) if user_metadata.get(name) is None]
    if missing:
        raise ValidationError(f"Continuation token fields missing: {missing}")
    token = "".join(str(user_metadata[name]) for name in field_names(field_count))
    if not token:
        raise ValidationError("Continuation token fields are all empty")
    return token
