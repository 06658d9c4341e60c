"""S3 storage helpers for uploaded audio."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from functools import lru_cache
from uuid import UUID

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from autobrief.config.settings import settings
from autobrief.services.aws import create_boto3_client

AUDIO_PREFIX = "audio-files"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StorageError(RuntimeError):
    """Raised when S3 asset persistence fails."""


@lru_cache(maxsize=1)
def _s3_client():
    return create_boto3_client("s3", region_name=settings.s3.region)


def object_url(bucket: str, key: str) -> str:
    region = settings.s3.region
    if region == "us-east-1":
        return f"https://{bucket}.s3.amazonaws.com/{key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


def sanitize_filename(filename: str | None) -> str:
    """Collapse characters S3 keys should not carry into underscores."""

    cleaned = _UNSAFE_CHARS.sub("_", (filename or "").strip()).strip("_")
    return cleaned or "recording"


def build_audio_object_key(
    user_id: UUID,
    filename: str | None,
    now: datetime | None = None,
) -> str:
    """Return ``audio-files/<user>/<timestamp>_<name>`` for an upload."""

    moment = now or datetime.now(timezone.utc)
    stamp = moment.isoformat().replace(":", "-").replace(".", "-")
    return f"{AUDIO_PREFIX}/{user_id}/{stamp}_{sanitize_filename(filename)}"


async def upload_user_audio(
    user_id: UUID,
    audio_bytes: bytes,
    *,
    filename: str | None,
    content_type: str,
    now: datetime | None = None,
) -> str:
    """Upload raw audio to S3 under the user's prefix and return its URL."""

    if not audio_bytes:
        raise StorageError("Audio payload for upload was empty.")
    bucket = settings.s3.bucket_name
    if not bucket:
        raise StorageError("S3 bucket name is not configured.")

    object_key = build_audio_object_key(user_id, filename, now)
    try:
        await run_in_threadpool(
            _s3_client().put_object,
            Bucket=bucket,
            Key=object_key,
            Body=audio_bytes,
            ContentType=content_type,
            CacheControl=f"max-age={settings.s3.cache_control_seconds}",
            Metadata={
                "original-name": sanitize_filename(filename),
                "size": str(len(audio_bytes)),
                "user-id": str(user_id),
            },
        )
    except (BotoCoreError, ClientError) as exc:
        raise StorageError(f"Failed to upload audio file: {exc}") from exc

    return object_url(bucket, object_key)


__all__ = [
    "AUDIO_PREFIX",
    "StorageError",
    "build_audio_object_key",
    "object_url",
    "sanitize_filename",
    "upload_user_audio",
]
