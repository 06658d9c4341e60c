"""Storage stage: best-effort copy of the raw audio to object storage."""

from __future__ import annotations

from uuid import UUID

from autobrief.services.storage import StorageError, upload_user_audio

from .errors import StorageUploadError
from .types import AudioAsset


async def store_audio(user_id: UUID, asset: AudioAsset) -> str:
    """Upload ``asset`` under the user's prefix and return its durable URL."""

    try:
        return await upload_user_audio(
            user_id,
            asset.data,
            filename=asset.name,
            content_type=asset.media_type,
        )
    except StorageError as exc:
        raise StorageUploadError(str(exc)) from exc


__all__ = ["store_audio"]
