"""In-memory playback URLs for bound audio.

A URL keeps the audio bytes alive until it is revoked, so every owner must
revoke the URL it minted when the asset is replaced or the workflow resets.
"""

from __future__ import annotations

import logging
import threading
from uuid import uuid4

logger = logging.getLogger(__name__)

_URL_PREFIX = "blob:autobrief/"


class PlaybackUrlRegistry:
    """Mint, resolve, and revoke opaque playback URLs."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def mint(self, data: bytes, media_type: str) -> str:
        url = f"{_URL_PREFIX}{uuid4().hex}"
        with self._lock:
            self._entries[url] = (data, media_type)
        return url

    def resolve(self, url: str) -> tuple[bytes, str] | None:
        with self._lock:
            return self._entries.get(url)

    def revoke(self, url: str | None) -> bool:
        """Release the payload behind ``url``; returns False when it was unknown."""

        if not url:
            return False
        with self._lock:
            released = self._entries.pop(url, None) is not None
        if not released:
            logger.debug("Playback URL %s was already revoked", url)
        return released

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


playback_urls = PlaybackUrlRegistry()


__all__ = ["PlaybackUrlRegistry", "playback_urls"]
