"""Quota gate run before any remote call of a workflow run."""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

from .errors import QuotaExceededError
from .types import QuotaSnapshot

logger = logging.getLogger("autobrief.pipeline")


class QuotaSource(Protocol):
    async def get_quota(self, user_id: UUID) -> QuotaSnapshot:
        ...


async def check_quota(source: QuotaSource, user_id: UUID) -> QuotaSnapshot:
    """Raise :class:`QuotaExceededError` when the monthly allowance is used up."""

    snapshot = await source.get_quota(user_id)
    if snapshot.exhausted:
        logger.info(
            "Quota exhausted user=%s count=%s limit=%s",
            user_id,
            snapshot.count,
            snapshot.limit,
        )
        raise QuotaExceededError(snapshot.count, snapshot.limit)
    return snapshot


__all__ = ["QuotaSource", "check_quota"]
