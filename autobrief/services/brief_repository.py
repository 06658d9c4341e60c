"""Persistence for workflow results: transcripts, briefs, and usage counters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Callable, Mapping, Optional
from uuid import UUID

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from autobrief.config.settings import settings
from autobrief.database import session_scope
from autobrief.models.brief import Brief
from autobrief.models.transcript import Transcript, utc_now
from autobrief.models.user_profile import UNLIMITED_BRIEFS, UserProfile
from autobrief.pipelines.brief.errors import PersistenceError, QuotaExceededError
from autobrief.pipelines.brief.types import QuotaSnapshot, SavedRun

logger = logging.getLogger(__name__)

SessionFactoryType = Callable[[], AsyncContextManager[AsyncSession]]

AUDIO_UPLOAD_SOURCE = "audio_upload"


class BriefRepository(ABC):
    """Persistence contract used by the workflow orchestrator."""

    @abstractmethod
    async def get_quota(self, user_id: UUID) -> QuotaSnapshot:
        ...

    @abstractmethod
    async def save_transcript(
        self,
        user_id: UUID,
        text: str,
        source_type: str = AUDIO_UPLOAD_SOURCE,
        file_url: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> UUID:
        ...

    @abstractmethod
    async def save_brief(
        self,
        transcript_id: UUID,
        template: str,
        content: str,
        *,
        quality_score: Optional[float] = None,
        processing_time_ms: Optional[int] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> UUID:
        ...

    @abstractmethod
    async def increment_usage(self, user_id: UUID) -> bool:
        ...

    @abstractmethod
    async def save_run(
        self,
        user_id: UUID,
        *,
        transcript: str,
        brief: str,
        template: str,
        file_url: Optional[str] = None,
        transcript_metadata: Optional[Mapping[str, Any]] = None,
        brief_metadata: Optional[Mapping[str, Any]] = None,
        quality_score: Optional[float] = None,
        processing_time_ms: Optional[int] = None,
    ) -> SavedRun:
        """Write transcript, brief, and usage increment atomically."""

    @abstractmethod
    async def attach_file_url(self, user_id: UUID, transcript_id: UUID, file_url: str) -> bool:
        """Record the stored audio URL on a transcript saved before the upload succeeded."""

    @abstractmethod
    async def list_briefs(self, user_id: UUID, *, limit: int = 50, offset: int = 0) -> list[Brief]:
        ...

    @abstractmethod
    async def get_brief(self, user_id: UUID, brief_id: UUID) -> Optional[Brief]:
        ...

    @abstractmethod
    async def update_brief_content(self, user_id: UUID, brief_id: UUID, content: str) -> Optional[Brief]:
        """Replace the Markdown body verbatim; returns None when the brief is not the user's."""

    @abstractmethod
    async def delete_brief(self, user_id: UUID, brief_id: UUID) -> bool:
        """Delete the brief only; its transcript row is kept."""


class SqlAlchemyBriefRepository(BriefRepository):
    """SQLAlchemy implementation of :class:`BriefRepository`."""

    def __init__(self, session_factory: SessionFactoryType = session_scope) -> None:
        self._session_factory = session_factory

    async def get_quota(self, user_id: UUID) -> QuotaSnapshot:
        try:
            async with self._session_factory() as session:
                profile = await _load_profile(session, user_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read usage for user: {exc}") from exc

        if profile is None:
            return QuotaSnapshot(count=0, limit=settings.workflow.default_free_limit)
        return QuotaSnapshot(count=profile.briefs_count, limit=profile.briefs_limit)

    async def save_transcript(
        self,
        user_id: UUID,
        text: str,
        source_type: str = AUDIO_UPLOAD_SOURCE,
        file_url: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> UUID:
        async with self._session_factory() as session:
            record = _transcript_row(user_id, text, source_type, file_url, metadata)
            session.add(record)
            try:
                await session.flush()
                transcript_id = record.id
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(f"Failed to save transcript: {exc}") from exc
            return transcript_id

    async def save_brief(
        self,
        transcript_id: UUID,
        template: str,
        content: str,
        *,
        quality_score: Optional[float] = None,
        processing_time_ms: Optional[int] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> UUID:
        async with self._session_factory() as session:
            exists = await session.scalar(
                select(Transcript.id).where(Transcript.id == transcript_id)
            )
            if exists is None:
                raise PersistenceError(
                    f"Transcript {transcript_id} does not exist; brief not saved."
                )
            record = _brief_row(
                transcript_id, template, content, quality_score, processing_time_ms, metadata
            )
            session.add(record)
            try:
                await session.flush()
                brief_id = record.id
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(f"Failed to save brief: {exc}") from exc
            return brief_id

    async def increment_usage(self, user_id: UUID) -> bool:
        """Bump the monthly counter; failures are logged and reported as False."""

        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    update(UserProfile)
                    .where(UserProfile.user_id == user_id)
                    .values(briefs_count=UserProfile.briefs_count + 1)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to increment usage for user=%s", user_id)
            return False
        return bool(result.rowcount)

    async def save_run(
        self,
        user_id: UUID,
        *,
        transcript: str,
        brief: str,
        template: str,
        file_url: Optional[str] = None,
        transcript_metadata: Optional[Mapping[str, Any]] = None,
        brief_metadata: Optional[Mapping[str, Any]] = None,
        quality_score: Optional[float] = None,
        processing_time_ms: Optional[int] = None,
    ) -> SavedRun:
        async with self._session_factory() as session:
            try:
                await _ensure_profile(session, user_id)

                transcript_row = _transcript_row(
                    user_id, transcript, AUDIO_UPLOAD_SOURCE, file_url, transcript_metadata
                )
                session.add(transcript_row)
                await session.flush()

                brief_row = _brief_row(
                    transcript_row.id,
                    template,
                    brief,
                    quality_score,
                    processing_time_ms,
                    brief_metadata,
                )
                session.add(brief_row)
                await session.flush()

                # Check-and-increment in one statement so concurrent runs cannot overshoot.
                result = await session.execute(
                    update(UserProfile)
                    .where(
                        UserProfile.user_id == user_id,
                        or_(
                            UserProfile.briefs_limit == UNLIMITED_BRIEFS,
                            UserProfile.briefs_count < UserProfile.briefs_limit,
                        ),
                    )
                    .values(briefs_count=UserProfile.briefs_count + 1)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    profile = await _load_profile(session, user_id)
                    raise QuotaExceededError(
                        profile.briefs_count if profile else 0,
                        profile.briefs_limit if profile else 0,
                    )
                saved = SavedRun(transcript_id=transcript_row.id, brief_id=brief_row.id)
                await session.commit()
            except QuotaExceededError:
                await session.rollback()
                raise
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(f"Failed to save results: {exc}") from exc

        logger.info(
            "Saved run user=%s transcript=%s brief=%s",
            user_id,
            saved.transcript_id,
            saved.brief_id,
        )
        return saved

    async def attach_file_url(self, user_id: UUID, transcript_id: UUID, file_url: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Transcript).where(
                    Transcript.id == transcript_id,
                    Transcript.user_id == user_id,
                )
            )
            transcript = result.scalar_one_or_none()
            if transcript is None:
                return False
            transcript.original_file_url = file_url
            try:
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(f"Failed to record audio URL: {exc}") from exc
        return True

    async def list_briefs(self, user_id: UUID, *, limit: int = 50, offset: int = 0) -> list[Brief]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Brief)
                .join(Transcript, Brief.transcript_id == Transcript.id)
                .where(Transcript.user_id == user_id)
                .order_by(Brief.created_at.desc())
                .limit(limit)
                .offset(offset)
            )
            return list(result.unique().scalars().all())

    async def get_brief(self, user_id: UUID, brief_id: UUID) -> Optional[Brief]:
        async with self._session_factory() as session:
            return await _load_owned_brief(session, user_id, brief_id)

    async def update_brief_content(self, user_id: UUID, brief_id: UUID, content: str) -> Optional[Brief]:
        async with self._session_factory() as session:
            brief = await _load_owned_brief(session, user_id, brief_id)
            if brief is None:
                return None
            brief.content_md = content
            brief.updated_at = utc_now()
            try:
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(f"Failed to save edited brief: {exc}") from exc
            return brief

    async def delete_brief(self, user_id: UUID, brief_id: UUID) -> bool:
        async with self._session_factory() as session:
            brief = await _load_owned_brief(session, user_id, brief_id)
            if brief is None:
                return False
            try:
                await session.execute(delete(Brief).where(Brief.id == brief.id))
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise PersistenceError(f"Failed to delete brief: {exc}") from exc
        logger.info("Deleted brief=%s user=%s", brief_id, user_id)
        return True


async def _load_owned_brief(session: AsyncSession, user_id: UUID, brief_id: UUID) -> Brief | None:
    result = await session.execute(
        select(Brief)
        .join(Transcript, Brief.transcript_id == Transcript.id)
        .where(Brief.id == brief_id, Transcript.user_id == user_id)
    )
    return result.unique().scalar_one_or_none()


async def _load_profile(session: AsyncSession, user_id: UUID) -> UserProfile | None:
    result = await session.execute(
        select(UserProfile).where(UserProfile.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def _ensure_profile(session: AsyncSession, user_id: UUID) -> UserProfile:
    profile = await _load_profile(session, user_id)
    if profile is None:
        profile = UserProfile(
            user_id=user_id,
            briefs_count=0,
            briefs_limit=settings.workflow.default_free_limit,
        )
        session.add(profile)
        await session.flush()
    return profile


def _transcript_row(
    user_id: UUID,
    text: str,
    source_type: str,
    file_url: Optional[str],
    metadata: Optional[Mapping[str, Any]],
) -> Transcript:
    return Transcript(
        user_id=user_id,
        original_text=text,
        source_type=source_type,
        original_file_url=file_url,
        metadata_=dict(metadata or {}),
    )


def _brief_row(
    transcript_id: UUID,
    template: str,
    content: str,
    quality_score: Optional[float],
    processing_time_ms: Optional[int],
    metadata: Optional[Mapping[str, Any]],
) -> Brief:
    return Brief(
        transcript_id=transcript_id,
        template=template,
        content_md=content,
        sent=False,
        quality_score=quality_score,
        processing_time_ms=processing_time_ms,
        metadata_=dict(metadata or {}),
    )


def get_brief_repository() -> BriefRepository:
    """Return the process-wide repository singleton."""
    return _DEFAULT_REPOSITORY


_DEFAULT_REPOSITORY = SqlAlchemyBriefRepository()


__all__ = [
    "AUDIO_UPLOAD_SOURCE",
    "BriefRepository",
    "SqlAlchemyBriefRepository",
    "get_brief_repository",
]
