"""SQLAlchemy repository: atomic saves, quota enforcement, and brief history."""

from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from conftest import SAMPLE_BRIEF, SAMPLE_TRANSCRIPT, TEST_USER_ID
from db import run_with_db

from autobrief.models import Brief, Transcript, UserProfile
from autobrief.pipelines.brief.errors import PersistenceError, QuotaExceededError
from autobrief.services.brief_repository import SqlAlchemyBriefRepository


async def _save(repository: SqlAlchemyBriefRepository, user_id=TEST_USER_ID, template="meeting_summary"):
    return await repository.save_run(
        user_id,
        transcript=SAMPLE_TRANSCRIPT,
        brief=SAMPLE_BRIEF,
        template=template,
        file_url="https://bucket.s3.amazonaws.com/audio-files/x/standup.mp3",
        transcript_metadata={"wordCount": 19},
        brief_metadata={"summary": "Ships Friday."},
        quality_score=88,
        processing_time_ms=1234,
    )


async def _add_profile(session_scope, count: int, limit: int) -> None:
    async with session_scope() as session:
        session.add(UserProfile(user_id=TEST_USER_ID, briefs_count=count, briefs_limit=limit))
        await session.commit()


async def _count(session_scope, model) -> int:
    async with session_scope() as session:
        return await session.scalar(select(func.count()).select_from(model))


def test_save_run_writes_rows_and_increments_usage() -> None:
    async def scenario(session_scope):
        repository = SqlAlchemyBriefRepository(session_scope)
        before = await repository.get_quota(TEST_USER_ID)
        saved = await _save(repository)
        after = await repository.get_quota(TEST_USER_ID)

        async with session_scope() as session:
            brief = await session.get(Brief, saved.brief_id)
            transcript = await session.get(Transcript, saved.transcript_id)
        return before, after, brief, transcript

    before, after, brief, transcript = run_with_db(scenario)

    assert (before.count, before.limit) == (0, 10)
    assert (after.count, after.limit) == (1, 10)
    assert brief.transcript_id == transcript.id
    assert brief.content_md == SAMPLE_BRIEF
    assert brief.sent is False
    assert brief.metadata_["summary"] == "Ships Friday."
    assert transcript.source_type == "audio_upload"
    assert transcript.original_text == SAMPLE_TRANSCRIPT
    assert transcript.user_id == TEST_USER_ID


def test_save_run_refuses_when_quota_is_used_up() -> None:
    async def scenario(session_scope):
        await _add_profile(session_scope, count=10, limit=10)
        repository = SqlAlchemyBriefRepository(session_scope)
        with pytest.raises(QuotaExceededError):
            await _save(repository)
        quota = await repository.get_quota(TEST_USER_ID)
        return quota, await _count(session_scope, Transcript), await _count(session_scope, Brief)

    quota, transcripts, briefs = run_with_db(scenario)

    assert quota.count == 10
    assert quota.exhausted
    assert transcripts == 0
    assert briefs == 0


def test_unlimited_profile_keeps_counting() -> None:
    async def scenario(session_scope):
        await _add_profile(session_scope, count=250, limit=-1)
        repository = SqlAlchemyBriefRepository(session_scope)
        await _save(repository)
        return await repository.get_quota(TEST_USER_ID)

    quota = run_with_db(scenario)

    assert quota.count == 251
    assert quota.unlimited
    assert not quota.exhausted


def test_save_brief_requires_existing_transcript() -> None:
    async def scenario(session_scope):
        repository = SqlAlchemyBriefRepository(session_scope)
        transcript_id = await repository.save_transcript(TEST_USER_ID, SAMPLE_TRANSCRIPT)
        brief_id = await repository.save_brief(transcript_id, "meeting_summary", SAMPLE_BRIEF)
        with pytest.raises(PersistenceError):
            await repository.save_brief(uuid4(), "meeting_summary", SAMPLE_BRIEF)
        return brief_id

    assert run_with_db(scenario) is not None


def test_increment_usage_without_profile_reports_false() -> None:
    async def scenario(session_scope):
        repository = SqlAlchemyBriefRepository(session_scope)
        missing = await repository.increment_usage(TEST_USER_ID)
        await _add_profile(session_scope, count=2, limit=10)
        present = await repository.increment_usage(TEST_USER_ID)
        return missing, present, await repository.get_quota(TEST_USER_ID)

    missing, present, quota = run_with_db(scenario)

    assert missing is False
    assert present is True
    assert quota.count == 3


def test_history_is_scoped_to_owner_and_newest_first() -> None:
    other_user = uuid4()

    async def scenario(session_scope):
        repository = SqlAlchemyBriefRepository(session_scope)
        first = await _save(repository, template="meeting_summary")
        second = await _save(repository, template="sales_call")
        foreign = await _save(repository, user_id=other_user)
        listed = await repository.list_briefs(TEST_USER_ID)
        hidden = await repository.get_brief(TEST_USER_ID, foreign.brief_id)
        fetched = await repository.get_brief(TEST_USER_ID, first.brief_id)
        return first, second, listed, hidden, fetched

    first, second, listed, hidden, fetched = run_with_db(scenario)

    assert [brief.id for brief in listed] == [second.brief_id, first.brief_id]
    assert hidden is None
    assert fetched.transcript.original_text == SAMPLE_TRANSCRIPT


def test_update_brief_stores_markdown_verbatim() -> None:
    edited = "# Edited\n\n<script>alert(1)</script>\n"

    async def scenario(session_scope):
        repository = SqlAlchemyBriefRepository(session_scope)
        saved = await _save(repository)
        updated = await repository.update_brief_content(TEST_USER_ID, saved.brief_id, edited)
        missing = await repository.update_brief_content(uuid4(), saved.brief_id, edited)
        reloaded = await repository.get_brief(TEST_USER_ID, saved.brief_id)
        return updated, missing, reloaded

    updated, missing, reloaded = run_with_db(scenario)

    assert updated.content_md == edited
    assert updated.updated_at is not None
    assert missing is None
    assert reloaded.content_md == edited


def test_delete_brief_keeps_transcript() -> None:
    async def scenario(session_scope):
        repository = SqlAlchemyBriefRepository(session_scope)
        saved = await _save(repository)
        foreign_attempt = await repository.delete_brief(uuid4(), saved.brief_id)
        deleted = await repository.delete_brief(TEST_USER_ID, saved.brief_id)
        again = await repository.delete_brief(TEST_USER_ID, saved.brief_id)
        return (
            foreign_attempt,
            deleted,
            again,
            await _count(session_scope, Brief),
            await _count(session_scope, Transcript),
        )

    foreign_attempt, deleted, again, briefs, transcripts = run_with_db(scenario)

    assert foreign_attempt is False
    assert deleted is True
    assert again is False
    assert briefs == 0
    assert transcripts == 1


def test_attach_file_url_updates_owned_transcript_only() -> None:
    async def scenario(session_scope):
        repository = SqlAlchemyBriefRepository(session_scope)
        saved = await repository.save_run(
            TEST_USER_ID,
            transcript=SAMPLE_TRANSCRIPT,
            brief=SAMPLE_BRIEF,
            template="meeting_summary",
        )
        foreign = await repository.attach_file_url(uuid4(), saved.transcript_id, "https://other/x.mp3")
        attached = await repository.attach_file_url(
            TEST_USER_ID, saved.transcript_id, "https://bucket.s3.amazonaws.com/audio-files/x/a.mp3"
        )
        missing = await repository.attach_file_url(TEST_USER_ID, uuid4(), "https://bucket/y.mp3")
        async with session_scope() as session:
            transcript = await session.get(Transcript, saved.transcript_id)
        return foreign, attached, missing, transcript

    foreign, attached, missing, transcript = run_with_db(scenario)

    assert foreign is False
    assert attached is True
    assert missing is False
    assert transcript.original_file_url == "https://bucket.s3.amazonaws.com/audio-files/x/a.mp3"
