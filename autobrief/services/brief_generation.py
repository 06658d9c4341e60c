"""Brief and executive-summary generation backed by Bedrock."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping
from uuid import uuid4

from autobrief.services.llm_client import BedrockLlmClient
from autobrief.services.prompt_builder import (
    DEFAULT_TEMPLATE,
    build_brief_prompt,
    build_summary_prompt,
)

logger = logging.getLogger(__name__)

MIN_TRANSCRIPT_CHARS = 10

BRIEF_TEMPERATURE = 0.2
BRIEF_TOP_P = 0.95
BRIEF_MAX_TOKENS = 3072
SUMMARY_TEMPERATURE = 0.1
SUMMARY_TOP_P = 0.9
SUMMARY_MAX_TOKENS = 512


class BriefGenerationError(RuntimeError):
    """Raised when a brief request cannot be served."""


@dataclass(frozen=True)
class BriefGenerationResult:
    brief: str
    summary: str
    template_type: str
    brief_word_count: int
    summary_word_count: int
    quality_score: int
    brief_quality_score: int
    summary_quality_score: int
    metadata: dict[str, Any] = field(default_factory=dict)


def _word_count(text: str) -> int:
    return len(text.split())


def score_brief(text: str) -> float:
    """Descriptive score rewarding length, headings, tables, and checklist markers."""

    score = _word_count(text) / 15
    if "#" in text:
        score += 25
    if "|" in text:
        score += 15
    if "✅" in text or "🎯" in text:
        score += 10
    return min(100.0, max(0.0, score))


def score_summary(text: str) -> float:
    words = _word_count(text)
    return 75.0 + (25.0 if 50 <= words <= 100 else 0.0)


class BriefGenerationService:
    """Run the brief call and the summary call, then score both."""

    def __init__(
        self,
        llm: BedrockLlmClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._llm = llm
        self._clock = clock

    def _client(self) -> BedrockLlmClient:
        if self._llm is None:
            self._llm = BedrockLlmClient()
        return self._llm

    async def generate(
        self,
        transcript: str,
        options: Mapping[str, Any] | None = None,
        *,
        request_id: str | None = None,
    ) -> BriefGenerationResult:
        options = dict(options or {})
        request_id = request_id or str(uuid4())
        text = (transcript or "").strip()
        if not text:
            raise BriefGenerationError("No transcription text provided")
        if len(text) < MIN_TRANSCRIPT_CHARS:
            raise BriefGenerationError(
                "Transcription text too short to generate meaningful brief"
            )

        template_type = str(options.get("templateType") or DEFAULT_TEMPLATE)
        tone = str(options.get("tone") or "professional")
        length = str(options.get("length") or "detailed")
        started = self._clock()
        logger.info(
            "[%s] Generating %s brief, %s length, %s tone", request_id, template_type, length, tone
        )

        brief_prompt = build_brief_prompt(
            text,
            template_type,
            tone=tone,
            length=length,
            custom_instructions=options.get("customInstructions"),
        )
        brief = await self._client().invoke(
            system_prompt=brief_prompt.system_prompt,
            user_prompt=brief_prompt.user_prompt,
            max_tokens=BRIEF_MAX_TOKENS,
            temperature=BRIEF_TEMPERATURE,
            top_p=BRIEF_TOP_P,
        )

        logger.info("[%s] Generating executive summary", request_id)
        summary_prompt = build_summary_prompt(text, template_type)
        summary = await self._client().invoke(
            system_prompt=summary_prompt.system_prompt,
            user_prompt=summary_prompt.user_prompt,
            max_tokens=SUMMARY_MAX_TOKENS,
            temperature=SUMMARY_TEMPERATURE,
            top_p=SUMMARY_TOP_P,
        )

        brief_score = score_brief(brief)
        summary_score = score_summary(summary)
        brief_words = _word_count(brief)
        summary_words = _word_count(summary)
        logger.info(
            "[%s] Brief: %s words, Summary: %s words", request_id, brief_words, summary_words
        )

        return BriefGenerationResult(
            brief=brief,
            summary=summary,
            template_type=template_type,
            brief_word_count=brief_words,
            summary_word_count=summary_words,
            quality_score=round((brief_score + summary_score) / 2),
            brief_quality_score=round(brief_score),
            summary_quality_score=round(summary_score),
            metadata={
                "requestId": request_id,
                "processedAt": datetime.now(timezone.utc).isoformat(),
                "options": options,
                "processingTime": int((self._clock() - started) * 1000),
                "templateStyle": f"{template_type}_enhanced_v2",
            },
        )


_DEFAULT_SERVICE = BriefGenerationService()


def get_brief_generation_service() -> BriefGenerationService:
    """Return the process-wide generation service."""
    return _DEFAULT_SERVICE


__all__ = [
    "BriefGenerationError",
    "BriefGenerationResult",
    "BriefGenerationService",
    "get_brief_generation_service",
    "score_brief",
    "score_summary",
]
