"""Brief generation stage: turn transcript text into a templated brief."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

import httpx

from .endpoints import GENERATE_BRIEF_PATH, ClientFactory, post_json
from .errors import ErrorKind, GenerationError
from .types import GeneratedBrief

logger = logging.getLogger("autobrief.pipeline")

ProgressCallback = Callable[[float], None]

MIN_TRANSCRIPT_CHARS = 10
MIN_BRIEF_CHARS = 50

PROGRESS_STARTED = 10
PROGRESS_PREPARED = 30
PROGRESS_RECEIVED = 70
PROGRESS_DONE = 100

DEFAULT_TEMPLATE = "meeting_summary"


def default_generation_options(template_type: str, overrides: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Option bundle sent with each brief request."""

    options: dict[str, Any] = {
        "templateType": template_type or DEFAULT_TEMPLATE,
        "tone": "professional",
        "length": "detailed",
        "enhancedFormatting": True,
        "includeMetrics": True,
    }
    if overrides:
        options.update({key: value for key, value in overrides.items() if value is not None})
    return options


class BriefGeneratorClient:
    """Call the brief-generation endpoint and enforce the minimum output length."""

    def __init__(self, client_factory: ClientFactory) -> None:
        self._client_factory = client_factory

    async def generate(
        self,
        transcript: str,
        template_type: str = DEFAULT_TEMPLATE,
        options: Mapping[str, Any] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> GeneratedBrief:
        cleaned = (transcript or "").strip()
        if len(cleaned) < MIN_TRANSCRIPT_CHARS:
            raise GenerationError(
                "Transcript is too short to generate a brief "
                f"(minimum {MIN_TRANSCRIPT_CHARS} characters).",
                kind=ErrorKind.VALIDATION,
            )

        if on_progress:
            on_progress(PROGRESS_STARTED)
        payload = {
            "transcriptionText": cleaned,
            "options": default_generation_options(template_type, options),
        }
        if on_progress:
            on_progress(PROGRESS_PREPARED)

        logger.info(
            "Brief request template=%s chars=%s", payload["options"]["templateType"], len(cleaned)
        )
        try:
            status_code, body = await post_json(
                self._client_factory, GENERATE_BRIEF_PATH, payload
            )
        except httpx.HTTPError as exc:
            raise GenerationError(f"Brief generation request failed: {exc}") from exc

        if on_progress:
            on_progress(PROGRESS_RECEIVED)
        generated = _parse_response(status_code, body, payload["options"]["templateType"])
        if on_progress:
            on_progress(PROGRESS_DONE)
        return generated


def _parse_response(status_code: int, body: Any, template_type: str) -> GeneratedBrief:
    if not isinstance(body, Mapping):
        if status_code >= 400:
            raise GenerationError(f"Brief service returned HTTP {status_code}")
        raise GenerationError("No data received from brief service", kind=ErrorKind.CONTENT)

    if body.get("success") is False or status_code >= 400:
        message = body.get("error") or f"HTTP {status_code}"
        raise GenerationError(f"Brief generation failed: {message}")

    brief = body.get("brief")
    if not isinstance(brief, str) or not brief.strip():
        raise GenerationError("No brief content received", kind=ErrorKind.CONTENT)
    brief = brief.strip()
    if len(brief) < MIN_BRIEF_CHARS:
        raise GenerationError(
            "Generated brief is too short or empty", kind=ErrorKind.CONTENT
        )

    summary = body.get("summary") if isinstance(body.get("summary"), str) else ""
    metadata = body.get("metadata") if isinstance(body.get("metadata"), Mapping) else {}
    return GeneratedBrief(
        brief=brief,
        summary=summary.strip(),
        template_type=str(body.get("templateType") or template_type),
        quality_score=body.get("qualityScore"),
        metadata=dict(metadata),
    )


__all__ = [
    "BriefGeneratorClient",
    "DEFAULT_TEMPLATE",
    "MIN_BRIEF_CHARS",
    "MIN_TRANSCRIPT_CHARS",
    "default_generation_options",
]
