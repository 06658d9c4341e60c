"""HTTP access to the transcription and brief-generation endpoints."""

from __future__ import annotations

from typing import Any, Callable, Mapping

import httpx

from autobrief.config.settings import settings

TRANSCRIBE_PATH = "/functions/transcribe-audio-enhanced"
GENERATE_BRIEF_PATH = "/functions/generate-brief"

ClientFactory = Callable[[], httpx.AsyncClient]


def functions_client_factory(authorization: str | None = None) -> ClientFactory:
    """Return a factory of clients bound to the configured endpoints.

    With no ``functions_base_url`` the endpoints are served by this same
    application, reached through an in-process ASGI transport.
    """

    headers = {"Authorization": authorization} if authorization else {}
    timeout = httpx.Timeout(settings.workflow.functions_timeout_seconds)
    base_url = settings.workflow.functions_base_url.rstrip("/")

    def _factory() -> httpx.AsyncClient:
        if base_url:
            return httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)

        from autobrief.main import app

        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://autobrief.internal",
            headers=headers,
            timeout=timeout,
        )

    return _factory


async def post_json(
    client_factory: ClientFactory,
    path: str,
    payload: Mapping[str, Any],
) -> tuple[int, Any]:
    """POST ``payload`` and return ``(status_code, decoded_body)``.

    The body is ``None`` when the response is not JSON. Transport failures
    propagate as :class:`httpx.HTTPError`.
    """

    async with client_factory() as client:
        response = await client.post(path, json=dict(payload))
    try:
        body = response.json()
    except ValueError:
        body = None
    return response.status_code, body


__all__ = [
    "ClientFactory",
    "GENERATE_BRIEF_PATH",
    "TRANSCRIBE_PATH",
    "functions_client_factory",
    "post_json",
]
