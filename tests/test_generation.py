"""Brief generation service, prompt assembly, and Bedrock client wrapping."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest
from botocore.exceptions import ClientError

from conftest import SAMPLE_BRIEF, SAMPLE_TRANSCRIPT

from autobrief.services.aws import ProviderConfigurationError
from autobrief.services.brief_generation import (
    BriefGenerationError,
    BriefGenerationService,
    score_brief,
    score_summary,
)
from autobrief.services.llm_client import BedrockLlmClient, LlmInvocationError
from autobrief.services.prompt_builder import (
    BRIEF_STYLES,
    DEFAULT_TEMPLATE,
    build_brief_prompt,
    build_summary_prompt,
    resolve_template,
)

SUMMARY = " ".join(["word"] * 60)


class FakeLlm:
    def __init__(self, responses: list[str]) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def invoke(self, **kwargs) -> str:
        self.calls.append(kwargs)
        return self.responses.pop(0)


class FakeBedrockRuntime:
    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.kwargs: dict | None = None

    def converse(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return {"output": {"message": {"content": [{"text": self.text}]}}}


def test_generate_runs_brief_then_summary() -> None:
    llm = FakeLlm([SAMPLE_BRIEF, SUMMARY])
    service = BriefGenerationService(llm=llm)

    result = asyncio.run(
        service.generate(
            SAMPLE_TRANSCRIPT,
            {"templateType": "client_update", "tone": "casual", "length": "concise"},
            request_id="req-7",
        )
    )

    assert result.brief == SAMPLE_BRIEF
    assert result.summary == SUMMARY
    assert result.template_type == "client_update"
    assert result.summary_word_count == 60
    assert result.summary_quality_score == 100
    assert result.metadata["requestId"] == "req-7"
    assert result.metadata["templateStyle"] == "client_update_enhanced_v2"

    brief_call, summary_call = llm.calls
    assert brief_call["temperature"] == 0.2
    assert brief_call["top_p"] == 0.95
    assert brief_call["max_tokens"] == 3072
    assert "Use a casual tone" in brief_call["user_prompt"]
    assert "concise but complete" in brief_call["user_prompt"]
    assert summary_call["temperature"] == 0.1
    assert summary_call["max_tokens"] == 512


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("", "No transcription text provided"),
        ("   ", "No transcription text provided"),
        ("too short", "Transcription text too short to generate meaningful brief"),
    ],
)
def test_generate_rejects_unusable_transcripts(text: str, message: str) -> None:
    llm = FakeLlm([])
    service = BriefGenerationService(llm=llm)

    with pytest.raises(BriefGenerationError, match=message):
        asyncio.run(service.generate(text))
    assert llm.calls == []


def test_scores_reward_structure() -> None:
    assert score_brief("plain words only") < score_brief("# Heading\n| a | b |\n✅ done")
    assert score_brief("# x " * 3000) == 100
    assert score_summary("short") == 75
    assert score_summary(SUMMARY) == 100


def test_brief_prompt_includes_template_and_custom_instructions() -> None:
    bundle = build_brief_prompt(
        SAMPLE_TRANSCRIPT,
        "sales_call",
        custom_instructions="Mention the budget twice",
        today=date(2024, 3, 1),
    )

    assert "Transcription to analyze:" in bundle.user_prompt
    assert SAMPLE_TRANSCRIPT in bundle.user_prompt
    assert "Additional custom requirements: Mention the budget twice" in bundle.user_prompt
    assert "{today}" not in bundle.user_prompt
    assert "[Information not provided in audio]" in bundle.user_prompt


def test_unknown_template_falls_back_to_default() -> None:
    assert resolve_template("custom_1700000000000") == DEFAULT_TEMPLATE
    assert resolve_template(None) == DEFAULT_TEMPLATE
    assert set(BRIEF_STYLES) >= {"meeting_summary", "sales_call", "client_update"}
    assert "Do not exceed 4 sentences." in build_summary_prompt(SAMPLE_TRANSCRIPT).user_prompt


def test_bedrock_client_collects_text_blocks() -> None:
    runtime = FakeBedrockRuntime(text="  Generated brief  ")
    client = BedrockLlmClient(client=runtime, model_id="test-model")

    text = asyncio.run(client.invoke(system_prompt="sys", user_prompt="user", temperature=0.1))

    assert text == "Generated brief"
    assert runtime.kwargs["modelId"] == "test-model"
    assert runtime.kwargs["system"] == [{"text": "sys"}]
    assert runtime.kwargs["inferenceConfig"]["temperature"] == 0.1


def test_bedrock_client_wraps_provider_errors() -> None:
    error = ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "Converse")
    client = BedrockLlmClient(client=FakeBedrockRuntime(error=error), model_id="test-model")

    with pytest.raises(LlmInvocationError):
        asyncio.run(client.invoke(system_prompt="sys", user_prompt="user"))


def test_bedrock_client_rejects_empty_output() -> None:
    client = BedrockLlmClient(client=FakeBedrockRuntime(text=""), model_id="test-model")

    with pytest.raises(LlmInvocationError, match="empty response"):
        asyncio.run(client.invoke(system_prompt="sys", user_prompt="user"))


def test_bedrock_client_requires_model() -> None:
    client = BedrockLlmClient(client=FakeBedrockRuntime(text="x"), model_id="")
    client._model_id = ""

    with pytest.raises(ProviderConfigurationError):
        asyncio.run(client.invoke(system_prompt="sys", user_prompt="user"))
