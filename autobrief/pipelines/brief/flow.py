"""Step catalog for the audio-to-brief workflow.

The orchestrator in ``autobrief.pipelines.brief.workflow`` walks these stages
strictly in order; each depends on the output of the one before it:

1. ``upload`` – validate the bound audio and read its duration.
2. ``transcribe`` – call the transcription endpoint.
3. ``analyze`` – count words/characters and refresh processing metrics.
4. ``generate`` – call the brief-generation endpoint.
5. ``store`` – copy the raw audio to object storage (best effort).
6. ``save`` – write transcript, brief, and usage increment in one transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .types import ProcessingStep


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the brief workflow."""

    order: int
    id: str
    title: str
    description: str
    module: str
    fatal: bool = True


class BriefWorkflowPipeline:
    """Utility wrapper for documenting and instantiating the workflow steps."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            "upload",
            "Audio Upload",
            "Securely uploading your audio file...",
            "autobrief.pipelines.brief.metadata",
        ),
        PipelineStage(
            2,
            "transcribe",
            "Speech-to-Text",
            "Converting speech to text using AI...",
            "autobrief.pipelines.brief.transcription",
        ),
        PipelineStage(
            3,
            "analyze",
            "Content Analysis",
            "Analyzing transcript for key insights...",
            "autobrief.pipelines.brief.workflow",
        ),
        PipelineStage(
            4,
            "generate",
            "Brief Generation",
            "Creating your professional brief...",
            "autobrief.pipelines.brief.generation",
        ),
        PipelineStage(
            5,
            "store",
            "File Storage",
            "Saving audio file to secure storage...",
            "autobrief.services.storage",
            fatal=False,
        ),
        PipelineStage(
            6,
            "save",
            "Save Results",
            "Saving transcript and brief to database...",
            "autobrief.services.brief_repository",
        ),
    ]

    @classmethod
    def describe(cls) -> Iterable[PipelineStage]:
        """Expose the ordered list of stages for debugging and documentation."""

        return tuple(cls._STAGES)

    @classmethod
    def build_steps(cls) -> list[ProcessingStep]:
        """Return a fresh list of pending steps for a new run."""

        return [
            ProcessingStep(id=stage.id, title=stage.title, description=stage.description)
            for stage in cls._STAGES
        ]

    @classmethod
    def index_of(cls, step_id: str) -> int:
        for index, stage in enumerate(cls._STAGES):
            if stage.id == step_id:
                return index
        raise KeyError(step_id)


STEP_UPLOAD = BriefWorkflowPipeline.index_of("upload")
STEP_TRANSCRIBE = BriefWorkflowPipeline.index_of("transcribe")
STEP_ANALYZE = BriefWorkflowPipeline.index_of("analyze")
STEP_GENERATE = BriefWorkflowPipeline.index_of("generate")
STEP_STORE = BriefWorkflowPipeline.index_of("store")
STEP_SAVE = BriefWorkflowPipeline.index_of("save")


__all__ = [
    "BriefWorkflowPipeline",
    "PipelineStage",
    "STEP_UPLOAD",
    "STEP_TRANSCRIBE",
    "STEP_ANALYZE",
    "STEP_GENERATE",
    "STEP_STORE",
    "STEP_SAVE",
]
