"""Built-in brief templates plus per-user custom templates."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autobrief.models.custom_template import CustomTemplate

logger = logging.getLogger(__name__)

CUSTOM_PREFIX = "custom_"
CUSTOM_ICON = "📝"
CUSTOM_CATEGORY = "Custom"


class TemplateCatalogError(RuntimeError):
    """Raised when a template operation is not allowed."""


@dataclass(frozen=True)
class TemplateConfig:
    id: str
    name: str
    description: str
    icon: str
    category: str
    prompt_instructions: str
    output_structure: list[str] = field(default_factory=list)
    contextual_prompts: dict[str, bool] = field(default_factory=dict)
    customizations: dict[str, list[str]] = field(default_factory=dict)
    business_context: dict[str, Any] = field(default_factory=dict)
    builtin: bool = True

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _contextual(speaker: bool, sentiment: bool, entities: bool, actions: bool, timeline: bool) -> dict[str, bool]:
    return {
        "speaker_analysis": speaker,
        "sentiment_analysis": sentiment,
        "entity_extraction": entities,
        "action_items": actions,
        "timeline_extraction": timeline,
    }


BUILTIN_TEMPLATES: tuple[TemplateConfig, ...] = (
    TemplateConfig(
        id="meeting_summary",
        name="Meeting Summary",
        description="Comprehensive meeting documentation with decisions and action items",
        icon="👥",
        category="Internal Communication",
        prompt_instructions=(
            "Create a comprehensive meeting summary that captures all essential information. "
            "Focus on extracting key decisions, action items, and participant insights."
        ),
        output_structure=[
            "Meeting Overview (date, duration, participants)",
            "Key Decisions Made",
            "Action Items (person responsible, deadline, priority)",
            "Discussion Topics Summary",
            "Next Steps and Follow-up Items",
            "Outstanding Questions/Issues",
        ],
        contextual_prompts=_contextual(True, False, True, True, True),
        customizations={
            "tone": ["professional", "executive", "casual"],
            "length": ["brief", "detailed", "comprehensive"],
            "focus_areas": ["decisions", "action_items", "discussions", "follow_ups"],
        },
        business_context={
            "suitable_for": ["Team meetings", "Board meetings", "Project reviews", "Planning sessions"],
            "typical_duration": "30-120 minutes",
            "expected_participants": 6,
        },
    ),
    TemplateConfig(
        id="client_update",
        name="Client Update",
        description="Professional client communication with progress and next steps",
        icon="📊",
        category="Client Communication",
        prompt_instructions=(
            "Create a professional client update that emphasizes progress, achievements, and "
            "value delivery. Present challenges together with solutions."
        ),
        output_structure=[
            "Project Status Overview",
            "Completed Milestones",
            "Current Progress and Metrics",
            "Upcoming Deliverables",
            "Budget and Timeline Updates",
            "Risks and Recommendations",
            "Next Client Touchpoints",
        ],
        contextual_prompts=_contextual(True, True, True, True, True),
        customizations={
            "tone": ["professional", "technical", "executive"],
            "length": ["brief", "detailed"],
            "focus_areas": ["progress", "milestones", "risks", "next_steps"],
        },
        business_context={
            "suitable_for": ["Client calls", "Status reviews", "Project updates", "Progress reports"],
            "typical_duration": "30-60 minutes",
            "expected_participants": 4,
        },
    ),
    TemplateConfig(
        id="action_plan",
        name="Action Plan",
        description="Structured task organization with priorities and timelines",
        icon="🎯",
        category="Project Management",
        prompt_instructions=(
            "Create a structured action plan that organizes tasks by priority. "
            "Focus on ownership and measurable outcomes, including dependencies where mentioned."
        ),
        output_structure=[
            "Executive Summary",
            "Priority Action Items (High/Medium/Low)",
            "Task Assignments and Ownership",
            "Timeline and Milestones",
            "Resource Requirements",
            "Dependencies and Blockers",
            "Success Metrics and KPIs",
        ],
        contextual_prompts=_contextual(True, False, True, True, True),
        customizations={
            "tone": ["professional", "technical"],
            "length": ["detailed", "comprehensive"],
            "focus_areas": ["priorities", "timelines", "resources", "dependencies"],
        },
        business_context={
            "suitable_for": ["Planning sessions", "Project kickoffs", "Strategy meetings", "Problem-solving"],
            "typical_duration": "45-90 minutes",
            "expected_participants": 8,
        },
    ),
    TemplateConfig(
        id="interview_notes",
        name="Interview Notes",
        description="Structured interview documentation with candidate assessment",
        icon="🤝",
        category="Human Resources",
        prompt_instructions=(
            "Create structured interview documentation that captures candidate qualifications "
            "and fit. Stay objective while highlighting strengths and development areas."
        ),
        output_structure=[
            "Candidate Profile Summary",
            "Technical Skills Assessment",
            "Experience Highlights",
            "Cultural Fit Indicators",
            "Strengths and Development Areas",
            "Interview Feedback and Recommendations",
            "Next Steps in Process",
        ],
        contextual_prompts=_contextual(True, True, True, False, False),
        customizations={
            "tone": ["professional", "technical"],
            "length": ["detailed", "comprehensive"],
            "focus_areas": ["technical_skills", "experience", "cultural_fit", "recommendations"],
        },
        business_context={
            "suitable_for": ["Job interviews", "Technical assessments", "Panel interviews", "Follow-up discussions"],
            "typical_duration": "30-60 minutes",
            "expected_participants": 3,
        },
    ),
    TemplateConfig(
        id="training_session",
        name="Training Session",
        description="Educational content summary with key learnings and actions",
        icon="🎓",
        category="Learning & Development",
        prompt_instructions=(
            "Create a training session summary that captures learning objectives and outcomes, "
            "with actionable takeaways and follow-up recommendations."
        ),
        output_structure=[
            "Session Overview and Objectives",
            "Key Concepts Covered",
            "Practical Applications",
            "Q&A Summary",
            "Participant Feedback",
            "Action Items and Next Steps",
            "Additional Resources Mentioned",
        ],
        contextual_prompts=_contextual(True, False, True, True, False),
        customizations={
            "tone": ["professional", "casual"],
            "length": ["detailed", "comprehensive"],
            "focus_areas": ["concepts", "applications", "takeaways", "resources"],
        },
        business_context={
            "suitable_for": ["Training workshops", "Educational sessions", "Skill development", "Knowledge sharing"],
            "typical_duration": "60-180 minutes",
            "expected_participants": 15,
        },
    ),
    TemplateConfig(
        id="sales_call",
        name="Sales Call",
        description="Sales conversation analysis with opportunities and next steps",
        icon="💼",
        category="Sales & Business Development",
        prompt_instructions=(
            "Create a sales call summary that identifies opportunities and next steps. "
            "Focus on prospect needs, pain points, buying signals, and competition."
        ),
        output_structure=[
            "Prospect Profile and Needs",
            "Pain Points Identified",
            "Solutions Discussed",
            "Objections and Responses",
            "Buying Signals and Timeline",
            "Competitive Intelligence",
            "Follow-up Actions and Proposal Items",
        ],
        contextual_prompts=_contextual(True, True, True, True, True),
        customizations={
            "tone": ["professional", "casual"],
            "length": ["brief", "detailed"],
            "focus_areas": ["needs", "objections", "opportunities", "next_steps"],
        },
        business_context={
            "suitable_for": ["Sales calls", "Discovery meetings", "Demo presentations", "Proposal discussions"],
            "typical_duration": "30-60 minutes",
            "expected_participants": 4,
        },
    ),
)

_BUILTIN_BY_ID = {template.id: template for template in BUILTIN_TEMPLATES}


def is_builtin(template_id: str) -> bool:
    return template_id in _BUILTIN_BY_ID


def get_builtin_template(template_id: str) -> Optional[TemplateConfig]:
    return _BUILTIN_BY_ID.get(template_id)


def new_custom_template_id(now_ms: int | None = None) -> str:
    """Return ``custom_<epoch milliseconds>``."""

    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{CUSTOM_PREFIX}{stamp}"


def _from_row(row: CustomTemplate) -> TemplateConfig:
    return TemplateConfig(
        id=row.id,
        name=row.name,
        description=row.description or "",
        icon=CUSTOM_ICON,
        category=row.category or CUSTOM_CATEGORY,
        prompt_instructions=row.prompt_instructions,
        output_structure=list(row.output_structure or []),
        contextual_prompts=dict(row.contextual_prompts or {}),
        customizations=dict(row.customizations or {}),
        builtin=False,
    )


async def _load_custom(session: AsyncSession, user_id: UUID, template_id: str) -> CustomTemplate | None:
    result = await session.execute(
        select(CustomTemplate).where(
            CustomTemplate.id == template_id,
            CustomTemplate.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def list_templates(session: AsyncSession, user_id: UUID) -> list[TemplateConfig]:
    """Built-ins first, then the user's custom templates oldest first."""

    result = await session.execute(
        select(CustomTemplate)
        .where(CustomTemplate.user_id == user_id)
        .order_by(CustomTemplate.created_at.asc())
    )
    return [*BUILTIN_TEMPLATES, *(_from_row(row) for row in result.scalars().all())]


async def get_template(session: AsyncSession, user_id: UUID, template_id: str) -> Optional[TemplateConfig]:
    builtin = get_builtin_template(template_id)
    if builtin is not None:
        return builtin
    row = await _load_custom(session, user_id, template_id)
    return _from_row(row) if row else None


async def create_custom_template(
    session: AsyncSession,
    user_id: UUID,
    fields: Mapping[str, Any],
    *,
    template_id: str | None = None,
) -> TemplateConfig:
    template_id = template_id or new_custom_template_id()
    # Two creates within the same millisecond would collide on the primary key.
    while await session.get(CustomTemplate, template_id) is not None:
        template_id = new_custom_template_id(int(template_id[len(CUSTOM_PREFIX):]) + 1)

    row = CustomTemplate(
        id=template_id,
        user_id=user_id,
        name=fields["name"],
        description=fields.get("description") or "",
        category=fields.get("category") or CUSTOM_CATEGORY,
        prompt_instructions=fields["prompt_instructions"],
        output_structure=list(fields.get("output_structure") or []),
        contextual_prompts=dict(fields.get("contextual_prompts") or {}),
        customizations=dict(fields.get("customizations") or {}),
    )
    session.add(row)
    await session.commit()
    await session.refresh(row)
    logger.info("Created custom template %s for user=%s", template_id, user_id)
    return _from_row(row)


async def update_custom_template(
    session: AsyncSession,
    user_id: UUID,
    template_id: str,
    updates: Mapping[str, Any],
) -> Optional[TemplateConfig]:
    if is_builtin(template_id):
        raise TemplateCatalogError("Built-in templates cannot be modified.")
    row = await _load_custom(session, user_id, template_id)
    if row is None:
        return None

    for key in (
        "name",
        "description",
        "category",
        "prompt_instructions",
        "output_structure",
        "contextual_prompts",
        "customizations",
    ):
        if key in updates and updates[key] is not None:
            setattr(row, key, updates[key])
    await session.commit()
    await session.refresh(row)
    return _from_row(row)


async def delete_custom_template(session: AsyncSession, user_id: UUID, template_id: str) -> bool:
    if is_builtin(template_id):
        raise TemplateCatalogError("Built-in templates cannot be deleted.")
    row = await _load_custom(session, user_id, template_id)
    if row is None:
        return False
    await session.delete(row)
    await session.commit()
    logger.info("Deleted custom template %s for user=%s", template_id, user_id)
    return True


__all__ = [
    "BUILTIN_TEMPLATES",
    "TemplateCatalogError",
    "TemplateConfig",
    "create_custom_template",
    "delete_custom_template",
    "get_builtin_template",
    "get_template",
    "is_builtin",
    "list_templates",
    "new_custom_template_id",
    "update_custom_template",
]
