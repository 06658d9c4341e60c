"""Helpers to construct system/user prompts for brief and summary generation.

Given a template id, tone, length, and the transcript, we emit:
* A system prompt describing the business-writer persona.
* A user prompt containing the template style block, the transcript, and rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

DEFAULT_TEMPLATE = "meeting_summary"

SYSTEM_PROMPT = (
    "You are a senior business writer. You turn raw meeting and call transcripts "
    "into well-structured Markdown documents. Never invent facts that are not in "
    "the transcript."
)

BRIEF_STYLES: dict[str, str] = {
    "meeting_summary": """
**CORPORATE MEETING DOCUMENTATION STYLE**
Create an executive-level meeting summary with professional corporate tone.

# 📋 Meeting Summary
**Date:** {today} | **Type:** [Meeting Type] | **Duration:** [Estimate]

## 🎯 Executive Overview
[High-level 2-3 sentence summary of the meeting's purpose and key outcomes]

## 🔍 Key Discussion Points
• **Topic:** [Discussion summary with context and business impact]

## ✅ Decisions & Resolutions
1. **Decision:** [What was decided] | **Owner:** [Responsible party] | **Rationale:** [Why]

## 📋 Action Items & Deliverables
| **Action Item** | **Owner** | **Due Date** | **Priority** | **Dependencies** |
|------------------|-----------|--------------|--------------|------------------|
| [Task description] | [Name] | [Date] | [High/Med/Low] | [If any] |

## 🚀 Strategic Next Steps
## 📊 Success Metrics

**Executive Summary:** [One paragraph capturing the meeting's strategic value]
""",
    "client_update": """
**PROFESSIONAL CLIENT COMMUNICATION STYLE**
Create a confidence-building client update with a progress-focused, reassuring tone.

# 📊 Project Progress Report
**Client:** [Client Name] | **Period:** [Timeframe] | **Project:** [Project Name]

## 🎉 Achievements This Period
✅ **Milestone:** [Achievement with business impact]

## 📈 Current Progress Status
**Overall Progress:** [X]% Complete
**Current Sprint:** [What we're actively working on]

## 🔮 Upcoming Deliverables
📅 **Next 2 Weeks:** [Immediate deliverables]
📅 **Next Month:** [Upcoming milestones]

## 💡 Strategic Recommendations
## 🤝 Client Action Items
## 🛡️ Risk Management

**Partnership Statement:** [Reinforce commitment and next touchpoint]
""",
    "action_plan": """
**DIRECTIVE PROJECT MANAGEMENT STYLE**
Create a results-driven action plan with clear priorities and execution focus.

# 🎯 Strategic Action Plan
**Initiative:** [Project/Initiative Name] | **Created:** {today}

## 🚀 Mission Statement

## 🔥 Critical Path Actions
### 🟥 HIGH PRIORITY (Do First)
| **Action** | **Owner** | **Due** | **Success Criteria** | **Dependencies** |
|------------|-----------|---------|---------------------|------------------|
| [Critical task] | [Name] | [Date] | [Measurable outcome] | [What's needed] |

### 🟨 MEDIUM PRIORITY (Do Next)
### 🟩 LOW PRIORITY (Do Later)

## 🎯 Success Metrics & KPIs
## 🛠️ Resource Requirements
## ⚠️ Risk Mitigation

**Execution Motto:** [Rallying cry for the team]
""",
    "interview_notes": """
**OBJECTIVE HR ASSESSMENT STYLE**
Create structured interview documentation with a professional evaluation tone.

# 🤝 Candidate Interview Assessment
**Date:** {today} | **Position:** [Role] | **Interviewer(s):** [Names]

## 👤 Candidate Profile
## 🎯 Technical Competencies
| **Skill Area** | **Proficiency** | **Evidence/Examples** | **Assessment** |
|----------------|-----------------|----------------------|----------------|
| [Technology] | [Beginner/Intermediate/Advanced] | [Examples given] | [Notes] |

## 💼 Experience Evaluation
## 🧠 Problem-Solving Assessment
## 🤝 Cultural Fit Indicators
## 💬 Notable Questions & Responses
## 📊 Overall Assessment

## 🚀 Recommendation
**Decision:** [Proceed/Hold/Pass] | **Rationale:** [Why]
""",
    "sales_call": """
**SALES INTELLIGENCE & CRM STYLE**
Create a comprehensive sales analysis with an opportunity-focused, strategic tone.

# 💼 Sales Intelligence Report
**Prospect:** [Company/Contact] | **Date:** {today} | **Rep:** [Sales Rep]

## 🎯 Opportunity Overview
**Deal Size:** [Estimated value] | **Timeline:** [Expected close] | **Probability:** [Likelihood %]

## 🔍 Discovery Insights
🟥 **Critical Pain:** [Urgent business problem]
🟨 **Secondary Pain:** [Additional challenges]

## 💡 Solutions Positioning
## 🚧 Objections & Responses
| **Objection** | **Response Strategy** | **Resolution Status** |
|---------------|----------------------|----------------------|
| [Concern raised] | [How we responded] | [Resolved/Pending] |

## 📈 Buying Signals Detected
## 🎯 Next Steps Strategy
## 🏆 Win Strategy
""",
    "training_session": """
**EDUCATIONAL & LEARNING-FOCUSED STYLE**
Create comprehensive training documentation with a learning-outcome emphasis.

# 🎓 Training Session Documentation
**Program:** [Training Title] | **Date:** {today} | **Facilitator:** [Instructor]

## 🎯 Learning Objectives Achieved
✅ **Primary Objective:** [Main learning goal]

## 📚 Curriculum Coverage
| **Concept** | **Complexity** | **Practical Application** | **Mastery Level** |
|-------------|----------------|---------------------------|-------------------|
| [Topic] | [Basic/Intermediate/Advanced] | [Real-world use] | [Understanding] |

## 💡 Key Learning Insights
## 🛠️ Practical Applications
## 🤔 Questions & Clarifications
## 🎯 Action Learning Plan
## 📖 Continued Learning Resources

**Learning Impact Statement:** [How this training changes their capability]
""",
}

SUMMARY_STYLES: dict[str, str] = {
    "meeting_summary": (
        "**EXECUTIVE SUMMARY STYLE**\n"
        "Capture the meeting's purpose, the most critical decisions and their impact, "
        "the top action items, and the next milestone. Use confident, results-oriented language."
    ),
    "client_update": (
        "**CLIENT-FOCUSED SUMMARY STYLE**\n"
        "Emphasise tangible progress and value delivered, current momentum, the next "
        "deliverable and when it lands. Use relationship-building language."
    ),
    "action_plan": (
        "**RESULTS-DRIVEN SUMMARY STYLE**\n"
        "Highlight the strategic objective, the top priority actions, key dependencies, "
        "and the timeline for measurable outcomes. Use decisive language."
    ),
    "interview_notes": (
        "**HIRING DECISION SUMMARY STYLE**\n"
        "Cover the candidate's strongest qualifications, team fit, significant concerns, "
        "and a clear recommendation. Use objective language."
    ),
    "sales_call": (
        "**SALES OPPORTUNITY SUMMARY STYLE**\n"
        "Capture the prospect's pain points, our solution fit, deal size and timeline, "
        "and the critical next steps. Use opportunity-focused language."
    ),
    "training_session": (
        "**LEARNING IMPACT SUMMARY STYLE**\n"
        "Highlight the skills gained, the most impactful learning moments, how participants "
        "will apply them, and the improvement in team capability."
    ),
}


@dataclass(frozen=True)
class PromptBundle:
    system_prompt: str
    user_prompt: str


def resolve_template(template_type: str | None) -> str:
    """Return ``template_type`` when known, otherwise the meeting-summary default."""

    if template_type and template_type in BRIEF_STYLES:
        return template_type
    return DEFAULT_TEMPLATE


def build_brief_prompt(
    transcript: str,
    template_type: str | None = None,
    *,
    tone: str = "professional",
    length: str = "detailed",
    custom_instructions: str | None = None,
    today: date | None = None,
) -> PromptBundle:
    style = BRIEF_STYLES[resolve_template(template_type)].format(
        today=(today or date.today()).isoformat()
    )
    detail = (
        "comprehensive with full details and rich formatting"
        if length == "detailed"
        else "concise but complete"
    )
    rules = [
        "Follow the template structure and style exactly.",
        "Extract relevant information from the transcription and organise it professionally.",
        f"Use a {tone} tone throughout that matches the template's business context.",
        f"Make the brief {detail}.",
        "If information for a section is not available in the transcription, write "
        '"[Information not provided in audio]" instead of making up content.',
        "Use the exact formatting style (headers, tables, emojis) shown in the template.",
    ]
    if custom_instructions:
        rules.append(f"Additional custom requirements: {custom_instructions.strip()}")

    user_prompt = "\n".join(
        [
            "Analyze the following transcription and create a comprehensive brief using this template.",
            "",
            "Template Style & Structure:",
            style.strip(),
            "",
            "Transcription to analyze:",
            transcript.strip(),
            "",
            "Instructions:",
            *(f"- {rule}" for rule in rules),
        ]
    )
    return PromptBundle(system_prompt=SYSTEM_PROMPT, user_prompt=user_prompt)


def build_summary_prompt(transcript: str, template_type: str | None = None) -> PromptBundle:
    style = SUMMARY_STYLES[resolve_template(template_type)]
    user_prompt = "\n".join(
        [
            "Based on the following transcription, create a powerful executive summary using this style guide.",
            "",
            "Summary Style Guide:",
            style,
            "",
            "Transcription to summarize:",
            transcript.strip(),
            "",
            "Instructions:",
            "- Write 3-4 sentences that capture the essence.",
            "- Keep only the information that drives decisions.",
            "- Do not exceed 4 sentences.",
        ]
    )
    return PromptBundle(system_prompt=SYSTEM_PROMPT, user_prompt=user_prompt)


__all__ = [
    "BRIEF_STYLES",
    "DEFAULT_TEMPLATE",
    "PromptBundle",
    "SUMMARY_STYLES",
    "build_brief_prompt",
    "build_summary_prompt",
    "resolve_template",
]
