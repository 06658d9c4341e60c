"""In-memory store for the workflows driven by this process."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from autobrief.pipelines.brief.workflow import BriefWorkflow

_MAX_WORKFLOWS = 200
_workflows: dict[str, "BriefWorkflow"] = {}


def register_workflow(workflow: "BriefWorkflow") -> None:
    """Store the workflow, evicting the oldest idle ones past the limit."""

    _workflows[str(workflow.id)] = workflow
    if len(_workflows) <= _MAX_WORKFLOWS:
        return
    for key in list(_workflows):
        if len(_workflows) <= _MAX_WORKFLOWS:
            break
        candidate = _workflows[key]
        if not candidate.is_running:
            candidate.reset()
            del _workflows[key]


def get_workflow(workflow_id: UUID, user_id: UUID) -> "BriefWorkflow | None":
    """Return the workflow when it exists and belongs to ``user_id``."""

    workflow = _workflows.get(str(workflow_id))
    if workflow is None or workflow.user_id != user_id:
        return None
    return workflow


def remove_workflow(workflow_id: UUID, user_id: UUID) -> "BriefWorkflow | None":
    workflow = get_workflow(workflow_id, user_id)
    if workflow is not None:
        del _workflows[str(workflow_id)]
    return workflow


def clear_workflows() -> None:
    for workflow in _workflows.values():
        workflow.reset()
    _workflows.clear()


__all__ = ["clear_workflows", "get_workflow", "register_workflow", "remove_workflow"]
