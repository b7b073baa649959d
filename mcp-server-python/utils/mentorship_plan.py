"""
Mentorship plan edits.

A plan is stored on its mentorship record and is only ever written together
with the progress score computed from it, by ``LifecycleEngine.recompute``.
These helpers build the next plan; they never persist anything.
"""

from typing import Any, Dict, List

from models.errors import create_validation_error
from models.record import LifecycleRecord
from models.snapshots import MentorshipPlan, Milestone


def build_plan(
    record: LifecycleRecord, objectives: List[str], milestones: List[Dict[str, Any]]
) -> MentorshipPlan:
    """Build a replacement plan for ``record``, keeping milestones in the given order."""
    return MentorshipPlan.model_validate(
        {"id": record.id, "objectives": objectives, "milestones": milestones}
    )


def current_plan(record: LifecycleRecord) -> MentorshipPlan:
    """
    Return the plan stored on ``record``.

    Raises:
        ToolError: VALIDATION_ERROR if the record has no plan yet
    """
    if record.plan is None:
        raise create_validation_error(f"Invalid record_id: {record.id} has no mentorship plan")
    return record.plan


def mark_milestone_completed(plan: MentorshipPlan, index: int, timestamp: str) -> MentorshipPlan:
    """
    Return a copy of ``plan`` with milestone ``index`` completed.

    An already-completed milestone keeps its original ``completed_at``.

    Raises:
        ToolError: VALIDATION_ERROR if ``index`` is out of range
    """
    if index < 0 or index >= len(plan.milestones):
        raise create_validation_error(
            f"Invalid milestone_index: {index} is out of range for "
            f"{len(plan.milestones)} milestone(s)"
        )

    milestones = list(plan.milestones)
    current = milestones[index]
    if not current.is_completed:
        milestones[index] = Milestone.model_validate(
            {**current.model_dump(), "is_completed": True, "completed_at": timestamp}
        )
    return plan.model_copy(update={"milestones": milestones})
