"""
Tests for mentorship plan edits.
"""

import pytest

from models.errors import ErrorCode, ToolError
from models.record import LifecycleRecord
from models.snapshots import MentorshipPlan
from utils.mentorship_plan import build_plan, current_plan, mark_milestone_completed

T0 = "2026-03-01T09:00:00.000Z"
T1 = "2026-03-08T09:00:00.000Z"


@pytest.fixture
def record():
    return LifecycleRecord(
        id="mentorship_1",
        kind="mentorship",
        subject_ref="mentee-1",
        counterparty_ref="mentor-1",
        state="active",
        version=3,
        created_at=T0,
        updated_at=T0,
    )


@pytest.fixture
def plan():
    return MentorshipPlan.model_validate(
        {
            "id": "mentorship_1",
            "objectives": ["Ship a portfolio project"],
            "milestones": [
                {"title": "Pick a project", "target_date": "2026-03-15"},
                {"title": "First demo"},
                {"title": "Deploy", "description": "Public URL"},
            ],
        }
    )


class TestBuildPlan:
    def test_plan_belongs_to_record(self, record):
        plan = build_plan(record, ["Learn SQL"], [{"title": "Joins"}, {"title": "Indexes"}])
        assert plan.id == record.id
        assert [m.title for m in plan.milestones] == ["Joins", "Indexes"]
        assert plan.completed_count == 0


class TestCurrentPlan:
    def test_record_without_plan(self, record):
        with pytest.raises(ToolError) as exc_info:
            current_plan(record)
        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR
        assert "has no mentorship plan" in exc_info.value.message

    def test_record_with_plan(self, record, plan):
        planned = record.model_copy(update={"plan": plan})
        assert current_plan(planned) is plan


class TestMarkMilestoneCompleted:
    """Milestone completion returns a new plan."""

    def test_marks_one_milestone(self, plan):
        updated = mark_milestone_completed(plan, 1, T1)
        assert updated.milestones[1].is_completed is True
        assert updated.milestones[1].completed_at == T1
        assert updated.milestones[1].title == "First demo"
        assert updated.completed_count == 1
        assert plan.completed_count == 0

    def test_already_completed_keeps_timestamp(self, plan):
        once = mark_milestone_completed(plan, 0, T0)
        twice = mark_milestone_completed(once, 0, T1)
        assert twice.milestones[0].completed_at == T0
        assert twice.completed_count == 1

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_out_of_range(self, plan, index):
        with pytest.raises(ToolError) as exc_info:
            mark_milestone_completed(plan, index, T1)
        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR
        assert "milestone_index" in exc_info.value.message
