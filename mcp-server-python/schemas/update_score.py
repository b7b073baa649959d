"""Pydantic schemas for the score and mentorship plan tools."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field, field_validator

from schemas.common import (
    DbPathMixin,
    RecordIdMixin,
    StrictIgnoreRequest,
    validate_optional_non_empty_str,
)


class _OptionalActorMixin(StrictIgnoreRequest):
    actor: Optional[str] = None

    @field_validator("actor")
    @classmethod
    def validate_actor(cls, value: Optional[str]) -> Optional[str]:
        return validate_optional_non_empty_str(value, "actor")


class RecomputeApplicationScoreRequest(RecordIdMixin, DbPathMixin, _OptionalActorMixin):
    """Request schema for recompute_application_score."""

    candidate: dict[str, Any]
    job: dict[str, Any]


class SetMentorshipPlanRequest(RecordIdMixin, DbPathMixin, _OptionalActorMixin):
    """Request schema for set_mentorship_plan."""

    objectives: list[str] = Field(min_length=1)
    milestones: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("objectives")
    @classmethod
    def validate_objectives(cls, value: list[str]) -> list[str]:
        cleaned = [objective.strip() for objective in value if objective.strip()]
        if not cleaned:
            raise ValueError("At least one objective is required")
        return cleaned


class CompleteMilestoneRequest(RecordIdMixin, DbPathMixin, _OptionalActorMixin):
    """Request schema for complete_milestone."""

    milestone_index: int = Field(ge=0)

