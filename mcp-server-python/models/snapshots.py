"""
Read-only scoring inputs supplied by the caller-side snapshot provider.

Snapshots are point-in-time copies of a candidate profile, a job posting, or
a mentorship plan. The engine never fetches or mutates them; it only feeds
them to the score calculator. Only the ``id`` field is required on each
snapshot, every other field defaults to a zero-contribution value.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _normalize_skill_list(value: Any) -> Any:
    """Accept plain names or ``{"name": ...}`` objects; drop blanks."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        return value
    names = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("name")
        if isinstance(item, str) and item.strip():
            names.append(item.strip())
    return names


class SnapshotBase(BaseModel):
    """Snapshot base: immutable, unknown fields ignored, blank strings read as missing."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str

    @model_validator(mode="before")
    @classmethod
    def empty_strings_to_none(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: (None if isinstance(v, str) and not v.strip() else v) for k, v in data.items()}
        return data


class CandidateSnapshot(SnapshotBase):
    """Candidate profile fields used by application scoring."""

    skills: list[str] = Field(default_factory=list)
    experience_years: float = Field(default=0, ge=0)
    education_level: Optional[str] = None
    country: Optional[str] = None

    @field_validator("skills", mode="before")
    @classmethod
    def normalize_skills(cls, value: Any) -> Any:
        return _normalize_skill_list(value)

    @field_validator("experience_years", mode="before")
    @classmethod
    def missing_experience_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class JobSnapshot(SnapshotBase):
    """Job posting requirements used by application scoring."""

    required_skills: list[str] = Field(default_factory=list)
    min_experience_years: float = Field(default=0, ge=0)
    education_level: Optional[str] = None
    country: Optional[str] = None
    is_remote: bool = False

    @field_validator("required_skills", mode="before")
    @classmethod
    def normalize_skills(cls, value: Any) -> Any:
        return _normalize_skill_list(value)

    @field_validator("min_experience_years", mode="before")
    @classmethod
    def missing_experience_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("is_remote", mode="before")
    @classmethod
    def missing_remote_is_false(cls, value: Any) -> Any:
        return False if value is None else value


class Milestone(BaseModel):
    """One ordered step of a mentorship plan."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    title: Optional[str] = None
    description: Optional[str] = None
    target_date: Optional[str] = None
    is_completed: bool = False
    completed_at: Optional[str] = None


class MentorshipPlan(SnapshotBase):
    """Mentorship plan; ``id`` is the id of the mentorship record it belongs to."""

    objectives: list[str] = Field(default_factory=list)
    milestones: list[Milestone] = Field(default_factory=list)

    @field_validator("objectives", "milestones", mode="before")
    @classmethod
    def missing_list_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def completed_count(self) -> int:
        return sum(1 for milestone in self.milestones if milestone.is_completed)


# Active mentorships a mentor takes when their profile sets no capacity
DEFAULT_MENTEE_CAPACITY = 5


class MentorSnapshot(SnapshotBase):
    """Mentor profile fields checked when a mentorship request is created."""

    mentee_capacity: Optional[int] = Field(default=None, ge=0)

    @property
    def effective_capacity(self) -> int:
        """Configured capacity, or the default when unset or zero."""
        return self.mentee_capacity or DEFAULT_MENTEE_CAPACITY
