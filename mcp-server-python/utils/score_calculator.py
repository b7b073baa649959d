"""
Deterministic compatibility and progress scoring for lifecycle records.

Two variants, selected by record kind:

- application: weighted match of a candidate snapshot against a job snapshot
  (skills 40%, experience 30%, education 20%, location 10%).
- mentorship: share of completed milestones in the mentorship plan.

Scoring is pure. Identical snapshots always yield identical results, and
missing optional fields contribute zero instead of raising.
"""

import math
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from models.errors import InvalidSnapshotError, UnknownKindError
from models.record import ScoreResult
from models.snapshots import CandidateSnapshot, JobSnapshot, MentorshipPlan
from models.status import RecordKind

# Application dimension weights; they sum to 1.0
SKILLS_WEIGHT = 0.4
EXPERIENCE_WEIGHT = 0.3
EDUCATION_WEIGHT = 0.2
LOCATION_WEIGHT = 0.1

# Education score when the candidate's level does not contain the required one
EDUCATION_MISMATCH_SCORE = 50
# Location score when both countries are known but differ
LOCATION_MISMATCH_SCORE = 30

# Job education requirement that accepts any candidate
ANY_EDUCATION = "any"

SnapshotT = TypeVar("SnapshotT", bound=BaseModel)


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero for positive values.

    Python's built-in ``round`` uses banker's rounding (``round(62.5) == 62``);
    scores round 62.5 up to 63.
    """
    return int(math.floor(value + 0.5))


def coerce_snapshot(value: Any, model: Type[SnapshotT], label: str) -> SnapshotT:
    """
    Accept a snapshot model or a plain mapping and return the model.

    Raises:
        InvalidSnapshotError: If the value is missing, lacks its ``id`` or is malformed
    """
    if isinstance(value, model):
        return value
    if value is None:
        raise InvalidSnapshotError(f"Missing {label} snapshot")
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if not isinstance(value, dict):
        raise InvalidSnapshotError(
            f"Invalid {label} snapshot: expected object, got {type(value).__name__}"
        )
    if value.get("id") in (None, ""):
        raise InvalidSnapshotError(f"Invalid {label} snapshot: missing required field 'id'")
    try:
        return model.model_validate(value)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "invalid value")
        raise InvalidSnapshotError(
            f"Invalid {label} snapshot field '{field}': {message}", original_error=e
        ) from e


def skills_match(candidate: CandidateSnapshot, job: JobSnapshot) -> float:
    """Share of the job's distinct required skills the candidate has, case-insensitive."""
    required = list(dict.fromkeys(skill.lower() for skill in job.required_skills))
    if not required:
        return 0.0
    held = {skill.lower() for skill in candidate.skills}
    matched = sum(1 for skill in required if skill in held)
    return matched / len(required) * 100


def experience_match(candidate: CandidateSnapshot, job: JobSnapshot) -> float:
    if job.min_experience_years == 0:
        return 100.0
    return min(candidate.experience_years / job.min_experience_years * 100, 100.0)


def education_match(candidate: CandidateSnapshot, job: JobSnapshot) -> float:
    required = job.education_level
    if not required or required.strip().lower() == ANY_EDUCATION:
        return 100.0
    if not candidate.education_level:
        return 0.0
    if required.strip().lower() in candidate.education_level.lower():
        return 100.0
    return float(EDUCATION_MISMATCH_SCORE)


def location_match(candidate: CandidateSnapshot, job: JobSnapshot) -> float:
    if job.is_remote:
        return 100.0
    if not job.country or not candidate.country:
        return 0.0
    if job.country.strip().lower() == candidate.country.strip().lower():
        return 100.0
    return float(LOCATION_MISMATCH_SCORE)


def compute_application_score(candidate: Any, job: Any) -> ScoreResult:
    """
    Score a candidate against a job posting.

    Sub-scores are computed unrounded, combined with the dimension weights,
    and then every value is rounded to the nearest integer.

    Args:
        candidate: CandidateSnapshot or mapping with at least ``id``
        job: JobSnapshot or mapping with at least ``id``

    Returns:
        ScoreResult with ``overall`` and the four ``*_match`` sub-scores

    Raises:
        InvalidSnapshotError: If either snapshot lacks its ``id``

    Examples:
        >>> score = compute_application_score(
        ...     {"id": "c1", "skills": ["python", "react"], "experience_years": 1},
        ...     {"id": "j1", "required_skills": ["python", "sql"],
        ...      "min_experience_years": 2, "education_level": "any", "is_remote": True},
        ... )
        >>> score.overall
        65
    """
    candidate = coerce_snapshot(candidate, CandidateSnapshot, "candidate")
    job = coerce_snapshot(job, JobSnapshot, "job")

    skills = skills_match(candidate, job)
    experience = experience_match(candidate, job)
    education = education_match(candidate, job)
    location = location_match(candidate, job)

    overall = (
        skills * SKILLS_WEIGHT
        + experience * EXPERIENCE_WEIGHT
        + education * EDUCATION_WEIGHT
        + location * LOCATION_WEIGHT
    )

    return ScoreResult(
        overall=round_half_up(overall),
        breakdown={
            "skills_match": round_half_up(skills),
            "experience_match": round_half_up(experience),
            "education_match": round_half_up(education),
            "location_match": round_half_up(location),
        },
    )


def compute_mentorship_progress(plan: Any) -> ScoreResult:
    """
    Percentage of completed milestones in a mentorship plan.

    A plan without milestones has zero progress.

    Raises:
        InvalidSnapshotError: If the plan lacks its ``id``
    """
    plan = coerce_snapshot(plan, MentorshipPlan, "mentorship plan")
    total = len(plan.milestones)
    progress = round_half_up(100 * plan.completed_count / total) if total else 0
    return ScoreResult(overall=progress, breakdown={"overall_progress": progress})


def compute(
    kind: Any,
    subject_snapshot: Optional[Any],
    counterparty_snapshot_or_plan: Any,
) -> ScoreResult:
    """
    Compute the score variant for a record kind.

    Args:
        kind: Record kind
        subject_snapshot: Candidate snapshot for applications; ignored for mentorship
        counterparty_snapshot_or_plan: Job snapshot for applications, plan for mentorship

    Returns:
        ScoreResult

    Raises:
        UnknownKindError: If the kind is not declared
        InvalidSnapshotError: If a required identity field is absent
    """
    key = kind.value if isinstance(kind, RecordKind) else str(kind)
    if key == RecordKind.APPLICATION.value:
        return compute_application_score(subject_snapshot, counterparty_snapshot_or_plan)
    if key == RecordKind.MENTORSHIP.value:
        return compute_mentorship_progress(counterparty_snapshot_or_plan)
    raise UnknownKindError(key)


# Whether a kind is scored the moment its record is created
SCORED_AT_CREATION: Dict[str, bool] = {
    RecordKind.APPLICATION.value: True,
    RecordKind.MENTORSHIP.value: False,
}
