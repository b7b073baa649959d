"""
Lifecycle record schema shared by job applications and mentorship requests.

Records are immutable pydantic models. The lifecycle engine produces a new
record for every committed mutation (``model_copy(update=...)``), so a record
held by a caller never changes underneath it and a failed write leaves the
caller's copy exactly as it was.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models.snapshots import MentorshipPlan
from models.status import RecordKind


class AuditEntry(BaseModel):
    """One transition or annotation in a record's audit trail."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    timestamp: str
    actor: str
    from_state: str
    to_state: str
    note: Optional[str] = None

    @property
    def is_annotation(self) -> bool:
        """True for pure notes, which keep the state unchanged."""
        return self.from_state == self.to_state


class ScoreResult(BaseModel):
    """Compatibility or progress score with its rounded sub-scores."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    overall: int = Field(ge=0, le=100)
    breakdown: dict[str, int] = Field(default_factory=dict)


class LifecycleRecord(BaseModel):
    """A job application or mentorship request moving through its statuses.

    ``version`` is the optimistic-concurrency token: 0 for a record that has
    never been stored, incremented by one on every committed write.

    Mentorship records carry their plan: the plan and the progress score
    computed from it are committed by the same versioned write.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    kind: RecordKind
    subject_ref: str
    counterparty_ref: str
    state: str
    score: Optional[ScoreResult] = None
    plan: Optional[MentorshipPlan] = None
    audit_trail: tuple[AuditEntry, ...] = ()
    version: int = Field(default=0, ge=0)
    created_at: str
    updated_at: str
