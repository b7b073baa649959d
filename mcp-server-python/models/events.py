"""Lifecycle events handed to the event sink after a committed mutation."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from models.record import ScoreResult
from models.status import RecordKind


class EventType(str, Enum):
    """Kinds of lifecycle events."""

    RECORD_CREATED = "RecordCreated"
    STATE_CHANGED = "StateChanged"
    SCORE_UPDATED = "ScoreUpdated"


class LifecycleEvent(BaseModel):
    """Event payload published at most once per successful mutation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: EventType
    record_id: str
    kind: RecordKind
    subject_ref: str
    counterparty_ref: str
    actor: str
    occurred_at: str
    from_state: Optional[str] = None
    to_state: Optional[str] = None
    score: Optional[ScoreResult] = None
