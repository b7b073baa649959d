"""Pydantic schemas for request_transition and annotate_record tools."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from schemas.common import (
    ActorMixin,
    DbPathMixin,
    RecordIdMixin,
    StrictIgnoreRequest,
    validate_non_empty_str,
)


class RequestTransitionRequest(RecordIdMixin, ActorMixin, DbPathMixin, StrictIgnoreRequest):
    """Request schema for request_transition.

    ``expected_version`` lets the caller pin the version it last read; a
    mismatch is reported as CONCURRENT_MODIFICATION without writing.
    """

    target_state: str
    note: Optional[str] = None
    expected_version: Optional[int] = Field(default=None, ge=1)

    @field_validator("target_state")
    @classmethod
    def validate_target_state(cls, value: str) -> str:
        return validate_non_empty_str(value, "target_state")


class AnnotateRecordRequest(RecordIdMixin, ActorMixin, DbPathMixin, StrictIgnoreRequest):
    """Request schema for annotate_record."""

    note: str
    expected_version: Optional[int] = Field(default=None, ge=1)
