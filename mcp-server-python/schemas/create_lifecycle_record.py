"""Pydantic schemas for create_application and create_mentorship_request tools."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import field_validator

from schemas.common import (
    DbPathMixin,
    StrictIgnoreRequest,
    validate_non_empty_str,
    validate_optional_non_empty_str,
)


class CreateApplicationRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for create_application.

    ``candidate`` and ``job`` are scoring snapshots; their shape is checked
    by the score calculator so a missing ``id`` reports INVALID_SNAPSHOT.
    """

    candidate_id: str
    job_id: str
    candidate: dict[str, Any]
    job: dict[str, Any]
    actor: Optional[str] = None

    @field_validator("candidate_id", "job_id")
    @classmethod
    def validate_refs(cls, value: str, info) -> str:
        return validate_non_empty_str(value, info.field_name)

    @field_validator("actor")
    @classmethod
    def validate_actor(cls, value: Optional[str]) -> Optional[str]:
        return validate_optional_non_empty_str(value, "actor")


class CreateMentorshipRequestRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for create_mentorship_request.

    ``mentor`` is an optional mentor snapshot; its ``mentee_capacity`` caps
    how many active mentorships the mentor may hold (default 5).
    """

    mentee_id: str
    mentor_id: str
    mentor: Optional[dict[str, Any]] = None
    actor: Optional[str] = None

    @field_validator("mentee_id", "mentor_id")
    @classmethod
    def validate_refs(cls, value: str, info) -> str:
        return validate_non_empty_str(value, info.field_name)

    @field_validator("actor")
    @classmethod
    def validate_actor(cls, value: Optional[str]) -> Optional[str]:
        return validate_optional_non_empty_str(value, "actor")
