"""Shared schema primitives for MCP tool request/response models."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


def validate_optional_non_empty_str(value: Optional[str], field_name: str) -> Optional[str]:
    """Validate optional string fields that cannot be empty/whitespace."""
    if value is None:
        return None
    if not value.strip():
        raise ValueError(f"Invalid {field_name}: cannot be empty")
    return value


def validate_non_empty_str(value: str, field_name: str) -> str:
    """Validate required string fields that cannot be empty/whitespace."""
    if not value.strip():
        raise ValueError(f"Invalid {field_name}: cannot be empty")
    return value.strip()


class StrictIgnoreRequest(BaseModel):
    """Request base with strict typing and ignored unknown fields."""

    model_config = ConfigDict(extra="ignore", strict=True)


class StrictResponse(BaseModel):
    """Response/result base with strict typing and forbidden unknown fields."""

    model_config = ConfigDict(extra="forbid")


class DbPathMixin(BaseModel):
    """Reusable db_path field validation."""

    db_path: Optional[str] = None

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, value: Optional[str]) -> Optional[str]:
        return validate_optional_non_empty_str(value, "db_path")


class RecordIdMixin(BaseModel):
    """Reusable record_id field validation for tools that act on a stored record."""

    record_id: str

    @field_validator("record_id")
    @classmethod
    def validate_record_id(cls, value: str) -> str:
        return validate_non_empty_str(value, "record_id")


class ActorMixin(BaseModel):
    """Reusable actor field validation for mutating tools."""

    actor: str

    @field_validator("actor")
    @classmethod
    def validate_actor(cls, value: str) -> str:
        return validate_non_empty_str(value, "actor")


class LifecycleRecordResponse(StrictResponse):
    """Success response carrying one serialized lifecycle record."""

    record: dict[str, Any]
