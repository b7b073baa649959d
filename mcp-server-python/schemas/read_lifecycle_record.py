"""Pydantic schemas for get_lifecycle_record tool."""

from __future__ import annotations

from typing import Any, Optional

from schemas.common import DbPathMixin, RecordIdMixin, StrictIgnoreRequest, StrictResponse


class GetLifecycleRecordRequest(RecordIdMixin, DbPathMixin, StrictIgnoreRequest):
    """Request schema for get_lifecycle_record."""

    audit_limit: Optional[int] = None


class GetLifecycleRecordResponse(StrictResponse):
    """Success response schema for get_lifecycle_record."""

    record: dict[str, Any]
    allowed_next_states: list[str]
    audit_total: int
