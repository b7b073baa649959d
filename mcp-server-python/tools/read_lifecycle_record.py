"""
MCP tool handler for get_lifecycle_record.

Read-only: loads one record, trims its audit trail to the most recent
entries and reports which states the record may move to next.
"""

from typing import Any, Dict

from pydantic import ValidationError

from config import get_config
from db.records_store import SqliteRecordRepository
from models.errors import ToolError, create_internal_error
from schemas.read_lifecycle_record import GetLifecycleRecordRequest, GetLifecycleRecordResponse
from utils import audit_trail
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.transition_table import allowed_next
from utils.validation import validate_audit_limit


def get_lifecycle_record(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Read a lifecycle record.

    Args:
        args: Dictionary containing parameters:
            - record_id (str): Record id
            - audit_limit (int, optional): Trailing audit entries to return,
              1-1000 (default: LIFECYCLE_AUDIT_READ_LIMIT)
            - db_path (str, optional): Database path override

    Returns:
        Dictionary with structure (success case):
        {
            "record": {...},                # audit_trail holds the last N entries;
                                            # mentorship records carry their plan
            "allowed_next_states": [str],   # sorted; empty for terminal states
            "audit_total": int              # full audit trail length
        }

        On error, returns the standard error envelope
        (RECORD_NOT_FOUND, VALIDATION_ERROR, DB_ERROR, INTERNAL_ERROR).
    """
    try:
        request = GetLifecycleRecordRequest.model_validate(args)
        limit = request.audit_limit
        if limit is None:
            limit = get_config().audit_read_limit
        limit = validate_audit_limit(limit)

        record = SqliteRecordRepository(request.db_path).load(request.record_id)

        payload = record.model_dump(mode="json")
        payload["audit_trail"] = [
            entry.model_dump(mode="json") for entry in audit_trail.latest(record, limit)
        ]

        return GetLifecycleRecordResponse(
            record=payload,
            allowed_next_states=sorted(allowed_next(record.kind, record.state)),
            audit_total=len(record.audit_trail),
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
