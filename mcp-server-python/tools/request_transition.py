"""
MCP tool handlers for request_transition and annotate_record.

Authorization is assumed to have happened before the tool is called; these
handlers only enforce which transitions exist and that the caller's view of
the record is current.
"""

from typing import Any, Dict

from pydantic import ValidationError

from config import get_config
from db.records_store import SqliteRecordRepository
from models.errors import ToolError, create_internal_error
from schemas.common import LifecycleRecordResponse
from schemas.request_transition import AnnotateRecordRequest, RequestTransitionRequest
from utils.engine_factory import build_engine, load_record
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import validate_note


def request_transition(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Move a lifecycle record to a new state.

    Flow:
    1. Validate the request (note length uses LIFECYCLE_NOTE_MAX_LENGTH)
    2. Load the record; if expected_version is given it must match
    3. Ask the engine for the transition (table check, audit entry, versioned write)
    4. Return the updated record

    Args:
        args: Dictionary containing parameters:
            - record_id (str): Record to transition
            - target_state (str): Requested next state
            - actor (str): Who requested the transition
            - note (str, optional): Stored on the audit entry
            - expected_version (int, optional): Version the caller last read
            - db_path (str, optional): Database path override

    Returns:
        {"record": {...}} on success.

        On error, returns:
        {
            "error": {
                "code": str,            # ILLEGAL_TRANSITION, CONCURRENT_MODIFICATION,
                                        # RECORD_NOT_FOUND, UNKNOWN_STATE,
                                        # VALIDATION_ERROR, DB_ERROR, INTERNAL_ERROR
                "message": str,
                "retryable": bool,
                ...                     # current_state/target_state for ILLEGAL_TRANSITION
            }
        }
    """
    try:
        request = RequestTransitionRequest.model_validate(args)
        note = validate_note(request.note, get_config().note_max_length)

        repository = SqliteRecordRepository(request.db_path)
        record = load_record(repository, request.record_id, request.expected_version)
        updated = build_engine(repository).request_transition(
            record, request.target_state, request.actor, note
        )

        return LifecycleRecordResponse(record=updated.model_dump(mode="json")).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()


def annotate_record(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Append a note to a record's audit trail without changing its state.

    Args:
        args: Dictionary containing parameters:
            - record_id (str): Record to annotate
            - actor (str): Who wrote the note
            - note (str): Non-blank note text
            - expected_version (int, optional): Version the caller last read
            - db_path (str, optional): Database path override

    Returns:
        {"record": {...}} with one more audit entry whose from_state equals
        to_state, or the standard error envelope.
    """
    try:
        request = AnnotateRecordRequest.model_validate(args)
        note = validate_note(request.note, get_config().note_max_length, required=True)

        repository = SqliteRecordRepository(request.db_path)
        record = load_record(repository, request.record_id, request.expected_version)
        updated = build_engine(repository).annotate(record, request.actor, note)

        return LifecycleRecordResponse(record=updated.model_dump(mode="json")).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
