"""
MCP tool handlers for create_application and create_mentorship_request.

Both create a lifecycle record in its kind's initial state through the
lifecycle engine. Applications are scored from the supplied snapshots at
creation; mentorship requests start unscored and
respect the mentor's capacity.
"""

from typing import Any, Dict

from pydantic import ValidationError

from db.records_store import SqliteRecordRepository
from models.errors import ToolError, create_internal_error
from models.status import RecordKind
from schemas.common import LifecycleRecordResponse
from schemas.create_lifecycle_record import (
    CreateApplicationRequest,
    CreateMentorshipRequestRequest,
)
from utils.engine_factory import build_engine
from utils.pydantic_error_mapper import map_pydantic_validation_error


def create_application(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a job application record and compute its match score.

    Args:
        args: Dictionary containing parameters:
            - candidate_id (str): Applicant reference
            - job_id (str): Job posting reference
            - candidate (dict): Candidate snapshot (``id`` required; skills,
              experience_years, education_level, country optional)
            - job (dict): Job snapshot (``id`` required; required_skills,
              min_experience_years, education_level, country, is_remote optional)
            - actor (str, optional): Who submitted the application (default: candidate_id)
            - db_path (str, optional): Database path override

    Returns:
        Dictionary with structure (success case):
        {
            "record": {
                "id": str,
                "kind": "application",
                "state": "submitted",
                "score": {"overall": int, "breakdown": {...}},
                "audit_trail": [],
                "version": 1,
                ...
            }
        }

        On error, returns:
        {
            "error": {
                "code": str,            # VALIDATION_ERROR, INVALID_SNAPSHOT,
                                        # DUPLICATE_RECORD, DB_ERROR, INTERNAL_ERROR
                "message": str,
                "retryable": bool
            }
        }
    """
    try:
        request = CreateApplicationRequest.model_validate(args)

        repository = SqliteRecordRepository(request.db_path)
        record = build_engine(repository).create(
            RecordKind.APPLICATION,
            request.candidate_id,
            request.job_id,
            subject_snapshot=request.candidate,
            counterparty_snapshot=request.job,
            actor=request.actor,
        )

        return LifecycleRecordResponse(record=record.model_dump(mode="json")).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()


def create_mentorship_request(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a pending mentorship request between a mentee and a mentor.

    Args:
        args: Dictionary containing parameters:
            - mentee_id (str): Mentee reference
            - mentor_id (str): Mentor reference
            - mentor (dict, optional): Mentor snapshot; ``mentee_capacity``
              caps the mentor's active mentorships (default 5)
            - actor (str, optional): Who sent the request (default: mentee_id)
            - db_path (str, optional): Database path override

    Returns:
        {"record": {...}} with ``state == "pending"`` and no score, or the
        standard error envelope (DUPLICATE_RECORD when an open request already
        links the two parties, CAPACITY_REACHED when the mentor is full).
    """
    try:
        request = CreateMentorshipRequestRequest.model_validate(args)
        mentor = None
        if request.mentor is not None:
            mentor = {"id": request.mentor_id, **request.mentor}

        repository = SqliteRecordRepository(request.db_path)
        record = build_engine(repository).create(
            RecordKind.MENTORSHIP,
            request.mentee_id,
            request.mentor_id,
            counterparty_snapshot=mentor,
            actor=request.actor,
        )

        return LifecycleRecordResponse(record=record.model_dump(mode="json")).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
