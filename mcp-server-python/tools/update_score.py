"""
MCP tool handlers that refresh a record's score.

- recompute_application_score: rescore an application from fresh candidate
  and job snapshots. Scores are point-in-time; nothing refreshes them
  automatically.
- set_mentorship_plan: replace a mentorship plan and rescore progress.
- complete_milestone: mark one plan milestone complete and rescore progress.

The plan lives on the mentorship record and is committed by the same
versioned write as the score, so a caller that loses a version race gets
CONCURRENT_MODIFICATION and changes nothing.
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from db.records_store import SqliteRecordRepository
from models.errors import ToolError, create_internal_error
from models.status import RecordKind
from schemas.common import LifecycleRecordResponse
from schemas.update_score import (
    CompleteMilestoneRequest,
    RecomputeApplicationScoreRequest,
    SetMentorshipPlanRequest,
)
from utils.engine_factory import build_engine, load_record
from utils.lifecycle_engine import SYSTEM_ACTOR
from utils.mentorship_plan import build_plan, current_plan, mark_milestone_completed
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import get_current_utc_timestamp

logger = logging.getLogger(__name__)


def recompute_application_score(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recompute an application's match score from fresh snapshots.

    State and audit trail are unchanged; the record's version increases.

    Args:
        args: Dictionary containing parameters:
            - record_id (str): Application record id
            - candidate (dict): Candidate snapshot (``id`` required)
            - job (dict): Job snapshot (``id`` required)
            - actor (str, optional): Who triggered the recompute (default: system)
            - db_path (str, optional): Database path override

    Returns:
        {"record": {...}} on success, or the standard error envelope
        (INVALID_SNAPSHOT, RECORD_NOT_FOUND, VALIDATION_ERROR for a
        mentorship record, CONCURRENT_MODIFICATION, DB_ERROR, INTERNAL_ERROR).
    """
    try:
        request = RecomputeApplicationScoreRequest.model_validate(args)

        repository = SqliteRecordRepository(request.db_path)
        record = load_record(repository, request.record_id, kind=RecordKind.APPLICATION)
        updated = build_engine(repository).recompute(
            record, request.candidate, request.job, actor=request.actor or SYSTEM_ACTOR
        )

        return LifecycleRecordResponse(record=updated.model_dump(mode="json")).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()


def set_mentorship_plan(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Store the plan for a mentorship record and rescore its progress.

    Replaces any existing plan. Milestones are kept in the given order; each
    may carry title, description, target_date, is_completed and completed_at.

    Args:
        args: Dictionary containing parameters:
            - record_id (str): Mentorship record id
            - objectives (list[str]): At least one objective
            - milestones (list[dict], optional): Ordered milestones
            - actor (str, optional): Who set the plan (default: system)
            - db_path (str, optional): Database path override

    Returns:
        {"record": {...}} on success with the plan under ``record.plan``, or
        the standard error envelope.
    """
    try:
        request = SetMentorshipPlanRequest.model_validate(args)

        repository = SqliteRecordRepository(request.db_path)
        record = load_record(repository, request.record_id, kind=RecordKind.MENTORSHIP)

        plan = build_plan(record, request.objectives, request.milestones)
        updated = build_engine(repository).recompute(
            record, None, plan, actor=request.actor or SYSTEM_ACTOR
        )
        logger.info(
            f"Stored mentorship plan for record {record.id} "
            f"with {len(plan.milestones)} milestone(s)"
        )

        return LifecycleRecordResponse(record=updated.model_dump(mode="json")).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()


def complete_milestone(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Mark one milestone of a mentorship plan complete and rescore progress.

    Completing an already-completed milestone keeps its original
    completed_at and still rescores.

    Args:
        args: Dictionary containing parameters:
            - record_id (str): Mentorship record id
            - milestone_index (int): Zero-based milestone position
            - actor (str, optional): Who completed it (default: system)
            - db_path (str, optional): Database path override

    Returns:
        {"record": {...}} on success with the plan under ``record.plan``, or
        the standard error envelope (VALIDATION_ERROR when the record has no
        plan or the index is out of range).
    """
    try:
        request = CompleteMilestoneRequest.model_validate(args)

        repository = SqliteRecordRepository(request.db_path)
        record = load_record(repository, request.record_id, kind=RecordKind.MENTORSHIP)

        plan = mark_milestone_completed(
            current_plan(record), request.milestone_index, get_current_utc_timestamp()
        )
        updated = build_engine(repository).recompute(
            record, None, plan, actor=request.actor or SYSTEM_ACTOR
        )
        logger.info(f"Milestone {request.milestone_index} completed on record {record.id}")

        return LifecycleRecordResponse(record=updated.model_dump(mode="json")).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
