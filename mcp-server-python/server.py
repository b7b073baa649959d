#!/usr/bin/env python3
"""
MCP Server entry point for the relationship lifecycle engine.

This server exposes tools that create job applications and mentorship
requests, move them through their declared status transitions, keep their
scores current and read them back with their audit trails.

The server uses the FastMCP framework to expose the tools to LLM agents via
the Model Context Protocol.

Usage:
    python server.py

The server runs in stdio mode by default, which is the standard transport
for MCP servers that are invoked by LLM agents.
"""

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from config import get_config
from tools.create_lifecycle_record import create_application, create_mentorship_request
from tools.read_lifecycle_record import get_lifecycle_record
from tools.request_transition import annotate_record, request_transition
from tools.update_score import (
    complete_milestone,
    recompute_application_score,
    set_mentorship_plan,
)

# Create FastMCP server instance
config = get_config()
mcp = FastMCP(
    name=config.server_name,
    instructions=(
        "This server manages the lifecycle of job applications and mentorship requests. "
        "\n\n"
        "RECORDS:\n"
        "Use create_application to submit an application (scored against the job at creation). "
        "Use create_mentorship_request to open a pending mentorship request; a mentor at "
        "capacity returns CAPACITY_REACHED. "
        "Use get_lifecycle_record to read a record, its recent audit entries and its legal next states."
        "\n\n"
        "TRANSITIONS:\n"
        "Use request_transition to move a record to a new state. Only declared transitions are "
        "accepted; terminal states (hired, rejected, withdrawn, cancelled, declined, completed) "
        "cannot be left. Use annotate_record to add a note without changing state. "
        "A CONCURRENT_MODIFICATION error means the record changed since it was read: "
        "re-read it and decide again."
        "\n\n"
        "SCORES:\n"
        "Application scores are point-in-time. Use recompute_application_score with fresh "
        "snapshots to refresh one. Use set_mentorship_plan and complete_milestone to maintain "
        "a mentorship plan; both rescore mentorship progress."
    ),
)


@mcp.tool(
    name="create_application",
    description=(
        "Create a job application record in state 'submitted' and compute its match score "
        "(skills 40%, experience 30%, education 20%, location 10%) from candidate and job snapshots. "
        "A candidate may apply to a job only once."
    ),
)
def create_application_tool(
    candidate_id: str,
    job_id: str,
    candidate: dict[str, Any],
    job: dict[str, Any],
    actor: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Create a job application record.

    Args:
        candidate_id: Applicant reference (required).
        job_id: Job posting reference (required).
        candidate: Candidate snapshot with ``id`` and optional skills,
            experience_years, education_level, country.
        job: Job snapshot with ``id`` and optional required_skills,
            min_experience_years, education_level, country, is_remote.
        actor: Who submitted the application (default: candidate_id).
        db_path: Optional SQLite path override (default: data/lifecycle.db).

    Returns:
        {"record": {...}} or {"error": {"code", "message", "retryable"}}.

    Examples:
        create_application_tool(
            candidate_id="cand-1",
            job_id="job-9",
            candidate={"id": "cand-1", "skills": ["python", "react"], "experience_years": 1},
            job={"id": "job-9", "required_skills": ["python", "sql"],
                 "min_experience_years": 2, "education_level": "any", "is_remote": True},
        )
        # record.score.overall == 65
    """
    args: dict[str, Any] = {
        "candidate_id": candidate_id,
        "job_id": job_id,
        "candidate": candidate,
        "job": job,
    }
    if actor is not None:
        args["actor"] = actor
    if db_path is not None:
        args["db_path"] = db_path

    return create_application(args)


@mcp.tool(
    name="create_mentorship_request",
    description=(
        "Create a mentorship request in state 'pending' between a mentee and a mentor. "
        "Only one pending, accepted or active mentorship may link the same two people, and a "
        "mentor holds at most mentee_capacity active mentorships (default 5)."
    ),
)
def create_mentorship_request_tool(
    mentee_id: str,
    mentor_id: str,
    mentor: dict[str, Any] | None = None,
    actor: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Create a mentorship request.

    Args:
        mentee_id: Mentee reference (required).
        mentor_id: Mentor reference (required).
        mentor: Optional mentor snapshot, e.g. {"mentee_capacity": 3}.
        actor: Who sent the request (default: mentee_id).
        db_path: Optional SQLite path override.

    Returns:
        {"record": {...}} or the error envelope.
    """
    args: dict[str, Any] = {"mentee_id": mentee_id, "mentor_id": mentor_id}
    if mentor is not None:
        args["mentor"] = mentor
    if actor is not None:
        args["actor"] = actor
    if db_path is not None:
        args["db_path"] = db_path

    return create_mentorship_request(args)


@mcp.tool(
    name="request_transition",
    description=(
        "Move a job application or mentorship request to a new state. Rejects transitions the "
        "record's kind does not declare (ILLEGAL_TRANSITION, naming both states) and writes that "
        "lost a race with another writer (CONCURRENT_MODIFICATION, retryable)."
    ),
)
def request_transition_tool(
    record_id: str,
    target_state: str,
    actor: str,
    note: str | None = None,
    expected_version: int | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Request a status transition.

    Args:
        record_id: Record to transition (required).
        target_state: Requested next state (required).
            Applications: submitted, under-review, shortlisted, interview-scheduled,
            interview-completed, second-interview, reference-check, offer-made,
            offer-accepted, offer-declined, hired, rejected, withdrawn, cancelled.
            Mentorship: pending, accepted, declined, active, completed, cancelled.
        actor: Who requested the transition (required).
        note: Optional audit note (max LIFECYCLE_NOTE_MAX_LENGTH characters).
        expected_version: Version the caller last read; a mismatch is rejected.
        db_path: Optional SQLite path override.

    Returns:
        {"record": {...}} or the error envelope.

    Examples:
        request_transition_tool(record_id="application_ab12", target_state="under-review",
                                actor="employer-4")
    """
    args: dict[str, Any] = {"record_id": record_id, "target_state": target_state, "actor": actor}
    if note is not None:
        args["note"] = note
    if expected_version is not None:
        args["expected_version"] = expected_version
    if db_path is not None:
        args["db_path"] = db_path

    return request_transition(args)


@mcp.tool(
    name="annotate_record",
    description=(
        "Append a note to a record's audit trail without changing its state. "
        "Works on terminal records too."
    ),
)
def annotate_record_tool(
    record_id: str,
    actor: str,
    note: str,
    expected_version: int | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Annotate a record.

    Args:
        record_id: Record to annotate (required).
        actor: Who wrote the note (required).
        note: Non-blank note text (required).
        expected_version: Version the caller last read.
        db_path: Optional SQLite path override.

    Returns:
        {"record": {...}} or the error envelope.
    """
    args: dict[str, Any] = {"record_id": record_id, "actor": actor, "note": note}
    if expected_version is not None:
        args["expected_version"] = expected_version
    if db_path is not None:
        args["db_path"] = db_path

    return annotate_record(args)


@mcp.tool(
    name="recompute_application_score",
    description=(
        "Recompute an application's match score from fresh candidate and job snapshots. "
        "State and audit trail are unchanged."
    ),
)
def recompute_application_score_tool(
    record_id: str,
    candidate: dict[str, Any],
    job: dict[str, Any],
    actor: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Recompute an application score.

    Args:
        record_id: Application record id (required).
        candidate: Candidate snapshot with ``id`` (required).
        job: Job snapshot with ``id`` (required).
        actor: Who triggered the recompute (default: system).
        db_path: Optional SQLite path override.

    Returns:
        {"record": {...}} or the error envelope.
    """
    args: dict[str, Any] = {"record_id": record_id, "candidate": candidate, "job": job}
    if actor is not None:
        args["actor"] = actor
    if db_path is not None:
        args["db_path"] = db_path

    return recompute_application_score(args)


@mcp.tool(
    name="set_mentorship_plan",
    description=(
        "Store the plan (objectives and ordered milestones) for a mentorship record, "
        "replacing any previous plan, and rescore mentorship progress."
    ),
)
def set_mentorship_plan_tool(
    record_id: str,
    objectives: list[str],
    milestones: list[dict[str, Any]] | None = None,
    actor: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Set a mentorship plan.

    Args:
        record_id: Mentorship record id (required).
        objectives: At least one objective (required).
        milestones: Ordered milestones with title, description, target_date,
            is_completed, completed_at (default: none).
        actor: Who set the plan (default: system).
        db_path: Optional SQLite path override.

    Returns:
        {"record": {...}, "plan": {...}} or the error envelope.
    """
    args: dict[str, Any] = {"record_id": record_id, "objectives": objectives}
    if milestones is not None:
        args["milestones"] = milestones
    if actor is not None:
        args["actor"] = actor
    if db_path is not None:
        args["db_path"] = db_path

    return set_mentorship_plan(args)


@mcp.tool(
    name="complete_milestone",
    description=(
        "Mark one milestone of a mentorship plan complete and rescore mentorship progress "
        "(completed milestones / total, as a percentage)."
    ),
)
def complete_milestone_tool(
    record_id: str,
    milestone_index: int,
    actor: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Complete a mentorship milestone.

    Args:
        record_id: Mentorship record id (required).
        milestone_index: Zero-based milestone position (required).
        actor: Who completed it (default: system).
        db_path: Optional SQLite path override.

    Returns:
        {"record": {...}, "plan": {...}} or the error envelope.
    """
    args: dict[str, Any] = {"record_id": record_id, "milestone_index": milestone_index}
    if actor is not None:
        args["actor"] = actor
    if db_path is not None:
        args["db_path"] = db_path

    return complete_milestone(args)


@mcp.tool(
    name="get_lifecycle_record",
    description=(
        "Read a lifecycle record with its most recent audit entries, full audit length, "
        "legal next states and, for mentorship records, its plan."
    ),
)
def get_lifecycle_record_tool(
    record_id: str,
    audit_limit: int | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Read a lifecycle record.

    Args:
        record_id: Record id (required).
        audit_limit: Trailing audit entries to return, 1-1000
            (default: LIFECYCLE_AUDIT_READ_LIMIT).
        db_path: Optional SQLite path override.

    Returns:
        {"record": {...}, "allowed_next_states": [...], "audit_total": int}
        or the error envelope.
    """
    args: dict[str, Any] = {"record_id": record_id}
    if audit_limit is not None:
        args["audit_limit"] = audit_limit
    if db_path is not None:
        args["db_path"] = db_path

    return get_lifecycle_record(args)


def main():
    """
    Main entry point for the MCP server.

    Runs the server in stdio mode, which is the standard transport
    for MCP servers that are invoked by LLM agents.
    """
    config.setup_logging()

    logger = logging.getLogger(__name__)
    logger.info("Starting Lifecycle MCP Server")
    logger.info(f"Server name: {config.server_name}")
    logger.info(f"Database path: {config.db_path}")

    warnings = config.validate()
    for warning in warnings:
        logger.warning(warning)

    logger.info("Server starting in stdio mode")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
