"""
Tests for the lifecycle MCP tool handlers.

Each test works against a temporary SQLite database passed as ``db_path``;
handlers must return either a success payload or the error envelope and
never raise.
"""

import sqlite3
import threading
from unittest.mock import patch

import pytest

from config import config
from db.event_outbox import SqliteEventOutbox
from tools.create_lifecycle_record import create_application, create_mentorship_request
from tools.read_lifecycle_record import get_lifecycle_record
from tools.request_transition import annotate_record, request_transition
from tools.update_score import (
    complete_milestone,
    recompute_application_score,
    set_mentorship_plan,
)
from utils.engine_factory import load_record

CANDIDATE = {"id": "cand-1", "skills": ["python", "react"], "experience_years": 1}
JOB = {
    "id": "job-1",
    "required_skills": ["python", "sql"],
    "min_experience_years": 2,
    "education_level": "any",
    "is_remote": True,
}


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "lifecycle.db")


@pytest.fixture
def application(db_path):
    result = create_application(
        {
            "candidate_id": "cand-1",
            "job_id": "job-1",
            "candidate": CANDIDATE,
            "job": JOB,
            "db_path": db_path,
        }
    )
    assert "error" not in result
    return result["record"]


@pytest.fixture
def mentorship(db_path):
    result = create_mentorship_request(
        {"mentee_id": "mentee-1", "mentor_id": "mentor-1", "db_path": db_path}
    )
    assert "error" not in result
    return result["record"]


def transition(db_path, record_id, target_state, **extra):
    args = {
        "record_id": record_id,
        "target_state": target_state,
        "actor": "employer-1",
        "db_path": db_path,
    }
    args.update(extra)
    return request_transition(args)


class TestCreateTools:
    def test_create_application_is_scored(self, application):
        assert application["kind"] == "application"
        assert application["state"] == "submitted"
        assert application["score"]["overall"] == 65
        assert application["audit_trail"] == []
        assert application["version"] == 1

    def test_create_mentorship_is_unscored(self, mentorship):
        assert mentorship["state"] == "pending"
        assert mentorship["score"] is None

    def test_duplicate_application(self, db_path, application):
        result = create_application(
            {
                "candidate_id": "cand-1",
                "job_id": "job-1",
                "candidate": CANDIDATE,
                "job": JOB,
                "db_path": db_path,
            }
        )
        assert result["error"]["code"] == "DUPLICATE_RECORD"
        assert result["error"]["retryable"] is False

    def test_mentor_at_capacity(self, db_path, mentorship):
        for state in ("accepted", "active"):
            transition(db_path, mentorship["id"], state)

        result = create_mentorship_request(
            {
                "mentee_id": "mentee-2",
                "mentor_id": "mentor-1",
                "mentor": {"mentee_capacity": 1},
                "db_path": db_path,
            }
        )

        assert result["error"]["code"] == "CAPACITY_REACHED"
        assert result["error"]["capacity"] == 1
        assert result["error"]["counterparty_ref"] == "mentor-1"
        assert result["error"]["retryable"] is False

    def test_mentor_with_room(self, db_path, mentorship):
        result = create_mentorship_request(
            {
                "mentee_id": "mentee-2",
                "mentor_id": "mentor-1",
                "mentor": {"mentee_capacity": 1},
                "db_path": db_path,
            }
        )
        assert result["record"]["state"] == "pending"

    def test_invalid_snapshot(self, db_path):
        result = create_application(
            {
                "candidate_id": "cand-1",
                "job_id": "job-1",
                "candidate": {"skills": ["python"]},
                "job": JOB,
                "db_path": db_path,
            }
        )
        assert result["error"]["code"] == "INVALID_SNAPSHOT"

    def test_validation_error_envelope(self, db_path):
        result = create_mentorship_request({"mentee_id": "mentee-1", "db_path": db_path})
        assert result == {
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Missing required parameter: 'mentor_id'",
                "retryable": False,
            }
        }

    def test_unexpected_exception_is_internal_error(self, db_path):
        with patch(
            "tools.create_lifecycle_record.build_engine", side_effect=RuntimeError("boom")
        ):
            result = create_mentorship_request(
                {"mentee_id": "mentee-1", "mentor_id": "mentor-1", "db_path": db_path}
            )
        assert result["error"]["code"] == "INTERNAL_ERROR"
        assert result["error"]["retryable"] is True


class TestRequestTransitionTool:
    def test_legal_transition(self, db_path, application):
        result = transition(db_path, application["id"], "under-review", note="CV looks good")
        record = result["record"]
        assert record["state"] == "under-review"
        assert record["version"] == 2
        assert record["audit_trail"][-1]["from_state"] == "submitted"
        assert record["audit_trail"][-1]["note"] == "CV looks good"

    def test_illegal_transition_leaves_record_unchanged(self, db_path, application):
        result = transition(db_path, application["id"], "hired")
        assert result["error"]["code"] == "ILLEGAL_TRANSITION"
        assert result["error"]["current_state"] == "submitted"
        assert result["error"]["target_state"] == "hired"

        stored = get_lifecycle_record({"record_id": application["id"], "db_path": db_path})
        assert stored["record"]["version"] == 1
        assert stored["audit_total"] == 0

    def test_missing_record(self, db_path):
        result = transition(db_path, "application_missing", "under-review")
        assert result["error"]["code"] == "RECORD_NOT_FOUND"

    def test_stale_expected_version(self, db_path, application):
        transition(db_path, application["id"], "under-review")
        result = transition(db_path, application["id"], "rejected", expected_version=1)
        assert result["error"]["code"] == "CONCURRENT_MODIFICATION"
        assert result["error"]["retryable"] is True
        assert result["error"]["expected_version"] == 1

    def test_current_expected_version(self, db_path, application):
        result = transition(db_path, application["id"], "withdrawn", expected_version=1)
        assert result["record"]["state"] == "withdrawn"

    def test_note_limit_from_config(self, db_path, application):
        with patch.object(config, "note_max_length", 5):
            result = transition(db_path, application["id"], "under-review", note="too long")
        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "exceeds maximum of 5" in result["error"]["message"]

    def test_terminal_state_rejects_everything(self, db_path, mentorship):
        transition(db_path, mentorship["id"], "declined")
        result = transition(db_path, mentorship["id"], "accepted")
        assert result["error"]["code"] == "ILLEGAL_TRANSITION"


class TestAnnotateTool:
    def test_annotation_keeps_state(self, db_path, application):
        result = annotate_record(
            {
                "record_id": application["id"],
                "actor": "employer-1",
                "note": "Phone screen booked",
                "db_path": db_path,
            }
        )
        record = result["record"]
        assert record["state"] == "submitted"
        assert record["version"] == 2
        entry = record["audit_trail"][-1]
        assert entry["from_state"] == entry["to_state"] == "submitted"

    def test_blank_note_rejected(self, db_path, application):
        result = annotate_record(
            {"record_id": application["id"], "actor": "employer-1", "note": "  ", "db_path": db_path}
        )
        assert result["error"]["code"] == "VALIDATION_ERROR"


class TestRecomputeTool:
    def test_recompute_changes_score_only(self, db_path, application):
        result = recompute_application_score(
            {
                "record_id": application["id"],
                "candidate": {**CANDIDATE, "skills": ["python", "sql"]},
                "job": JOB,
                "db_path": db_path,
            }
        )
        record = result["record"]
        assert record["score"]["breakdown"]["skills_match"] == 100
        assert record["state"] == "submitted"
        assert record["audit_trail"] == []
        assert record["version"] == 2

    def test_mentorship_record_rejected(self, db_path, mentorship):
        result = recompute_application_score(
            {"record_id": mentorship["id"], "candidate": CANDIDATE, "job": JOB, "db_path": db_path}
        )
        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "expected application" in result["error"]["message"]


class TestPlanTools:
    def set_plan(self, db_path, record_id, milestones=4):
        return set_mentorship_plan(
            {
                "record_id": record_id,
                "objectives": ["Learn SQL"],
                "milestones": [{"title": f"Step {i}"} for i in range(milestones)],
                "db_path": db_path,
            }
        )

    def test_set_plan_scores_zero(self, db_path, mentorship):
        result = self.set_plan(db_path, mentorship["id"])
        assert result["record"]["score"]["overall"] == 0
        assert len(result["record"]["plan"]["milestones"]) == 4
        assert result["record"]["version"] == 2

    def test_complete_milestone_rescores(self, db_path, mentorship):
        self.set_plan(db_path, mentorship["id"])
        result = complete_milestone(
            {"record_id": mentorship["id"], "milestone_index": 0, "db_path": db_path}
        )
        assert result["record"]["score"] == {
            "overall": 25,
            "breakdown": {"overall_progress": 25},
        }
        milestone = result["record"]["plan"]["milestones"][0]
        assert milestone["is_completed"] is True
        assert milestone["completed_at"] is not None

    def test_complete_without_plan(self, db_path, mentorship):
        result = complete_milestone(
            {"record_id": mentorship["id"], "milestone_index": 0, "db_path": db_path}
        )
        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "has no mentorship plan" in result["error"]["message"]

    def test_complete_out_of_range(self, db_path, mentorship):
        self.set_plan(db_path, mentorship["id"], milestones=2)
        result = complete_milestone(
            {"record_id": mentorship["id"], "milestone_index": 5, "db_path": db_path}
        )
        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "out of range" in result["error"]["message"]

    def test_application_record_rejected(self, db_path, application):
        result = self.set_plan(db_path, application["id"])
        assert result["error"]["code"] == "VALIDATION_ERROR"

    def test_concurrent_completions_lose_no_milestone(self, db_path, mentorship):
        """Both callers load the same plan; the loser is told to retry, not silently dropped."""
        self.set_plan(db_path, mentorship["id"], milestones=2)
        barrier = threading.Barrier(2)

        def held_load(*args, **kwargs):
            record = load_record(*args, **kwargs)
            barrier.wait(timeout=5)
            return record

        results = {}

        def complete(index):
            results[index] = complete_milestone(
                {"record_id": mentorship["id"], "milestone_index": index, "db_path": db_path}
            )

        with patch("tools.update_score.load_record", side_effect=held_load):
            threads = [threading.Thread(target=complete, args=(i,)) for i in (0, 1)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        winners = [i for i, r in results.items() if "record" in r]
        losers = [i for i, r in results.items() if "error" in r]
        assert len(winners) == 1
        assert len(losers) == 1
        assert results[losers[0]]["error"]["code"] == "CONCURRENT_MODIFICATION"

        stored = get_lifecycle_record({"record_id": mentorship["id"], "db_path": db_path})
        milestones = stored["record"]["plan"]["milestones"]
        assert milestones[winners[0]]["is_completed"] is True
        assert milestones[losers[0]]["is_completed"] is False
        assert stored["record"]["score"]["overall"] == 50

        retried = complete_milestone(
            {"record_id": mentorship["id"], "milestone_index": losers[0], "db_path": db_path}
        )
        assert retried["record"]["score"]["overall"] == 100


class TestGetLifecycleRecordTool:
    def test_read_reports_next_states(self, db_path, application):
        result = get_lifecycle_record({"record_id": application["id"], "db_path": db_path})
        assert result["record"]["id"] == application["id"]
        assert result["allowed_next_states"] == ["rejected", "under-review", "withdrawn"]
        assert result["audit_total"] == 0
        assert result["record"]["plan"] is None

    def test_audit_limit_trims_trail(self, db_path, application):
        for i in range(3):
            annotate_record(
                {
                    "record_id": application["id"],
                    "actor": "employer-1",
                    "note": f"note {i}",
                    "db_path": db_path,
                }
            )
        result = get_lifecycle_record(
            {"record_id": application["id"], "audit_limit": 2, "db_path": db_path}
        )
        assert result["audit_total"] == 3
        assert [e["note"] for e in result["record"]["audit_trail"]] == ["note 1", "note 2"]

    def test_default_limit_from_config(self, db_path, application):
        annotate_record(
            {"record_id": application["id"], "actor": "e", "note": "a", "db_path": db_path}
        )
        annotate_record(
            {"record_id": application["id"], "actor": "e", "note": "b", "db_path": db_path}
        )
        with patch.object(config, "audit_read_limit", 1):
            result = get_lifecycle_record({"record_id": application["id"], "db_path": db_path})
        assert [e["note"] for e in result["record"]["audit_trail"]] == ["b"]

    @pytest.mark.parametrize("limit", [0, 1001])
    def test_invalid_audit_limit(self, db_path, application, limit):
        result = get_lifecycle_record(
            {"record_id": application["id"], "audit_limit": limit, "db_path": db_path}
        )
        assert result["error"]["code"] == "VALIDATION_ERROR"

    def test_mentorship_includes_plan(self, db_path, mentorship):
        set_mentorship_plan(
            {"record_id": mentorship["id"], "objectives": ["Ship a project"], "db_path": db_path}
        )
        result = get_lifecycle_record({"record_id": mentorship["id"], "db_path": db_path})
        assert result["record"]["plan"]["objectives"] == ["Ship a project"]
        assert result["record"]["score"]["overall"] == 0
        assert result["allowed_next_states"] == ["accepted", "declined"]

    def test_missing_record(self, db_path):
        result = get_lifecycle_record({"record_id": "nope", "db_path": db_path})
        assert result["error"]["code"] == "RECORD_NOT_FOUND"


class TestEventPublishing:
    def test_mutations_queue_outbox_rows(self, db_path):
        with patch.object(config, "publish_events", True):
            created = create_application(
                {
                    "candidate_id": "cand-1",
                    "job_id": "job-1",
                    "candidate": CANDIDATE,
                    "job": JOB,
                    "db_path": db_path,
                }
            )["record"]
            transition(db_path, created["id"], "under-review")
            annotate_record(
                {"record_id": created["id"], "actor": "e", "note": "n", "db_path": db_path}
            )

        rows = SqliteEventOutbox(db_path).pending_events(created["id"])
        assert [row["event_type"] for row in rows] == ["RecordCreated", "StateChanged"]

    def test_disabled_publishing_writes_no_rows(self, db_path):
        with patch.object(config, "publish_events", False):
            created = create_mentorship_request(
                {"mentee_id": "mentee-1", "mentor_id": "mentor-1", "db_path": db_path}
            )["record"]
            transition(db_path, created["id"], "accepted")

        conn = sqlite3.connect(db_path)
        count = conn.execute("SELECT COUNT(*) FROM lifecycle_events").fetchone()[0]
        conn.close()
        assert count == 0
