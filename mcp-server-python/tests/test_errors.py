"""
Unit tests for the error model and sanitization functions.

Tests error codes, the lifecycle error taxonomy, error envelopes and
message sanitization.
"""

import pytest
from models.errors import (
    CapacityReachedError,
    ConcurrentModificationError,
    DuplicateRecordError,
    ErrorCode,
    IllegalTransitionError,
    InvalidSnapshotError,
    PersistenceError,
    RecordNotFoundError,
    ToolError,
    UnknownKindError,
    UnknownStateError,
    create_db_error,
    create_internal_error,
    create_validation_error,
    sanitize_sql_error,
    sanitize_stack_trace,
)


class TestErrorCode:
    """Tests for ErrorCode enum."""

    def test_lifecycle_codes_exist(self):
        assert ErrorCode.UNKNOWN_KIND == "UNKNOWN_KIND"
        assert ErrorCode.UNKNOWN_STATE == "UNKNOWN_STATE"
        assert ErrorCode.ILLEGAL_TRANSITION == "ILLEGAL_TRANSITION"
        assert ErrorCode.CONCURRENT_MODIFICATION == "CONCURRENT_MODIFICATION"
        assert ErrorCode.INVALID_SNAPSHOT == "INVALID_SNAPSHOT"
        assert ErrorCode.RECORD_NOT_FOUND == "RECORD_NOT_FOUND"
        assert ErrorCode.DUPLICATE_RECORD == "DUPLICATE_RECORD"
        assert ErrorCode.CAPACITY_REACHED == "CAPACITY_REACHED"

    def test_tool_layer_codes_exist(self):
        assert ErrorCode.VALIDATION_ERROR == "VALIDATION_ERROR"
        assert ErrorCode.DB_ERROR == "DB_ERROR"
        assert ErrorCode.INTERNAL_ERROR == "INTERNAL_ERROR"


class TestToolError:
    """Tests for the ToolError base class."""

    def test_to_dict(self):
        error = ToolError(code=ErrorCode.DB_ERROR, message="Database locked", retryable=True)
        assert error.to_dict() == {
            "error": {"code": "DB_ERROR", "message": "Database locked", "retryable": True}
        }

    def test_wraps_original(self):
        original = ValueError("boom")
        error = ToolError(ErrorCode.INTERNAL_ERROR, "wrapped", original_error=original)
        assert error.original_error is original
        assert str(error) == "wrapped"


class TestLifecycleErrors:
    """The taxonomy subclasses carry fixed codes and extra payload."""

    def test_illegal_transition(self):
        error = IllegalTransitionError("submitted", "hired")
        assert isinstance(error, ToolError)
        assert error.message == "Invalid status transition from submitted to hired"
        assert error.retryable is False
        assert error.to_dict()["error"] == {
            "code": "ILLEGAL_TRANSITION",
            "message": "Invalid status transition from submitted to hired",
            "retryable": False,
            "current_state": "submitted",
            "target_state": "hired",
        }

    def test_concurrent_modification_is_retryable(self):
        error = ConcurrentModificationError("application_1", 3)
        payload = error.to_dict()["error"]
        assert payload["retryable"] is True
        assert payload["record_id"] == "application_1"
        assert payload["expected_version"] == 3
        assert "reload" in error.message

    @pytest.mark.parametrize(
        "error,code",
        [
            (UnknownKindError("internship"), ErrorCode.UNKNOWN_KIND),
            (UnknownStateError("application", "ghosted"), ErrorCode.UNKNOWN_STATE),
            (InvalidSnapshotError("missing id"), ErrorCode.INVALID_SNAPSHOT),
            (PersistenceError("disk full"), ErrorCode.DB_ERROR),
            (RecordNotFoundError("x"), ErrorCode.RECORD_NOT_FOUND),
            (DuplicateRecordError("application", "cand-1", "job-1"), ErrorCode.DUPLICATE_RECORD),
            (CapacityReachedError("mentor-1", 5), ErrorCode.CAPACITY_REACHED),
        ],
    )
    def test_codes(self, error, code):
        assert error.code == code
        result = error.to_dict()["error"]
        assert isinstance(result["message"], str)
        assert isinstance(result["retryable"], bool)

    def test_unknown_state_payload(self):
        payload = UnknownStateError("mentorship", "hired").to_dict()["error"]
        assert payload["kind"] == "mentorship"
        assert payload["state"] == "hired"

    def test_duplicate_names_parties(self):
        error = DuplicateRecordError("mentorship", "mentee-1", "mentor-1")
        assert "mentee-1" in error.message and "mentor-1" in error.message

    def test_capacity_payload(self):
        error = CapacityReachedError("mentor-1", 3)
        payload = error.to_dict()["error"]
        assert payload["counterparty_ref"] == "mentor-1"
        assert payload["capacity"] == 3
        assert payload["retryable"] is False
        assert "capacity of 3" in payload["message"]

    def test_persistence_retryable_per_cause(self):
        assert PersistenceError("locked", retryable=True).retryable is True
        assert PersistenceError("corrupt").retryable is False


class TestSanitizeSqlError:
    """Tests for SQL error message sanitization."""

    def test_remove_sql_statements(self):
        result = sanitize_sql_error("Error executing SQL: UPDATE lifecycle_records SET state")
        assert "UPDATE" not in result
        assert "lifecycle_records" not in result

    def test_remove_quoted_sql(self):
        result = sanitize_sql_error('Query failed: "SELECT * FROM lifecycle_records" errored')
        assert "SELECT" not in result
        assert "[SQL query]" in result

    def test_remove_absolute_paths(self):
        result = sanitize_sql_error("Cannot open database at /home/user/data/lifecycle.db")
        assert "/home/user/data/" not in result
        assert "[path]/" in result

    def test_preserve_useful_information(self):
        assert "locked" in sanitize_sql_error("database is locked")


class TestSanitizeStackTrace:
    """Tests for stack trace sanitization."""

    def test_keep_first_line_only(self):
        error_msg = """ValueError: Invalid input
        at line 42 in module.py"""
        assert sanitize_stack_trace(error_msg) == "ValueError: Invalid input"

    def test_strip_whitespace(self):
        assert sanitize_stack_trace("  Error message  \n") == "Error message"


class TestFactories:
    """Tests for error factory helpers."""

    def test_validation_error(self):
        error = create_validation_error("Invalid note")
        assert error.code == ErrorCode.VALIDATION_ERROR
        assert error.retryable is False

    def test_db_error_is_persistence_error(self):
        original = Exception("Original DB error")
        error = create_db_error(
            "Query failed: SELECT * FROM lifecycle_records", original_error=original
        )
        assert isinstance(error, PersistenceError)
        assert error.code == ErrorCode.DB_ERROR
        assert "SELECT" not in error.message
        assert error.message.startswith("Database error")
        assert error.original_error is original
        assert error.retryable is False

    def test_internal_error(self):
        error = create_internal_error("Unexpected\n  at line 3")
        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.message == "Internal error: Unexpected"
        assert error.retryable is True

    def test_all_factories_produce_envelopes(self):
        for error in [
            create_validation_error("Test"),
            create_db_error("Test"),
            create_internal_error("Test"),
        ]:
            result = error.to_dict()
            assert set(result["error"]) == {"code", "message", "retryable"}
