"""
Error model for the lifecycle engine and its MCP tools.

Provides structured error codes, the lifecycle error taxonomy and sanitized
error messages.
"""

import re
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Structured error codes for the engine and the MCP tools."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_KIND = "UNKNOWN_KIND"
    UNKNOWN_STATE = "UNKNOWN_STATE"
    ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    INVALID_SNAPSHOT = "INVALID_SNAPSHOT"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    DUPLICATE_RECORD = "DUPLICATE_RECORD"
    CAPACITY_REACHED = "CAPACITY_REACHED"
    DB_ERROR = "DB_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ToolError(Exception):
    """Base exception for tool errors with structured error information."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        retryable: bool = False,
        original_error: Optional[Exception] = None
    ):
        """
        Initialize a tool error.

        Args:
            code: The error code
            message: Human-readable error message
            retryable: Whether the operation can be retried
            original_error: The original exception if this wraps another error
        """
        self.code = code
        self.message = message
        self.retryable = retryable
        self.original_error = original_error
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        """Extra payload merged into the error envelope. Empty by default."""
        return {}

    def to_dict(self) -> dict:
        """Convert error to dictionary format for MCP response."""
        error = {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable
        }
        error.update(self.details())
        return {"error": error}


class UnknownKindError(ToolError):
    """The transition table was consulted with an undeclared record kind."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(ErrorCode.UNKNOWN_KIND, f"Unknown record kind: {kind}")

    def details(self) -> Dict[str, Any]:
        return {"kind": self.kind}


class UnknownStateError(ToolError):
    """The transition table was consulted with a state its kind does not declare."""

    def __init__(self, kind: str, state: str):
        self.kind = kind
        self.state = state
        super().__init__(ErrorCode.UNKNOWN_STATE, f"Unknown {kind} state: {state}")

    def details(self) -> Dict[str, Any]:
        return {"kind": self.kind, "state": self.state}


class IllegalTransitionError(ToolError):
    """A transition was requested that the kind's table does not declare."""

    def __init__(self, current_state: str, target_state: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            ErrorCode.ILLEGAL_TRANSITION,
            f"Invalid status transition from {current_state} to {target_state}",
        )

    def details(self) -> Dict[str, Any]:
        return {"current_state": self.current_state, "target_state": self.target_state}


class ConcurrentModificationError(ToolError):
    """The optimistic version check lost a race against another writer."""

    def __init__(self, record_id: str, expected_version: int):
        self.record_id = record_id
        self.expected_version = expected_version
        super().__init__(
            ErrorCode.CONCURRENT_MODIFICATION,
            f"Record {record_id} was modified concurrently "
            f"(expected version {expected_version}); reload and retry",
            retryable=True,
        )

    def details(self) -> Dict[str, Any]:
        return {"record_id": self.record_id, "expected_version": self.expected_version}


class InvalidSnapshotError(ToolError):
    """A scoring snapshot is missing a required identity field or is malformed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            ErrorCode.INVALID_SNAPSHOT, message, retryable=False, original_error=original_error
        )


class PersistenceError(ToolError):
    """A repository read or write failed; nothing was committed."""

    def __init__(
        self, message: str, retryable: bool = False, original_error: Optional[Exception] = None
    ):
        super().__init__(ErrorCode.DB_ERROR, message, retryable, original_error)


class RecordNotFoundError(ToolError):
    """No lifecycle record exists with the requested id."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(ErrorCode.RECORD_NOT_FOUND, f"Lifecycle record not found: {record_id}")

    def details(self) -> Dict[str, Any]:
        return {"record_id": self.record_id}


class DuplicateRecordError(ToolError):
    """An open record already links the same two parties."""

    def __init__(self, kind: str, subject_ref: str, counterparty_ref: str):
        super().__init__(
            ErrorCode.DUPLICATE_RECORD,
            f"An existing {kind} record already links {subject_ref} and {counterparty_ref}",
        )


class CapacityReachedError(ToolError):
    """The counterparty already holds as many active records as it accepts."""

    def __init__(self, counterparty_ref: str, capacity: int):
        self.counterparty_ref = counterparty_ref
        self.capacity = capacity
        super().__init__(
            ErrorCode.CAPACITY_REACHED,
            f"{counterparty_ref} has reached their capacity of {capacity} active mentee(s)",
        )

    def details(self) -> Dict[str, Any]:
        return {"counterparty_ref": self.counterparty_ref, "capacity": self.capacity}


def sanitize_sql_error(error_msg: str) -> str:
    """
    Sanitize SQL error messages to remove sensitive details.

    Removes SQL fragments and keeps only actionable information.

    Args:
        error_msg: The original error message

    Returns:
        Sanitized error message
    """
    # Remove SQL statements (anything between quotes or after "SQL:")
    sanitized = re.sub(r'SQL:.*', '', error_msg, flags=re.IGNORECASE)
    sanitized = re.sub(r'"[^"]*SELECT[^"]*"', '[SQL query]', sanitized, flags=re.IGNORECASE)
    sanitized = re.sub(r"'[^']*SELECT[^']*'", '[SQL query]', sanitized, flags=re.IGNORECASE)

    # Remove unquoted SQL statements
    sanitized = re.sub(r'\b(SELECT|INSERT|UPDATE|DELETE)\b.*', '[SQL query]', sanitized, flags=re.IGNORECASE)

    # Remove absolute paths
    sanitized = re.sub(r'/[^\s]+/', '[path]/', sanitized)

    return sanitized.strip()


def sanitize_stack_trace(error_msg: str) -> str:
    """
    Remove stack traces from error messages.

    Args:
        error_msg: The original error message

    Returns:
        Error message without stack trace
    """
    lines = error_msg.split('\n')
    if lines:
        return lines[0].strip()
    return error_msg


def create_validation_error(message: str) -> ToolError:
    """
    Create a validation error.

    Args:
        message: Description of the validation failure

    Returns:
        ToolError with VALIDATION_ERROR code
    """
    return ToolError(
        code=ErrorCode.VALIDATION_ERROR,
        message=message,
        retryable=False
    )


def create_db_error(
    message: str, retryable: bool = False, original_error: Optional[Exception] = None
) -> PersistenceError:
    """
    Create a persistence error from a database failure.

    Args:
        message: Description of the database error
        retryable: Whether the operation can be retried
        original_error: The original exception

    Returns:
        PersistenceError with DB_ERROR code
    """
    sanitized_message = sanitize_sql_error(message)
    sanitized_message = sanitize_stack_trace(sanitized_message)

    return PersistenceError(
        message=f"Database error: {sanitized_message}",
        retryable=retryable,
        original_error=original_error
    )


def create_internal_error(message: str, original_error: Optional[Exception] = None) -> ToolError:
    """
    Create an internal error for unexpected exceptions.

    Args:
        message: Description of the internal error
        original_error: The original exception

    Returns:
        ToolError with INTERNAL_ERROR code
    """
    sanitized_message = sanitize_stack_trace(message)

    return ToolError(
        code=ErrorCode.INTERNAL_ERROR,
        message=f"Internal error: {sanitized_message}",
        retryable=True,
        original_error=original_error
    )
