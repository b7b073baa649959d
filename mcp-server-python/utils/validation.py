"""
Input validation utilities for the lifecycle engine and its MCP tools.

Validates record ids, actors, notes and read limits, and provides the
canonical timestamp format.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from models.errors import create_validation_error

# Constants for validation
DEFAULT_NOTE_MAX_LENGTH = 500
MAX_RECORD_ID_LENGTH = 128

DEFAULT_AUDIT_LIMIT = 50
MIN_AUDIT_LIMIT = 1
MAX_AUDIT_LIMIT = 1000


def validate_non_empty_str(value: Any, field_name: str) -> str:
    """
    Validate a required string field.

    Args:
        value: The value to validate
        field_name: Field name used in the error message

    Returns:
        The value with surrounding whitespace removed

    Raises:
        ToolError: If value is missing, not a string, or blank
    """
    if value is None:
        raise create_validation_error(f"Missing required parameter: '{field_name}'")

    if not isinstance(value, str):
        raise create_validation_error(
            f"Invalid {field_name} type: expected string, got {type(value).__name__}"
        )

    stripped = value.strip()
    if not stripped:
        raise create_validation_error(f"Invalid {field_name}: cannot be empty")

    return stripped


def validate_record_id(record_id: Any) -> str:
    """
    Validate a lifecycle record id.

    Raises:
        ToolError: If the id is missing, blank or too long
    """
    record_id = validate_non_empty_str(record_id, "record_id")
    if len(record_id) > MAX_RECORD_ID_LENGTH:
        raise create_validation_error(
            f"Invalid record_id: exceeds maximum length of {MAX_RECORD_ID_LENGTH}"
        )
    return record_id


def validate_actor(actor: Any) -> str:
    """Validate the actor requesting a mutation."""
    return validate_non_empty_str(actor, "actor")


def validate_note(
    note: Any, max_length: int = DEFAULT_NOTE_MAX_LENGTH, required: bool = False
) -> Optional[str]:
    """
    Validate an audit note.

    Args:
        note: Note text (None allowed unless required)
        max_length: Maximum number of characters
        required: Whether a non-blank note must be present

    Returns:
        The stripped note, or None when absent and optional

    Raises:
        ToolError: If the note is missing when required, not a string, or too long
    """
    if note is None and not required:
        return None

    note = validate_non_empty_str(note, "note")
    if len(note) > max_length:
        raise create_validation_error(
            f"Invalid note: {len(note)} characters exceeds maximum of {max_length}"
        )
    return note


def validate_audit_limit(limit: Optional[int]) -> int:
    """
    Validate the number of trailing audit entries to return.

    Raises:
        ToolError: If limit is not an integer or out of range
    """
    if limit is None:
        return DEFAULT_AUDIT_LIMIT

    # bool is a subclass of int in Python, reject explicitly
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise create_validation_error(
            f"Invalid audit_limit type: expected integer, got {type(limit).__name__}"
        )

    if limit < MIN_AUDIT_LIMIT:
        raise create_validation_error(
            f"Invalid audit_limit: {limit} is below minimum of {MIN_AUDIT_LIMIT}"
        )

    if limit > MAX_AUDIT_LIMIT:
        raise create_validation_error(
            f"Invalid audit_limit: {limit} exceeds maximum of {MAX_AUDIT_LIMIT}"
        )

    return limit


def get_current_utc_timestamp() -> str:
    """
    Generate a UTC timestamp in ISO 8601 format with millisecond precision.

    Returns a timestamp string in the format: YYYY-MM-DDTHH:MM:SS.mmmZ
    Example: 2026-02-04T03:47:36.966Z

    The fixed width means timestamps in this format sort lexically in time
    order, which the audit trail relies on.

    Returns:
        ISO 8601 UTC timestamp string with millisecond precision and Z suffix
    """
    now = datetime.now(timezone.utc)
    # Format with millisecond precision and replace +00:00 with Z
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
