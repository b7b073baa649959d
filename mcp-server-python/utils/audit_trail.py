"""
Append-only audit trail helpers.

A record's audit trail is an immutable tuple of ``AuditEntry`` values.
Appending returns a new tuple that shares every prior entry unchanged;
nothing here deletes, edits or reorders entries.
"""

from typing import Optional, Tuple

from models.record import AuditEntry, LifecycleRecord


def next_timestamp(trail: Tuple[AuditEntry, ...], now: str) -> str:
    """
    Return a timestamp that keeps the trail monotonic.

    ISO 8601 UTC timestamps with a fixed format sort lexically, so a clock
    that stepped backwards is clamped to the last recorded timestamp.
    """
    if trail and now < trail[-1].timestamp:
        return trail[-1].timestamp
    return now


def build_entry(
    trail: Tuple[AuditEntry, ...],
    actor: str,
    from_state: str,
    to_state: str,
    now: str,
    note: Optional[str] = None,
) -> AuditEntry:
    """Create the entry that will follow ``trail``."""
    return AuditEntry(
        timestamp=next_timestamp(trail, now),
        actor=actor,
        from_state=from_state,
        to_state=to_state,
        note=note,
    )


def append(record: LifecycleRecord, entry: AuditEntry) -> Tuple[AuditEntry, ...]:
    """
    Return the record's trail with ``entry`` appended.

    The record itself is not modified; the caller stores the returned tuple
    on the next version of the record.
    """
    return record.audit_trail + (entry,)


def latest(record: LifecycleRecord, limit: Optional[int] = None) -> Tuple[AuditEntry, ...]:
    """Return the full ordered trail, or only its last ``limit`` entries."""
    if limit is None:
        return record.audit_trail
    if limit <= 0:
        return ()
    return record.audit_trail[-limit:]


def is_prefix(previous: Tuple[AuditEntry, ...], current: Tuple[AuditEntry, ...]) -> bool:
    """True if ``current`` extends ``previous`` without altering any earlier entry."""
    return len(current) >= len(previous) and current[: len(previous)] == previous
