"""
Wiring for tool handlers: one engine per call over the SQLite store.

Handlers are stateless; each call builds a repository and engine for the
requested ``db_path`` (or the configured default).
"""

from typing import Optional

from config import get_config
from db.event_outbox import SqliteEventOutbox
from db.records_store import SqliteRecordRepository
from models.errors import ConcurrentModificationError, create_validation_error
from models.record import LifecycleRecord
from models.status import RecordKind
from utils.event_sink import EventSink, LoggingEventSink
from utils.lifecycle_engine import LifecycleEngine


def build_event_sink(db_path: Optional[str] = None) -> EventSink:
    """Outbox sink when event publishing is enabled, otherwise log-only."""
    if get_config().publish_events:
        return SqliteEventOutbox(db_path)
    return LoggingEventSink()


def build_engine(repository: SqliteRecordRepository) -> LifecycleEngine:
    """Create an engine over ``repository`` with the configured sink and note limit."""
    return LifecycleEngine(
        repository,
        event_sink=build_event_sink(repository.db_path),
        note_max_length=get_config().note_max_length,
    )


def load_record(
    repository: SqliteRecordRepository,
    record_id: str,
    expected_version: Optional[int] = None,
    kind: Optional[RecordKind] = None,
) -> LifecycleRecord:
    """
    Load a record for a mutating tool.

    Args:
        repository: Record repository
        record_id: Id of the record to load
        expected_version: Version the caller last saw, if it pinned one
        kind: Required record kind, if the tool only applies to one kind

    Raises:
        RecordNotFoundError: If the record does not exist
        ConcurrentModificationError: If the stored version differs from ``expected_version``
        ToolError: VALIDATION_ERROR if the record is of another kind
    """
    record = repository.load(record_id)

    if expected_version is not None and record.version != expected_version:
        raise ConcurrentModificationError(record_id, expected_version)

    if kind is not None and record.kind != kind:
        raise create_validation_error(
            f"Invalid record_id: {record_id} is a {record.kind.value} record, "
            f"expected {kind.value}"
        )

    return record
