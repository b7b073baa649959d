"""
SQLite-backed record repository.

Stores one row per lifecycle record plus insert-only audit rows, and
enforces optimistic concurrency with a ``version`` column: every write is
``UPDATE ... WHERE id = ? AND version = ?`` inside ``BEGIN IMMEDIATE``.
"""

import json
import logging
import sqlite3
from typing import FrozenSet, List, Optional

from db.connection import connect, transaction
from db.repository import NEW_RECORD_VERSION, RecordRepository, SaveOutcome
from models.errors import DuplicateRecordError, PersistenceError, RecordNotFoundError
from models.record import AuditEntry, LifecycleRecord

logger = logging.getLogger(__name__)


def _row_to_record(row: sqlite3.Row, audit_rows: List[sqlite3.Row]) -> LifecycleRecord:
    """Map a record row and its ordered audit rows to a LifecycleRecord."""
    score_json = row["score_json"]
    plan_json = row["plan_json"]
    return LifecycleRecord.model_validate(
        {
            "id": row["id"],
            "kind": row["kind"],
            "subject_ref": row["subject_ref"],
            "counterparty_ref": row["counterparty_ref"],
            "state": row["state"],
            "score": json.loads(score_json) if score_json else None,
            "plan": json.loads(plan_json) if plan_json else None,
            "audit_trail": [
                {
                    "timestamp": a["timestamp"],
                    "actor": a["actor"],
                    "from_state": a["from_state"],
                    "to_state": a["to_state"],
                    "note": a["note"],
                }
                for a in audit_rows
            ],
            "version": row["version"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }
    )


def _score_json(record: LifecycleRecord) -> Optional[str]:
    if record.score is None:
        return None
    return json.dumps(record.score.model_dump(), sort_keys=True)


def _plan_json(record: LifecycleRecord) -> Optional[str]:
    if record.plan is None:
        return None
    return json.dumps(record.plan.model_dump(), sort_keys=True)


def _insert_audit_entries(
    conn: sqlite3.Connection, record_id: str, entries: List[AuditEntry], start_seq: int
) -> None:
    conn.executemany(
        """
        INSERT INTO lifecycle_audit_entries (
            record_id, seq, timestamp, actor, from_state, to_state, note
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (record_id, start_seq + offset, e.timestamp, e.actor, e.from_state, e.to_state, e.note)
            for offset, e in enumerate(entries)
        ],
    )


class SqliteRecordRepository(RecordRepository):
    """
    Lifecycle record repository on a SQLite file.

    Each call opens its own connection, so one repository instance can be
    shared across request-handling threads.

    Usage:
        repo = SqliteRecordRepository("data/lifecycle.db")
        record = repo.load("app-123")
        outcome = repo.save(updated, expected_version=record.version)
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize repository with database path.

        Args:
            db_path: Optional database path override
        """
        self.db_path = db_path

    def load(self, record_id: str) -> LifecycleRecord:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM lifecycle_records WHERE id = ?", (record_id,)
            ).fetchone()
            if row is None:
                raise RecordNotFoundError(record_id)
            audit_rows = conn.execute(
                """
                SELECT timestamp, actor, from_state, to_state, note
                FROM lifecycle_audit_entries
                WHERE record_id = ?
                ORDER BY seq ASC
                """,
                (record_id,),
            ).fetchall()
        return _row_to_record(row, audit_rows)

    def save(self, record: LifecycleRecord, expected_version: int) -> SaveOutcome:
        with connect(self.db_path) as conn:
            if expected_version == NEW_RECORD_VERSION:
                return self._insert(conn, record)
            return self._update(conn, record, expected_version)

    def _insert(self, conn: sqlite3.Connection, record: LifecycleRecord) -> SaveOutcome:
        try:
            with transaction(conn):
                exists = conn.execute(
                    "SELECT 1 FROM lifecycle_records WHERE id = ?", (record.id,)
                ).fetchone()
                if exists is not None:
                    logger.info(f"Insert of record {record.id} conflicted with an existing row")
                    return SaveOutcome.VERSION_CONFLICT
                conn.execute(
                    """
                    INSERT INTO lifecycle_records (
                        id, kind, subject_ref, counterparty_ref, state,
                        score_json, plan_json, version, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.id,
                        record.kind.value,
                        record.subject_ref,
                        record.counterparty_ref,
                        record.state,
                        _score_json(record),
                        _plan_json(record),
                        record.version,
                        record.created_at,
                        record.updated_at,
                    ),
                )
                _insert_audit_entries(conn, record.id, list(record.audit_trail), 0)
        except sqlite3.IntegrityError as e:
            # The id was checked above, so only an exclusive-parties index can fire
            logger.info(f"Insert of record {record.id} refused as duplicate: {e}")
            raise DuplicateRecordError(
                record.kind.value, record.subject_ref, record.counterparty_ref
            ) from e
        return SaveOutcome.OK

    def _update(
        self, conn: sqlite3.Connection, record: LifecycleRecord, expected_version: int
    ) -> SaveOutcome:
        with transaction(conn):
            cursor = conn.execute(
                """
                UPDATE lifecycle_records
                SET state = ?,
                    score_json = ?,
                    plan_json = ?,
                    version = ?,
                    updated_at = ?
                WHERE id = ? AND version = ?
                """,
                (
                    record.state,
                    _score_json(record),
                    _plan_json(record),
                    record.version,
                    record.updated_at,
                    record.id,
                    expected_version,
                ),
            )

            if cursor.rowcount == 0:
                exists = conn.execute(
                    "SELECT 1 FROM lifecycle_records WHERE id = ?", (record.id,)
                ).fetchone()
                if exists is None:
                    raise RecordNotFoundError(record.id)
                return SaveOutcome.VERSION_CONFLICT

            stored_count = conn.execute(
                "SELECT COUNT(*) FROM lifecycle_audit_entries WHERE record_id = ?",
                (record.id,),
            ).fetchone()[0]
            if stored_count > len(record.audit_trail):
                raise PersistenceError(f"Audit trail of record {record.id} is append-only")

            _insert_audit_entries(
                conn, record.id, list(record.audit_trail[stored_count:]), stored_count
            )

        return SaveOutcome.OK

    def has_record_between(
        self, kind: str, subject_ref: str, counterparty_ref: str, states: FrozenSet[str]
    ) -> bool:
        if not states:
            return False
        placeholders = ",".join("?" * len(states))
        query = f"""
            SELECT 1 FROM lifecycle_records
            WHERE kind = ? AND subject_ref = ? AND counterparty_ref = ?
              AND state IN ({placeholders})
            LIMIT 1
        """
        with connect(self.db_path) as conn:
            row = conn.execute(
                query, (kind, subject_ref, counterparty_ref, *sorted(states))
            ).fetchone()
        return row is not None

    def count_for_counterparty(
        self, kind: str, counterparty_ref: str, states: FrozenSet[str]
    ) -> int:
        if not states:
            return 0
        placeholders = ",".join("?" * len(states))
        query = f"""
            SELECT COUNT(*) FROM lifecycle_records
            WHERE kind = ? AND counterparty_ref = ? AND state IN ({placeholders})
        """
        with connect(self.db_path) as conn:
            return conn.execute(query, (kind, counterparty_ref, *sorted(states))).fetchone()[0]
