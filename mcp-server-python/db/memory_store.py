"""
In-process record repository.

Keeps records in a dict guarded by a lock so the version check and the
write happen as one step even when several threads race on a record.
"""

import threading
from typing import Dict, FrozenSet

from db.repository import NEW_RECORD_VERSION, RecordRepository, SaveOutcome
from models.errors import DuplicateRecordError, PersistenceError, RecordNotFoundError
from models.record import LifecycleRecord
from utils.audit_trail import is_prefix
from utils.transition_table import exclusive_states


class InMemoryRecordRepository(RecordRepository):
    """
    Thread-safe dict-backed repository.

    Usage:
        repo = InMemoryRecordRepository()
        engine = LifecycleEngine(repo)
    """

    def __init__(self):
        self._records: Dict[str, LifecycleRecord] = {}
        self._lock = threading.Lock()

    def load(self, record_id: str) -> LifecycleRecord:
        with self._lock:
            record = self._records.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def save(self, record: LifecycleRecord, expected_version: int) -> SaveOutcome:
        with self._lock:
            stored = self._records.get(record.id)

            if expected_version == NEW_RECORD_VERSION:
                if stored is not None:
                    return SaveOutcome.VERSION_CONFLICT
                if self._links_parties(
                    record.kind.value,
                    record.subject_ref,
                    record.counterparty_ref,
                    exclusive_states(record.kind),
                ):
                    raise DuplicateRecordError(
                        record.kind.value, record.subject_ref, record.counterparty_ref
                    )
            elif stored is None:
                raise RecordNotFoundError(record.id)
            elif stored.version != expected_version:
                return SaveOutcome.VERSION_CONFLICT
            elif not is_prefix(stored.audit_trail, record.audit_trail):
                raise PersistenceError(f"Audit trail of record {record.id} is append-only")

            self._records[record.id] = record
            return SaveOutcome.OK

    def has_record_between(
        self, kind: str, subject_ref: str, counterparty_ref: str, states: FrozenSet[str]
    ) -> bool:
        with self._lock:
            return self._links_parties(kind, subject_ref, counterparty_ref, states)

    def count_for_counterparty(
        self, kind: str, counterparty_ref: str, states: FrozenSet[str]
    ) -> int:
        with self._lock:
            return sum(
                1
                for r in self._records.values()
                if r.kind.value == kind
                and r.counterparty_ref == counterparty_ref
                and r.state in states
            )

    def _links_parties(
        self, kind: str, subject_ref: str, counterparty_ref: str, states: FrozenSet[str]
    ) -> bool:
        """Caller holds the lock."""
        return any(
            r.kind.value == kind
            and r.subject_ref == subject_ref
            and r.counterparty_ref == counterparty_ref
            and r.state in states
            for r in self._records.values()
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
