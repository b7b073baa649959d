"""
Persistence contract for lifecycle records.

The engine depends only on this interface. Implementations must make
``save`` atomic with respect to the stored ``version``: a write is accepted
only when the stored version equals ``expected_version``.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import FrozenSet

from models.record import LifecycleRecord

# expected_version for a record that must not exist yet
NEW_RECORD_VERSION = 0


class SaveOutcome(str, Enum):
    """Result of a versioned save."""

    OK = "ok"
    VERSION_CONFLICT = "version_conflict"


class RecordRepository(ABC):
    """Store of lifecycle records with optimistic concurrency."""

    @abstractmethod
    def load(self, record_id: str) -> LifecycleRecord:
        """
        Return the stored record.

        Raises:
            RecordNotFoundError: If no record has this id
            PersistenceError: If the store cannot be read
        """

    @abstractmethod
    def save(self, record: LifecycleRecord, expected_version: int) -> SaveOutcome:
        """
        Store ``record`` if the stored version equals ``expected_version``.

        ``expected_version == NEW_RECORD_VERSION`` inserts a new record and
        conflicts if the id is already taken. The record passed in already
        carries its new version (``expected_version + 1``).

        An insert is refused when another record of the same kind already
        links the same two parties in one of the kind's exclusive states;
        the check and the insert are one atomic step.

        Raises:
            DuplicateRecordError: If the insert would duplicate an exclusive record
            PersistenceError: If the write fails for any reason other than a
                version mismatch
        """

    @abstractmethod
    def has_record_between(
        self, kind: str, subject_ref: str, counterparty_ref: str, states: FrozenSet[str]
    ) -> bool:
        """True if a record of ``kind`` links the two parties in one of ``states``."""

    @abstractmethod
    def count_for_counterparty(
        self, kind: str, counterparty_ref: str, states: FrozenSet[str]
    ) -> int:
        """Number of ``kind`` records held by ``counterparty_ref`` in one of ``states``."""
