"""
Lifecycle engine for job applications and mentorship requests.

The engine is the only component that changes a record's ``state``,
``score`` or ``audit_trail``. Every mutation is one read-modify-write cycle:

1. The caller loads a record from the repository.
2. The engine validates the request and builds the next version of the
   record (records are immutable, the caller's copy is never touched).
3. The repository stores it only if the stored version still matches.
4. The engine publishes one event; a failing sink is logged, not raised.

Authorization is the caller's job. The engine only enforces which
transitions exist.
"""

import logging
import uuid
from typing import Any, Callable, Optional

from db.repository import NEW_RECORD_VERSION, RecordRepository, SaveOutcome
from models.errors import (
    CapacityReachedError,
    ConcurrentModificationError,
    DuplicateRecordError,
    IllegalTransitionError,
    InvalidSnapshotError,
    PersistenceError,
    ToolError,
    sanitize_stack_trace,
)
from models.events import EventType, LifecycleEvent
from models.record import LifecycleRecord, ScoreResult
from models.snapshots import DEFAULT_MENTEE_CAPACITY, MentorSnapshot, MentorshipPlan
from models.status import RecordKind
from utils import audit_trail
from utils.event_sink import EventSink
from utils.score_calculator import SCORED_AT_CREATION, coerce_snapshot, compute
from utils.transition_table import (
    allowed_next,
    capacity_states,
    exclusive_states,
    get_table,
    initial_state,
    validate_transition,
)
from utils.validation import (
    DEFAULT_NOTE_MAX_LENGTH,
    get_current_utc_timestamp,
    validate_actor,
    validate_non_empty_str,
    validate_note,
)

logger = logging.getLogger(__name__)

# Actor recorded for engine-initiated score updates
SYSTEM_ACTOR = "system"


def default_record_id(kind: str) -> str:
    """Generate a record id such as ``application_3f2a...``."""
    return f"{kind}_{uuid.uuid4().hex}"


class LifecycleEngine:
    """
    Guarded state machine, scoring trigger and audit writer for lifecycle records.

    Usage:
        engine = LifecycleEngine(repo, event_sink=sink)
        record = engine.create("application", "cand-1", "job-9", candidate, job)
        record = engine.request_transition(record, "under-review", actor="emp-4")
    """

    def __init__(
        self,
        repository: RecordRepository,
        event_sink: Optional[EventSink] = None,
        clock: Optional[Callable[[], str]] = None,
        id_factory: Optional[Callable[[str], str]] = None,
        note_max_length: int = DEFAULT_NOTE_MAX_LENGTH,
    ):
        """
        Initialize the engine.

        Args:
            repository: Record store with optimistic version checks
            event_sink: Optional receiver of lifecycle events
            clock: Returns the current ISO 8601 UTC timestamp
            id_factory: Builds a new record id from the kind value
            note_max_length: Maximum characters of an audit note
        """
        self._repository = repository
        self._event_sink = event_sink
        self._clock = clock or get_current_utc_timestamp
        self._id_factory = id_factory or default_record_id
        self._note_max_length = note_max_length

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(
        self,
        kind: Any,
        subject_ref: str,
        counterparty_ref: str,
        subject_snapshot: Optional[Any] = None,
        counterparty_snapshot: Optional[Any] = None,
        actor: Optional[str] = None,
    ) -> LifecycleRecord:
        """
        Create and persist a record in its kind's initial state.

        Applications are scored immediately from the supplied snapshots and
        keep that point-in-time score until ``recompute`` is called.
        Mentorship records start without a score, and are refused once the
        mentor already has as many active mentorships as their capacity.

        Args:
            kind: ``application`` or ``mentorship``
            subject_ref: Applicant or mentee reference
            counterparty_ref: Job or mentor reference
            subject_snapshot: Candidate snapshot (applications)
            counterparty_snapshot: Job snapshot (applications) or optional
                mentor snapshot carrying ``mentee_capacity`` (mentorship)
            actor: Who created the record; defaults to the subject

        Returns:
            The stored record (version 1, empty audit trail)

        Raises:
            UnknownKindError: If the kind is not declared
            DuplicateRecordError: If an exclusive record already links the parties
            CapacityReachedError: If the mentor has no free capacity
            InvalidSnapshotError: If a scoring snapshot lacks its ``id``
            PersistenceError: If the record could not be stored
        """
        state = initial_state(kind)
        kind = RecordKind(kind)
        subject_ref = validate_non_empty_str(subject_ref, "subject_ref")
        counterparty_ref = validate_non_empty_str(counterparty_ref, "counterparty_ref")
        actor = validate_actor(actor) if actor is not None else subject_ref

        if self._repository.has_record_between(
            kind.value, subject_ref, counterparty_ref, exclusive_states(kind)
        ):
            raise DuplicateRecordError(kind.value, subject_ref, counterparty_ref)

        self._check_capacity(kind, counterparty_ref, counterparty_snapshot)

        score = None
        if SCORED_AT_CREATION[kind.value]:
            score = compute(kind, subject_snapshot, counterparty_snapshot)

        now = self._clock()
        record = LifecycleRecord(
            id=self._id_factory(kind.value),
            kind=kind,
            subject_ref=subject_ref,
            counterparty_ref=counterparty_ref,
            state=state,
            score=score,
            audit_trail=(),
            version=NEW_RECORD_VERSION + 1,
            created_at=now,
            updated_at=now,
        )

        self._persist(record, NEW_RECORD_VERSION)
        logger.info(
            f"Created {kind.value} record {record.id} in state {state}"
            + (f" with score {score.overall}" if score else "")
        )
        self._publish(EventType.RECORD_CREATED, record, actor, now, to_state=state, score=score)
        return record

    def request_transition(
        self,
        record: LifecycleRecord,
        to_state: str,
        actor: str,
        note: Optional[str] = None,
    ) -> LifecycleRecord:
        """
        Move a record to ``to_state`` if its kind's table declares the transition.

        Args:
            record: The record as last loaded by the caller
            to_state: Requested next state
            actor: Who requested the transition
            note: Optional note stored on the audit entry

        Returns:
            The next version of the record

        Raises:
            IllegalTransitionError: If the transition is not declared (no mutation)
            ConcurrentModificationError: If the record changed since it was loaded
            PersistenceError: If the write failed (nothing committed)
        """
        actor = validate_actor(actor)
        note = validate_note(note, self._note_max_length)

        result = validate_transition(record.kind, record.state, to_state)
        if not result.allowed:
            logger.info(f"Rejected transition on record {record.id}: {result.error_message}")
            raise IllegalTransitionError(record.state, to_state)

        from_state = record.state
        entry = audit_trail.build_entry(
            record.audit_trail, actor, from_state, to_state, self._clock(), note
        )
        updated = record.model_copy(
            update={
                "state": to_state,
                "audit_trail": audit_trail.append(record, entry),
                "version": record.version + 1,
                "updated_at": entry.timestamp,
            }
        )

        self._persist(updated, record.version)
        logger.info(f"Record {record.id} transitioned {from_state} -> {to_state} by {actor}")
        self._publish(
            EventType.STATE_CHANGED,
            updated,
            actor,
            entry.timestamp,
            from_state=from_state,
            to_state=to_state,
        )
        return updated

    def recompute(
        self,
        record: LifecycleRecord,
        subject_snapshot: Optional[Any],
        counterparty_snapshot_or_plan: Any,
        actor: str = SYSTEM_ACTOR,
    ) -> LifecycleRecord:
        """
        Re-run the score calculator with fresh snapshots and store the result.

        Leaves ``state`` and ``audit_trail`` untouched. For mentorship the
        plan is stored on the record together with the progress computed
        from it, so a losing writer commits neither; passing ``None`` rescores
        the plan the record already carries.

        Args:
            record: The record as last loaded by the caller
            subject_snapshot: Candidate snapshot (applications); ignored for mentorship
            counterparty_snapshot_or_plan: Job snapshot or mentorship plan
            actor: Who triggered the recompute

        Returns:
            The next version of the record

        Raises:
            InvalidSnapshotError: If a snapshot lacks its ``id`` or a plan
                belongs to another record
            ConcurrentModificationError: If the record changed since it was loaded
            PersistenceError: If the write failed (nothing committed)
        """
        actor = validate_actor(actor)
        get_table(record.kind)

        changes = {}
        if record.kind == RecordKind.MENTORSHIP:
            plan = coerce_snapshot(
                record.plan if counterparty_snapshot_or_plan is None
                else counterparty_snapshot_or_plan,
                MentorshipPlan,
                "mentorship plan",
            )
            if plan.id != record.id:
                raise InvalidSnapshotError(
                    f"Invalid mentorship plan snapshot: plan {plan.id} "
                    f"does not belong to record {record.id}"
                )
            changes["plan"] = plan
            counterparty_snapshot_or_plan = plan

        score = compute(record.kind, subject_snapshot, counterparty_snapshot_or_plan)

        now = self._clock()
        updated = record.model_copy(
            update={
                **changes,
                "score": score,
                "version": record.version + 1,
                "updated_at": max(now, record.updated_at),
            }
        )

        self._persist(updated, record.version)
        logger.info(f"Record {record.id} score recomputed: {score.overall}")
        self._publish(EventType.SCORE_UPDATED, updated, actor, updated.updated_at, score=score)
        return updated

    def annotate(self, record: LifecycleRecord, actor: str, note: str) -> LifecycleRecord:
        """
        Append a note to the audit trail without changing state.

        The entry has ``from_state == to_state == record.state``. Terminal
        records can still be annotated.

        Raises:
            ToolError: VALIDATION_ERROR if the note is blank
            ConcurrentModificationError: If the record changed since it was loaded
            PersistenceError: If the write failed (nothing committed)
        """
        actor = validate_actor(actor)
        note = validate_note(note, self._note_max_length, required=True)
        allowed_next(record.kind, record.state)

        entry = audit_trail.build_entry(
            record.audit_trail, actor, record.state, record.state, self._clock(), note
        )
        updated = record.model_copy(
            update={
                "audit_trail": audit_trail.append(record, entry),
                "version": record.version + 1,
                "updated_at": entry.timestamp,
            }
        )

        self._persist(updated, record.version)
        logger.info(f"Record {record.id} annotated by {actor}")
        return updated

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_capacity(
        self, kind: RecordKind, counterparty_ref: str, counterparty_snapshot: Optional[Any]
    ) -> None:
        """Refuse a new record when the counterparty's capacity is used up."""
        limited = capacity_states(kind)
        if not limited:
            return

        capacity = DEFAULT_MENTEE_CAPACITY
        if counterparty_snapshot is not None:
            capacity = coerce_snapshot(
                counterparty_snapshot, MentorSnapshot, "mentor"
            ).effective_capacity

        in_use = self._repository.count_for_counterparty(kind.value, counterparty_ref, limited)
        if in_use >= capacity:
            logger.info(
                f"Refused {kind.value} for {counterparty_ref}: {in_use} of {capacity} in use"
            )
            raise CapacityReachedError(counterparty_ref, capacity)

    def _persist(self, record: LifecycleRecord, expected_version: int) -> None:
        """Save ``record`` or raise; never returns on a failed write."""
        try:
            outcome = self._repository.save(record, expected_version)
        except ToolError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Failed to persist record {record.id}: {sanitize_stack_trace(str(e))}",
                original_error=e,
            ) from e

        if outcome != SaveOutcome.OK:
            logger.warning(
                f"Version conflict on record {record.id}: expected version {expected_version}"
            )
            raise ConcurrentModificationError(record.id, expected_version)

    def _publish(
        self,
        event_type: EventType,
        record: LifecycleRecord,
        actor: str,
        occurred_at: str,
        from_state: Optional[str] = None,
        to_state: Optional[str] = None,
        score: Optional[ScoreResult] = None,
    ) -> None:
        """Publish one event; the mutation is already durable, so failures are only logged."""
        if self._event_sink is None:
            return

        event = LifecycleEvent(
            type=event_type,
            record_id=record.id,
            kind=record.kind,
            subject_ref=record.subject_ref,
            counterparty_ref=record.counterparty_ref,
            actor=actor,
            occurred_at=occurred_at,
            from_state=from_state,
            to_state=to_state,
            score=score,
        )
        try:
            self._event_sink.publish(event)
        except Exception:
            logger.warning(
                f"Event sink failed to publish {event_type.value} for record {record.id}",
                exc_info=True,
            )
