"""
Declarative status transition tables for lifecycle records.

This module enforces which status transitions exist for each record kind:
- Each kind declares its complete state set and legal outgoing transitions
- Terminal states have an empty outgoing set
- Same-state requests are never transitions (use an annotation instead)
- There is no force bypass: privilege decides who may request a
  transition, never which transitions exist
"""

from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from models.errors import UnknownKindError, UnknownStateError
from models.status import ApplicationStatus as A
from models.status import MentorshipStatus as M
from models.status import RecordKind


def _table(entries: Mapping[Any, set]) -> Dict[str, FrozenSet[str]]:
    return {
        str(state.value): frozenset(str(target.value) for target in targets)
        for state, targets in entries.items()
    }


# current_state -> legal next states, per kind
TRANSITION_TABLES: Dict[str, Dict[str, FrozenSet[str]]] = {
    RecordKind.APPLICATION.value: _table({
        A.SUBMITTED: {A.UNDER_REVIEW, A.REJECTED, A.WITHDRAWN},
        A.UNDER_REVIEW: {A.SHORTLISTED, A.REJECTED, A.INTERVIEW_SCHEDULED},
        A.SHORTLISTED: {A.INTERVIEW_SCHEDULED, A.REJECTED, A.OFFER_MADE},
        A.INTERVIEW_SCHEDULED: {A.INTERVIEW_COMPLETED, A.REJECTED, A.CANCELLED},
        A.INTERVIEW_COMPLETED: {
            A.SECOND_INTERVIEW, A.REFERENCE_CHECK, A.OFFER_MADE, A.REJECTED
        },
        A.SECOND_INTERVIEW: {A.OFFER_MADE, A.REJECTED, A.REFERENCE_CHECK},
        A.REFERENCE_CHECK: {A.OFFER_MADE, A.REJECTED},
        A.OFFER_MADE: {A.OFFER_ACCEPTED, A.OFFER_DECLINED},
        A.OFFER_ACCEPTED: {A.HIRED},
        A.OFFER_DECLINED: {A.REJECTED},
        A.HIRED: set(),
        A.REJECTED: set(),
        A.WITHDRAWN: set(),
        A.CANCELLED: set(),
    }),
    RecordKind.MENTORSHIP.value: _table({
        M.PENDING: {M.ACCEPTED, M.DECLINED},
        M.ACCEPTED: {M.ACTIVE},
        M.ACTIVE: {M.COMPLETED, M.CANCELLED},
        M.DECLINED: set(),
        M.COMPLETED: set(),
        M.CANCELLED: set(),
    }),
}

# State every new record starts in
INITIAL_STATES: Dict[str, str] = {
    RecordKind.APPLICATION.value: A.SUBMITTED.value,
    RecordKind.MENTORSHIP.value: M.PENDING.value,
}

# States in which a record blocks creation of another record for the same two parties.
# A candidate applies to a job once; a mentee holds one open mentorship per mentor.
EXCLUSIVE_STATES: Dict[str, FrozenSet[str]] = {
    RecordKind.APPLICATION.value: frozenset(TRANSITION_TABLES[RecordKind.APPLICATION.value]),
    RecordKind.MENTORSHIP.value: frozenset({M.PENDING.value, M.ACCEPTED.value, M.ACTIVE.value}),
}

# States that count against the counterparty's capacity. Only mentors have one.
CAPACITY_STATES: Dict[str, FrozenSet[str]] = {
    RecordKind.MENTORSHIP.value: frozenset({M.ACTIVE.value}),
}


class TransitionResult:
    """Result of a transition table check."""

    def __init__(
        self,
        allowed: bool,
        current_state: str,
        target_state: str,
        error_message: Optional[str] = None,
    ):
        """
        Initialize a transition result.

        Args:
            allowed: Whether the transition is declared
            current_state: State the record is in
            target_state: State that was requested
            error_message: Error message if transition is not declared
        """
        self.allowed = allowed
        self.current_state = current_state
        self.target_state = target_state
        self.error_message = error_message


def _kind_key(kind: Any) -> str:
    return kind.value if isinstance(kind, RecordKind) else str(kind)


def get_table(kind: Any) -> Dict[str, FrozenSet[str]]:
    """
    Return the transition table for a kind.

    Raises:
        UnknownKindError: If the kind is not declared
    """
    key = _kind_key(kind)
    table = TRANSITION_TABLES.get(key)
    if table is None:
        raise UnknownKindError(key)
    return table


def initial_state(kind: Any) -> str:
    """Return the state a new record of this kind starts in."""
    get_table(kind)
    return INITIAL_STATES[_kind_key(kind)]


def allowed_next(kind: Any, from_state: str) -> FrozenSet[str]:
    """
    Look up the legal destinations from a state.

    Pure lookup with no side effects.

    Args:
        kind: Record kind (``RecordKind`` member or its string value)
        from_state: Current state

    Returns:
        Frozen set of legal next states (empty for terminal states)

    Raises:
        UnknownKindError: If the kind is not declared
        UnknownStateError: If the state is not declared for the kind

    Examples:
        >>> sorted(allowed_next("mentorship", "pending"))
        ['accepted', 'declined']
        >>> allowed_next("application", "hired")
        frozenset()
    """
    table = get_table(kind)
    if from_state not in table:
        raise UnknownStateError(_kind_key(kind), from_state)
    return table[from_state]


def terminal_states(kind: Any) -> FrozenSet[str]:
    """Return every terminal state declared for a kind."""
    return frozenset(state for state, targets in get_table(kind).items() if not targets)


def exclusive_states(kind: Any) -> FrozenSet[str]:
    """Return the states that block a second record between the same parties."""
    get_table(kind)
    return EXCLUSIVE_STATES[_kind_key(kind)]


def capacity_states(kind: Any) -> FrozenSet[str]:
    """Return the states counted against a counterparty's capacity; empty if unlimited."""
    get_table(kind)
    return CAPACITY_STATES.get(_kind_key(kind), frozenset())


def validate_transition(kind: Any, current_state: str, target_state: str) -> TransitionResult:
    """
    Check a requested transition against the kind's table.

    A target equal to the current state is not a transition and is never
    allowed, including for terminal states.

    Args:
        kind: Record kind
        current_state: The state the record is in
        target_state: The requested next state

    Returns:
        TransitionResult indicating whether the transition is declared

    Raises:
        UnknownKindError: If the kind is not declared
        UnknownStateError: If current_state is not declared for the kind
    """
    legal: List[str] = sorted(allowed_next(kind, current_state))

    if target_state in legal:
        return TransitionResult(
            allowed=True, current_state=current_state, target_state=target_state
        )

    error_msg = f"Invalid status transition from {current_state} to {target_state}. "
    if legal:
        error_msg += f"Allowed transitions from {current_state}: " + ", ".join(legal)
    else:
        error_msg += f"{current_state} is a terminal state"

    return TransitionResult(
        allowed=False,
        current_state=current_state,
        target_state=target_state,
        error_message=error_msg,
    )
