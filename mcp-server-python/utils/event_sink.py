"""
Event sink interface and in-process adapters.

The engine calls ``publish`` once after each committed mutation. Delivery,
retries and channels belong to the sink; a sink that raises does not undo
the mutation.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from models.events import EventType, LifecycleEvent
from models.status import ApplicationStatus as A
from models.status import MentorshipStatus as M
from models.status import RecordKind

logger = logging.getLogger(__name__)

# Applicant-facing messages per application status
APPLICATION_STATUS_MESSAGES: Dict[str, str] = {
    A.UNDER_REVIEW.value: "Your application is now under review",
    A.SHORTLISTED.value: "Congratulations! You have been shortlisted",
    A.INTERVIEW_SCHEDULED.value: "An interview has been scheduled for your application",
    A.INTERVIEW_COMPLETED.value: "Thank you for completing the interview",
    A.SECOND_INTERVIEW.value: "You have been invited for a second interview",
    A.REFERENCE_CHECK.value: "We are conducting reference checks",
    A.OFFER_MADE.value: "Congratulations! You have received a job offer",
    A.HIRED.value: "Congratulations! You have been hired",
    A.REJECTED.value: "Thank you for your interest. Unfortunately, we will not be moving forward",
}

# Mentee-facing messages per mentorship status
MENTORSHIP_STATUS_MESSAGES: Dict[str, str] = {
    M.ACCEPTED.value: "Your mentorship request has been accepted",
    M.DECLINED.value: "Your mentorship request has been declined",
    M.ACTIVE.value: "Your mentorship has started",
    M.COMPLETED.value: "Your mentorship has been completed",
    M.CANCELLED.value: "Your mentorship has been cancelled",
}

HIGH_PRIORITY_STATES = frozenset(
    {A.OFFER_MADE.value, A.HIRED.value, A.INTERVIEW_SCHEDULED.value}
)


class Notification:
    """A rendered, channel-agnostic notification for one party."""

    def __init__(self, recipient_ref: str, title: str, message: str, priority: str = "medium"):
        self.recipient_ref = recipient_ref
        self.title = title
        self.message = message
        self.priority = priority


def render_notification(event: LifecycleEvent) -> Optional[Notification]:
    """
    Render the notification an event produces, if any.

    - RecordCreated notifies the counterparty (employer or mentor).
    - StateChanged notifies the subject (applicant or mentee) when the new
      state has a message.
    - ScoreUpdated produces no notification.
    """
    is_application = event.kind == RecordKind.APPLICATION

    if event.type == EventType.RECORD_CREATED:
        if is_application:
            return Notification(
                event.counterparty_ref, "New Application", "A new application has been submitted"
            )
        return Notification(
            event.counterparty_ref,
            "New Mentorship Request",
            "You have received a new mentorship request",
        )

    if event.type == EventType.STATE_CHANGED and event.to_state:
        messages = APPLICATION_STATUS_MESSAGES if is_application else MENTORSHIP_STATUS_MESSAGES
        message = messages.get(event.to_state)
        if message is None:
            return None
        title = "Application Status Update" if is_application else "Mentorship Status Update"
        priority = "high" if event.to_state in HIGH_PRIORITY_STATES else "medium"
        return Notification(event.subject_ref, title, message, priority)

    return None


class EventSink(ABC):
    """Receiver of lifecycle events."""

    @abstractmethod
    def publish(self, event: LifecycleEvent) -> None:
        """Accept one event. May raise; the engine logs and continues."""


class LoggingEventSink(EventSink):
    """Writes every event to the log at INFO."""

    def publish(self, event: LifecycleEvent) -> None:
        logger.info(
            f"Lifecycle event {event.type.value}: record={event.record_id} "
            f"kind={event.kind.value} {event.from_state} -> {event.to_state} actor={event.actor}"
        )


class InMemoryEventSink(EventSink):
    """Collects events in a list, in publish order."""

    def __init__(self):
        self.events: List[LifecycleEvent] = []

    def publish(self, event: LifecycleEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[LifecycleEvent]:
        return [event for event in self.events if event.type == event_type]
