"""
Centralized, type-safe kind and status definitions for lifecycle records.

This module is the single source of truth for every kind tag and status value
used across the engine. It defines three Enum classes:

- ``RecordKind``: which relationship a lifecycle record represents.
- ``ApplicationStatus``: statuses of a job application.
- ``MentorshipStatus``: statuses of a mentorship request.

All Enums inherit from ``(str, Enum)`` so that members are directly
comparable to plain strings and serialize naturally to JSON at tool
boundaries.
"""

from enum import Enum


class RecordKind(str, Enum):
    """Enum for the kind tag carried by every lifecycle record."""

    APPLICATION = "application"
    MENTORSHIP = "mentorship"


class ApplicationStatus(str, Enum):
    """Enum for job application statuses.

    Initial status is ``submitted``. Terminal statuses are ``hired``,
    ``rejected``, ``withdrawn`` and ``cancelled``.
    """

    SUBMITTED = "submitted"
    UNDER_REVIEW = "under-review"
    SHORTLISTED = "shortlisted"
    INTERVIEW_SCHEDULED = "interview-scheduled"
    INTERVIEW_COMPLETED = "interview-completed"
    SECOND_INTERVIEW = "second-interview"
    REFERENCE_CHECK = "reference-check"
    OFFER_MADE = "offer-made"
    OFFER_ACCEPTED = "offer-accepted"
    OFFER_DECLINED = "offer-declined"
    HIRED = "hired"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    CANCELLED = "cancelled"


class MentorshipStatus(str, Enum):
    """Enum for mentorship request statuses.

    Initial status is ``pending``. Terminal statuses are ``declined``,
    ``completed`` and ``cancelled``.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
