from __future__ import annotations

from enum import Enum


class RequestStatus(str, Enum):
    """Lifecycle of a PTO request."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"

    @property
    def color(self) -> str:
        return {
            RequestStatus.PENDING: "yellow",
            RequestStatus.APPROVED: "green",
            RequestStatus.DENIED: "red",
            RequestStatus.CANCELLED: "gray",
        }[self]


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class DayPortion(str, Enum):
    """Which part of a day a request starts or ends on."""

    FULL_DAY = "full_day"
    MORNING = "morning"
    AFTERNOON = "afternoon"


class TransactionType(str, Enum):
    ACCRUAL = "accrual"
    USAGE = "usage"
    ADJUSTMENT = "adjustment"
    RESET = "reset"
    CARRYOVER = "carryover"


class AccrualFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


class RestrictionType(str, Enum):
    """How a blackout period treats PTO requests that fall inside it."""

    FULL_BLOCK = "full_block"
    LIMIT_REQUESTS = "limit_requests"
    WARNING_ONLY = "warning_only"


class TimesheetStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    PROCESSED = "processed"
    REJECTED = "rejected"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class TimesheetActionType(str, Enum):
    SUBMITTED = "submitted"
    WITHDRAWN = "withdrawn"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSED = "processed"
