from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class PtoStatus(str, Enum):
    """Lifecycle of a PTO request."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"


class DayPart(str, Enum):
    """Portion of the first/last day a PTO request covers."""

    FULL_DAY = "full_day"
    MORNING = "morning"
    AFTERNOON = "afternoon"


class TransactionType(str, Enum):
    ACCRUAL = "accrual"
    USAGE = "usage"
    ADJUSTMENT = "adjustment"
    RESET = "reset"
    REVERSAL = "reversal"


class RestrictionType(str, Enum):
    """How a blackout period treats overlapping requests."""

    FULL_BLOCK = "full_block"
    LIMIT_REQUESTS = "limit_requests"
    WARNING_ONLY = "warning_only"


class NotificationKind(str, Enum):
    PTO_SUBMITTED = "pto_submitted"
    PTO_APPROVED = "pto_approved"
    PTO_DENIED = "pto_denied"
    PTO_CANCELLED = "pto_cancelled"


class UploadStatus(str, Enum):
    """Outcome of a parts catalog import."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"
