"""
Domain exceptions for the ticketing core

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with, so callers can react to each failure kind separately.
"""
from datetime import datetime
from typing import Optional


class TicketingError(Exception):
    """Base exception for ticketing errors"""

    code = "ticketing_error"
    status_code = 400

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class ValidationError(TicketingError):
    """Request violates a time window or quantity rule"""

    code = "validation_error"
    status_code = 400


class ScheduleConflictError(TicketingError):
    """Event window collides with another event at the same venue"""

    code = "schedule_conflict"
    status_code = 409

    def __init__(
        self,
        message: str,
        conflicting_event_id: Optional[int] = None,
        conflicting_title: Optional[str] = None,
        conflicting_start: Optional[datetime] = None,
        conflicting_end: Optional[datetime] = None,
    ):
        super().__init__(message)
        self.conflicting_event_id = conflicting_event_id
        self.conflicting_title = conflicting_title
        self.conflicting_start = conflicting_start
        self.conflicting_end = conflicting_end


class CapacityTooLowError(TicketingError):
    """New capacity is below the number of seats already booked"""

    code = "capacity_too_low"
    status_code = 400


class QuotaExceededError(TicketingError):
    """User would hold more tickets for the event than allowed"""

    code = "quota_exceeded"
    status_code = 409


class InsufficientSeatsError(TicketingError):
    """Not enough seats left for the requested quantity"""

    code = "insufficient_seats"
    status_code = 409


class TooLateError(TicketingError):
    """Operation is no longer allowed this close to the event"""

    code = "too_late"
    status_code = 400


class TooEarlyError(TicketingError):
    """Operation is not yet allowed this far from the event"""

    code = "too_early"
    status_code = 400


class AlreadyCheckedInError(TicketingError):
    """Ticket has already been checked in"""

    code = "already_checked_in"
    status_code = 409


class NotFoundError(TicketingError):
    """Requested resource does not exist"""

    code = "not_found"
    status_code = 404


class NotOwnerError(TicketingError):
    """Resource belongs to another organizer"""

    code = "not_owner"
    status_code = 403


class ReportNotReadyError(TicketingError):
    """Report is only available after the event has ended"""

    code = "report_not_ready"
    status_code = 400


class StorageError(TicketingError):
    """Database operation failed and was rolled back"""

    code = "storage_error"
    status_code = 500


class AuthenticationError(TicketingError):
    """Caller could not be identified"""

    code = "not_authenticated"
    status_code = 401


class PermissionDeniedError(TicketingError):
    """Caller's role does not allow this operation"""

    code = "forbidden"
    status_code = 403


class DuplicateError(TicketingError):
    """A unique value is already taken"""

    code = "duplicate"
    status_code = 409
