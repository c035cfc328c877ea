"""
Services package exports
"""
from campus_tickets.services.availability_ledger import (
    AvailabilityLedger,
    Reservation,
    Refund,
    compute_refund,
    generate_ticket_code,
)
from campus_tickets.services.event_service import EventService
from campus_tickets.services.report_service import ReportService, build_report
from campus_tickets.services.schedule import (
    ScheduleConflictChecker,
    find_conflict,
    validate_event_window,
    windows_conflict,
)
from campus_tickets.services.user_service import UserService
from campus_tickets.services.venue_service import VenueService

__all__ = [
    "AvailabilityLedger",
    "Reservation",
    "Refund",
    "compute_refund",
    "generate_ticket_code",
    "EventService",
    "ReportService",
    "build_report",
    "ScheduleConflictChecker",
    "find_conflict",
    "validate_event_window",
    "windows_conflict",
    "UserService",
    "VenueService",
]
