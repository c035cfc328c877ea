"""
SQLAlchemy Models for the Campus Event Ticketing System

Import all models here for easy access and to ensure proper relationship setup.
"""
from campus_tickets.core.database import Base

# Import all models to register them with SQLAlchemy
from campus_tickets.models.user import User, UserRole
from campus_tickets.models.venue import Venue
from campus_tickets.models.event import Event
from campus_tickets.models.ticket import Ticket, TicketStatus

# Export all models
__all__ = [
    "Base",
    "User",
    "UserRole",
    "Venue",
    "Event",
    "Ticket",
    "TicketStatus",
]
