"""
Event model - CRITICAL for seat accounting

seats_left is the authoritative counter; only the availability ledger
mutates it, always inside a transaction scoped to one event.
"""
from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from campus_tickets.core.database import Base
from campus_tickets.core.timeutils import utcnow


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint('seats_left >= 0', name='ck_event_seats_left_non_negative'),
        CheckConstraint('seats_left <= capacity', name='ck_event_seats_left_within_capacity'),
        CheckConstraint('end_time > start_time', name='ck_event_window_ordered'),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    capacity = Column(Integer, nullable=False)
    seats_left = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    organizer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    organizer = relationship("User", back_populates="organized_events")
    venue = relationship("Venue", back_populates="events")
    tickets = relationship("Ticket", back_populates="event", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Event(id={self.id}, title='{self.title}', venue_id={self.venue_id}, start='{self.start_time}')>"

    @property
    def seats_booked(self) -> int:
        return self.capacity - self.seats_left

    def is_active(self, now) -> bool:
        """Open for booking: seats remain and the event has not started"""
        return self.seats_left > 0 and self.start_time > now
