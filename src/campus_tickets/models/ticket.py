"""
Ticket model - one row per reserved seat

Lifecycle: purchased -> checked_in, or purchased -> deleted (cancellation).
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship

from campus_tickets.core.database import Base
from campus_tickets.core.timeutils import utcnow


class TicketStatus(str, PyEnum):
    """Enum for ticket status"""
    PURCHASED = "purchased"
    CHECKED_IN = "checked_in"


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    ticket_code = Column(String(32), unique=True, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum(TicketStatus, name="ticket_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=TicketStatus.PURCHASED,
        index=True,
    )
    created_at = Column(DateTime, default=utcnow, nullable=False)
    checked_in_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", back_populates="tickets")
    event = relationship("Event", back_populates="tickets")

    def __repr__(self):
        return (f"<Ticket(code='{self.ticket_code}', user_id={self.user_id}, "
                f"event_id={self.event_id}, status='{self.status.value}')>")

    @property
    def is_checked_in(self) -> bool:
        return self.status == TicketStatus.CHECKED_IN
