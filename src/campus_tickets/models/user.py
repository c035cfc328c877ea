"""
User model - students reserve tickets, admins run venues and events
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.orm import relationship

from campus_tickets.core.database import Base
from campus_tickets.core.timeutils import utcnow


class UserRole(str, PyEnum):
    """Enum for user roles"""
    STUDENT = "student"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.STUDENT,
    )
    email = Column(String(255), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    venues = relationship("Venue", back_populates="admin")
    organized_events = relationship("Event", back_populates="organizer", passive_deletes=True)
    tickets = relationship("Ticket", back_populates="user", passive_deletes=True)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role.value}')>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
