"""
Venue model - events at the same venue must keep a buffer between them
"""
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from campus_tickets.core.database import Base


class Venue(Base):
    __tablename__ = "venues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), unique=True, nullable=False)
    location = Column(String(500), nullable=False, default="")
    admin_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Relationships
    admin = relationship("User", back_populates="venues")
    events = relationship("Event", back_populates="venue")

    def __repr__(self):
        return f"<Venue(id={self.id}, name='{self.name}')>"
