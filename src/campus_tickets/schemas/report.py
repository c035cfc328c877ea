"""
Pydantic schema for the post-event report
"""
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class EventReport(BaseModel):
    event_id: int
    event_title: str
    event_end_time: datetime
    price_per_ticket: Decimal
    capacity: int
    total_tickets_sold: int
    total_checked_in: int
    total_revenue: Decimal
    potential_revenue: Decimal
    attendance_rate: float
    sell_through_rate: float
