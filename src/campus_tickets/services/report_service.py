"""
Post-event revenue and attendance report
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.core.database import atomic
from campus_tickets.core.exceptions import NotFoundError, NotOwnerError, ReportNotReadyError
from campus_tickets.core.timeutils import utcnow
from campus_tickets.models import Event, Ticket, TicketStatus
from campus_tickets.schemas.report import EventReport

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _percent(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 1)


def build_report(event: Event, total_sold: int, total_checked_in: int) -> EventReport:
    price = Decimal(event.price)
    return EventReport(
        event_id=event.id,
        event_title=event.title,
        event_end_time=event.end_time,
        price_per_ticket=price.quantize(CENTS, rounding=ROUND_HALF_UP),
        capacity=event.capacity,
        total_tickets_sold=total_sold,
        total_checked_in=total_checked_in,
        total_revenue=(price * total_sold).quantize(CENTS, rounding=ROUND_HALF_UP),
        potential_revenue=(price * event.capacity).quantize(CENTS, rounding=ROUND_HALF_UP),
        attendance_rate=_percent(total_checked_in, total_sold),
        sell_through_rate=_percent(total_sold, event.capacity),
    )


class ReportService:
    """Service for event reports"""

    @staticmethod
    async def get_report(
        db: AsyncSession,
        event_id: int,
        organizer_id: int,
        now: Optional[datetime] = None,
    ) -> EventReport:
        """
        Raises:
            NotFoundError: event does not exist
            NotOwnerError: event belongs to another organizer
            ReportNotReadyError: event has not ended yet
        """
        now = now or utcnow()

        async with atomic(db, "event report"):
            event = await db.get(Event, event_id)
            if event is None:
                raise NotFoundError(f"Event {event_id} not found")
            if event.organizer_id != organizer_id:
                raise NotOwnerError("You can only view reports for events you created.")
            if event.end_time > now:
                raise ReportNotReadyError(
                    "Report is only available after the event has ended."
                )

            counts_query = select(
                func.count(Ticket.id),
                func.coalesce(
                    func.sum(case((Ticket.status == TicketStatus.CHECKED_IN, 1), else_=0)),
                    0,
                ),
            ).where(Ticket.event_id == event_id)
            total_sold, total_checked_in = (await db.execute(counts_query)).one()

        report = build_report(event, int(total_sold), int(total_checked_in))
        logger.info(
            f"Report for event {event_id}: sold={report.total_tickets_sold} "
            f"checked_in={report.total_checked_in}",
            extra={'event_id': event_id, 'user_id': organizer_id},
        )
        return report
