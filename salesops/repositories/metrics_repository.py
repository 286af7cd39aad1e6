from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func, or_, select

from salesops.core.constants import SHOWED_STATUSES
from salesops.models.appointment import Appointment
from salesops.models.commission import Commission
from salesops.repositories.appointment_repository import AppointmentRepository
from salesops.repositories.base import BaseRepository


class MetricsRepository(BaseRepository):
    """Aggregate queries over inclusion-flagged appointments.

    This is the only reader of ``inclusion_flag`` outside the engine:
    ``IN (1, NULL)`` selects first calls (NULL kept for un-migrated
    rows), ``>= 1`` selects every countable appointment.  Cancellations
    are counted with the same predicate the flag engine uses.
    """

    async def get_appointment_counts(
        self,
        company_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        closer_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        countable = Appointment.inclusion_flag >= 1
        first_call = or_(
            Appointment.inclusion_flag == 1, Appointment.inclusion_flag.is_(None)
        )

        query = select(
            func.count().filter(first_call).label("first_calls"),
            func.count().filter(countable).label("countable_appointments"),
            func.count()
            .filter(countable, Appointment.status.in_(SHOWED_STATUSES))
            .label("shows"),
            func.count()
            .filter(countable, Appointment.status == "no_show")
            .label("no_shows"),
            func.count()
            .filter(countable, Appointment.status == "signed")
            .label("signed"),
            func.count()
            .filter(AppointmentRepository.cancelled_clause())
            .label("cancellations"),
            func.coalesce(
                func.sum(Appointment.cash_collected).filter(countable), 0
            ).label("cash_collected"),
        ).where(Appointment.company_id == company_id)

        if start is not None:
            query = query.where(Appointment.scheduled_at >= start)
        if end is not None:
            query = query.where(Appointment.scheduled_at < end)
        if closer_id is not None:
            query = query.where(Appointment.closer_id == closer_id)

        row = (await self._db.execute(query)).mappings().one()
        return dict(row)

    async def get_commission_totals(
        self, company_id: UUID, closer_id: Optional[UUID] = None
    ) -> Dict[str, Decimal]:
        query = select(
            func.coalesce(func.sum(Commission.total_amount), 0).label(
                "total_commission"
            ),
            func.coalesce(func.sum(Commission.released_amount), 0).label(
                "released_commission"
            ),
        ).where(Commission.company_id == company_id)
        if closer_id is not None:
            query = query.where(Commission.closer_id == closer_id)

        row = (await self._db.execute(query)).mappings().one()
        return {
            "total_commission": Decimal(row["total_commission"]),
            "released_commission": Decimal(row["released_commission"]),
        }
