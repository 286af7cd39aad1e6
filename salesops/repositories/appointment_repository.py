from datetime import datetime
from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.sql.elements import ColumnElement

from salesops.core.constants import CANCELLED
from salesops.models.appointment import Appointment
from salesops.repositories.base import BaseRepository

# ASCII whitespace trimmed from free-text outcomes
_WHITESPACE = " \t\n\r\x0b\x0c"


class AppointmentRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``appointments`` table."""

    model = Appointment

    @staticmethod
    def cancelled_clause() -> ColumnElement[bool]:
        """SQL twin of :func:`salesops.services.inclusion_flag.is_cancelled`.

        ``status`` is compared exactly, ``outcome`` case-insensitively with
        surrounding whitespace stripped.  NULLs on either side never count
        as cancelled.
        """
        return or_(
            Appointment.status == CANCELLED,
            func.lower(func.btrim(Appointment.outcome, _WHITESPACE)) == CANCELLED,
        )

    async def get_by_id(
        self, appointment_id: UUID, company_id: Optional[UUID] = None
    ) -> Optional[Appointment]:
        """Return a single appointment, optionally scoped to a company."""
        query = select(Appointment).where(Appointment.appointment_id == appointment_id)
        if company_id is not None:
            query = query.where(Appointment.company_id == company_id)
        result = await self._db.execute(query)
        return result.scalar_one_or_none()

    async def get_contact_appointments(
        self, contact_id: UUID, company_id: UUID
    ) -> List[Appointment]:
        """Return every appointment of a contact ordered by ``scheduled_at``.

        This is the sibling snapshot the inclusion flag is computed from.
        """
        result = await self._db.execute(
            select(Appointment)
            .where(
                Appointment.contact_id == contact_id,
                Appointment.company_id == company_id,
            )
            .order_by(
                Appointment.scheduled_at.asc().nulls_last(),
                Appointment.created_at.asc(),
            )
        )
        return list(result.scalars().all())

    async def list_ids(self, company_id: Optional[UUID] = None) -> List[UUID]:
        """Return appointment ids ordered by ``scheduled_at`` for bulk runs."""
        query = select(Appointment.appointment_id).order_by(
            Appointment.scheduled_at.asc().nulls_last()
        )
        if company_id is not None:
            query = query.where(Appointment.company_id == company_id)
        result = await self._db.execute(query)
        return list(result.scalars().all())

    async def create(self, **kwargs: Any) -> Appointment:
        """Insert a new appointment and return the model instance."""
        return await self._insert(**kwargs)

    async def set_inclusion_flag(
        self, appointment_id: UUID, flag: Optional[int]
    ) -> None:
        """Persist a computed inclusion flag (last writer wins)."""
        await self._db.execute(
            update(Appointment)
            .where(Appointment.appointment_id == appointment_id)
            .values(inclusion_flag=flag)
        )

    async def find_latest_signed_for_contact(
        self, contact_id: UUID, company_id: UUID, since: datetime
    ) -> Optional[Appointment]:
        """Most recent signed appointment of a contact scheduled after *since*."""
        result = await self._db.execute(
            select(Appointment)
            .where(
                Appointment.contact_id == contact_id,
                Appointment.company_id == company_id,
                Appointment.status == "signed",
                Appointment.scheduled_at >= since,
            )
            .order_by(Appointment.scheduled_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_signed_for_contacts(
        self, contact_ids: Sequence[UUID], company_id: UUID, since: datetime
    ) -> List[Appointment]:
        """Signed appointments of any of *contact_ids* scheduled after *since*."""
        if not contact_ids:
            return []
        result = await self._db.execute(
            select(Appointment)
            .where(
                Appointment.contact_id.in_(list(contact_ids)),
                Appointment.company_id == company_id,
                Appointment.status == "signed",
                Appointment.scheduled_at >= since,
            )
            .order_by(Appointment.scheduled_at.desc())
        )
        return list(result.scalars().all())

