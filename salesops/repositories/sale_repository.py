"""Sale repository – payment rows and their appointment links."""

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select

from salesops.models.sale import Sale
from salesops.repositories.base import BaseRepository


class SaleRepository(BaseRepository):
    """Encapsulates queries against the ``sales`` table."""

    model = Sale

    async def get_by_external_id(self, external_id: str) -> Optional[Sale]:
        """Return the sale already recorded for a processor payment id."""
        result = await self._db.execute(
            select(Sale).where(Sale.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> Sale:
        """Insert a new sale and flush so its primary key is populated."""
        return await self._insert(**kwargs)

    async def link_to_appointment(
        self,
        sale: Sale,
        appointment_id: UUID,
        matched_by: str,
        confidence: float,
        manually_matched: bool = False,
        contact_id: Optional[UUID] = None,
        closer_id: Optional[UUID] = None,
    ) -> None:
        """Record the appointment link and how it was established."""
        sale.appointment_id = appointment_id
        sale.matched_by = matched_by
        sale.match_confidence = confidence
        sale.manually_matched = manually_matched
        if contact_id is not None:
            sale.contact_id = contact_id
        if closer_id is not None:
            sale.closer_id = closer_id
        await self._db.flush()

    async def sum_collected_for_appointment(self, appointment_id: UUID) -> Decimal:
        """Total cash received across every sale linked to an appointment."""
        result = await self._db.execute(
            select(func.coalesce(func.sum(Sale.amount), 0)).where(
                Sale.appointment_id == appointment_id
            )
        )
        return Decimal(result.scalar_one())
