from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select

from salesops.models.commission import Commission
from salesops.repositories.base import BaseRepository


class CommissionRepository(BaseRepository):
    """Encapsulates queries against the ``commissions`` table."""

    model = Commission

    async def get_by_id(
        self, commission_id: UUID, company_id: UUID
    ) -> Optional[Commission]:
        result = await self._db.execute(
            select(Commission).where(
                Commission.commission_id == commission_id,
                Commission.company_id == company_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_appointment(
        self, appointment_id: UUID, closer_id: UUID
    ) -> Optional[Commission]:
        """Return the commission row of a closer on an appointment, or ``None``."""
        result = await self._db.execute(
            select(Commission).where(
                Commission.appointment_id == appointment_id,
                Commission.closer_id == closer_id,
            )
        )
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> Commission:
        """Insert a new commission and flush so its primary key is populated."""
        return await self._insert(**kwargs)
