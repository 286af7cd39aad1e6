from typing import Optional
from uuid import UUID

from sqlalchemy import select

from salesops.models.closer import Closer
from salesops.repositories.base import BaseRepository


class CloserRepository(BaseRepository):
    """Encapsulates queries against the ``closers`` table."""

    async def get_by_id(self, closer_id: UUID) -> Optional[Closer]:
        """Return a closer with its commission role eagerly loaded."""
        result = await self._db.execute(
            select(Closer).where(Closer.closer_id == closer_id)
        )
        return result.unique().scalar_one_or_none()
