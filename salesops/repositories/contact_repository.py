from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, or_, select

from salesops.models.contact import Contact
from salesops.repositories.base import BaseRepository


class ContactRepository(BaseRepository):
    """Encapsulates queries against the ``contacts`` table."""

    async def get_by_id(
        self, contact_id: UUID, company_id: UUID
    ) -> Optional[Contact]:
        result = await self._db.execute(
            select(Contact).where(
                Contact.contact_id == contact_id,
                Contact.company_id == company_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_by_email(self, company_id: UUID, email: str) -> Optional[Contact]:
        """Return the first contact whose email equals *email* (case-insensitive)."""
        result = await self._db.execute(
            select(Contact)
            .where(
                Contact.company_id == company_id,
                func.lower(Contact.email) == email.lower(),
            )
            .order_by(Contact.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_by_phone(self, company_id: UUID, digits: str) -> Optional[Contact]:
        """Return the first contact whose phone has the same digits as *digits*."""
        result = await self._db.execute(
            select(Contact)
            .where(
                Contact.company_id == company_id,
                func.regexp_replace(Contact.phone, "[^0-9]", "", "g") == digits,
            )
            .order_by(Contact.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_by_name_tokens(
        self, company_id: UUID, tokens: Sequence[str]
    ) -> List[Contact]:
        """Return contacts whose name contains ANY of *tokens* (case-insensitive)."""
        if not tokens:
            return []
        result = await self._db.execute(
            select(Contact).where(
                Contact.company_id == company_id,
                or_(
                    *[
                        Contact.name.icontains(token, autoescape=True)
                        for token in tokens
                    ]
                ),
            )
        )
        return list(result.scalars().all())
