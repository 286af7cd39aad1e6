from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select

from salesops.models.sale import Sale
from salesops.models.unmatched_payment import UnmatchedPayment
from salesops.repositories.base import BaseRepository


class UnmatchedPaymentRepository(BaseRepository):
    """Encapsulates queries against the ``unmatched_payments`` review queue."""

    model = UnmatchedPayment

    async def get_by_id(
        self, unmatched_payment_id: UUID, company_id: UUID
    ) -> Optional[UnmatchedPayment]:
        result = await self._db.execute(
            select(UnmatchedPayment).where(
                UnmatchedPayment.unmatched_payment_id == unmatched_payment_id,
                UnmatchedPayment.company_id == company_id,
            )
        )
        return result.unique().scalar_one_or_none()

    async def create(self, **kwargs: Any) -> UnmatchedPayment:
        """Queue a sale for manual review."""
        return await self._insert(**kwargs)

    async def find_pending_by_email(
        self, company_id: UUID, email: str
    ) -> Optional[UnmatchedPayment]:
        """Most recent pending payment whose customer email equals *email*."""
        result = await self._db.execute(
            select(UnmatchedPayment)
            .join(Sale, Sale.sale_id == UnmatchedPayment.sale_id)
            .where(
                UnmatchedPayment.company_id == company_id,
                UnmatchedPayment.status == "pending",
                func.lower(Sale.customer_email) == email.lower(),
            )
            .order_by(UnmatchedPayment.created_at.desc())
            .limit(1)
        )
        return result.unique().scalar_one_or_none()

    async def list_pending(self, company_id: UUID) -> List[Dict[str, Any]]:
        """Return pending payments with their sale details, newest first."""
        query = (
            select(
                UnmatchedPayment.unmatched_payment_id,
                UnmatchedPayment.sale_id,
                UnmatchedPayment.status,
                UnmatchedPayment.suggested_matches,
                UnmatchedPayment.created_at,
                Sale.amount,
                Sale.customer_email,
                Sale.customer_name,
            )
            .select_from(UnmatchedPayment)
            .join(Sale, Sale.sale_id == UnmatchedPayment.sale_id)
            .where(
                UnmatchedPayment.company_id == company_id,
                UnmatchedPayment.status == "pending",
            )
            .order_by(UnmatchedPayment.created_at.desc())
        )
        rows = await self._db.execute(query)
        return [dict(row) for row in rows.mappings()]
