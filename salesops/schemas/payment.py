"""Payment ingestion and matching schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from salesops.schemas.common import MatchMethod


class PaymentData(BaseModel):
    """Normalised payment facts handed to the matcher."""

    amount: Decimal
    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None
    processor: Optional[str] = None
    external_id: Optional[str] = None
    appointment_id: Optional[UUID] = None


class MatchCandidate(BaseModel):
    appointment_id: UUID
    contact_id: Optional[UUID] = None
    contact_name: Optional[str] = None
    cash_collected: Optional[Decimal] = None
    scheduled_at: Optional[datetime] = None
    reason: str = ""


class MatchResult(BaseModel):
    """Outcome of the priority-ordered payment matcher.

    ``appointment_id`` is ``None`` both when nothing matched and when
    several name+amount candidates tie; the latter carries them in
    ``candidates`` for manual review.
    """

    appointment_id: Optional[UUID] = None
    confidence: float = 0.0
    method: MatchMethod = MatchMethod.none
    candidates: List[MatchCandidate] = Field(default_factory=list)

    @property
    def is_ambiguous(self) -> bool:
        return self.appointment_id is None and len(self.candidates) > 1


class IncomingPayment(BaseModel):
    """Raw body posted by payment processors to POST /payments/webhook.

    Fields are deliberately loose (strings everywhere); normalisation
    happens in :class:`PaymentIngestionService`.
    """

    processor: Optional[str] = None
    payment_id: Optional[str] = None
    amount: Optional[Any] = None
    currency: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    company_id: Optional[str] = None
    appointment_id: Optional[str] = None
    paid_at: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class PaymentMatchRequest(BaseModel):
    """Request body for the dry-run matcher endpoint."""

    company_id: UUID
    payment: PaymentData


class PaymentIngestResponse(BaseModel):
    status: str
    sale_id: Optional[UUID] = None
    appointment_id: Optional[UUID] = None
    unmatched_payment_id: Optional[UUID] = None
    commission_id: Optional[UUID] = None
    match: Optional[MatchResult] = None


class ManualMatchRequest(BaseModel):
    company_id: UUID
    appointment_id: UUID


class UnmatchedPaymentOut(BaseModel):
    unmatched_payment_id: UUID
    sale_id: UUID
    amount: Decimal
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    status: str
    suggested_matches: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[datetime] = None
