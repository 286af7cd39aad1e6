"""Commission calculation schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from salesops.schemas.common import ReleaseStatus


class CommissionCalculateRequest(BaseModel):
    sale_amount: Decimal = Field(..., gt=0)
    commission_rate: Decimal = Field(..., ge=0, le=1)
    payment_amount: Optional[Decimal] = Field(None, ge=0)


class CommissionCalculateResponse(BaseModel):
    total_commission: Decimal
    released_commission: Decimal
    release_status: ReleaseStatus


class CommissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    commission_id: UUID
    appointment_id: UUID
    closer_id: UUID
    rate: Decimal
    total_amount: Decimal
    released_amount: Decimal
    release_status: ReleaseStatus
    paid_at: Optional[datetime] = None


class MarkPaidRequest(BaseModel):
    company_id: UUID
