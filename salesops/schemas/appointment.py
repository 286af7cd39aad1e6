"""Appointment lifecycle Pydantic schemas (create, reschedule, outcome, response)."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

from salesops.schemas.common import AppointmentStatus, SuccessResponse


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AppointmentCreate(BaseModel):
    """Appointment booked in the CRM and forwarded by the webhook handler."""

    company_id: UUID
    contact_id: UUID
    closer_id: Optional[UUID] = None
    scheduled_at: datetime
    status: AppointmentStatus = AppointmentStatus.scheduled
    outcome: Optional[str] = Field(None, max_length=50)


class AppointmentReschedule(BaseModel):
    """Request body for POST /appointments/{id}/reschedule."""

    company_id: UUID
    scheduled_at: datetime


class AppointmentCancel(BaseModel):
    """Request body for POST /appointments/{id}/cancel."""

    company_id: UUID
    reason: Optional[str] = None


class AppointmentOutcome(BaseModel):
    """Post-call note submitted by the closer."""

    company_id: UUID
    outcome: str = Field(..., min_length=1, max_length=50)
    cash_collected: Optional[Decimal] = Field(None, ge=0)
    total_price: Optional[Decimal] = Field(None, ge=0)

    @model_validator(mode="after")
    def validate_amounts(self) -> Self:
        """Cash collected on a call can never exceed the deal price."""
        if self.cash_collected is not None and self.total_price is not None:
            if self.cash_collected > self.total_price:
                raise ValueError(
                    f"cash_collected ({self.cash_collected}) cannot exceed "
                    f"total_price ({self.total_price})"
                )
        return self


class BulkRecalculateRequest(BaseModel):
    """Request body for POST /inclusion-flags/recalculate."""

    company_id: Optional[UUID] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    appointment_id: UUID
    company_id: UUID
    contact_id: Optional[UUID] = None
    closer_id: Optional[UUID] = None
    scheduled_at: Optional[datetime] = None
    status: Optional[str] = None
    outcome: Optional[str] = None
    inclusion_flag: Optional[int] = None
    cash_collected: Optional[Decimal] = None
    total_price: Optional[Decimal] = None


class InclusionFlagResponse(BaseModel):
    appointment_id: UUID
    inclusion_flag: Optional[int] = None


class ContactRecalculationResponse(SuccessResponse):
    contact_id: UUID
    flags: Dict[str, Optional[int]] = Field(default_factory=dict)


class BulkRecalculationResponse(BaseModel):
    total: int = 0
    updated: int = 0
    errors: int = 0
