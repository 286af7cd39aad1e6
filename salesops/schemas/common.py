from enum import Enum
from pydantic import BaseModel


class AppointmentStatus(str, Enum):
    scheduled = "scheduled"
    showed = "showed"
    no_show = "no_show"
    signed = "signed"
    contract_sent = "contract_sent"
    cancelled = "cancelled"
    rescheduled = "rescheduled"


class MatchMethod(str, Enum):
    appointment_id = "appointment_id"
    email = "email"
    phone = "phone"
    name_amount = "name_amount"
    manual = "manual"
    pcn_submission = "pcn_submission"
    none = "none"


class ReleaseStatus(str, Enum):
    pending = "pending"
    partial = "partial"
    released = "released"
    paid = "paid"


class UnmatchedPaymentStatus(str, Enum):
    pending = "pending"
    matched = "matched"
    ignored = "ignored"


class SuccessResponse(BaseModel):
    """Generic success response base."""

    success: bool = True
