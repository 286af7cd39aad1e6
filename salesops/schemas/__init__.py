from salesops.schemas.common import (
    AppointmentStatus,
    MatchMethod,
    ReleaseStatus,
    UnmatchedPaymentStatus,
    SuccessResponse,
)
from salesops.schemas.appointment import (
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentCancel,
    AppointmentOutcome,
    AppointmentOut,
)
from salesops.schemas.payment import (
    PaymentData,
    MatchCandidate,
    MatchResult,
    IncomingPayment,
)
from salesops.schemas.commission import (
    CommissionCalculateRequest,
    CommissionCalculateResponse,
)
from salesops.schemas.metrics import CompanyMetrics

__all__ = [
    "AppointmentStatus",
    "MatchMethod",
    "ReleaseStatus",
    "UnmatchedPaymentStatus",
    "SuccessResponse",
    "AppointmentCreate",
    "AppointmentReschedule",
    "AppointmentCancel",
    "AppointmentOutcome",
    "AppointmentOut",
    "PaymentData",
    "MatchCandidate",
    "MatchResult",
    "IncomingPayment",
    "CommissionCalculateRequest",
    "CommissionCalculateResponse",
    "CompanyMetrics",
]
