from typing import Dict, FrozenSet

from salesops.schemas.common import (
    AppointmentStatus,
    MatchMethod,
    ReleaseStatus,
    UnmatchedPaymentStatus,
)

APPOINTMENT_STATUSES: FrozenSet[str] = frozenset(s.value for s in AppointmentStatus)

APPOINTMENT_STATUS_CHECK_CLAUSE: str = (
    "status IS NULL OR status IN ("
    f"{', '.join(repr(s.value) for s in AppointmentStatus)})"
)

# Matched exactly against status, case-insensitively against outcome
CANCELLED: str = AppointmentStatus.cancelled.value

# Outcomes (post-call notes) that move the appointment status along with them
OUTCOME_STATUS_MAP: Dict[str, str] = {
    "showed": AppointmentStatus.showed.value,
    "no_show": AppointmentStatus.no_show.value,
    "signed": AppointmentStatus.signed.value,
    "contract_sent": AppointmentStatus.contract_sent.value,
    "cancelled": AppointmentStatus.cancelled.value,
}

# Statuses that count as "the prospect attended the call"
SHOWED_STATUSES: FrozenSet[str] = frozenset(
    {
        AppointmentStatus.showed.value,
        AppointmentStatus.signed.value,
        AppointmentStatus.contract_sent.value,
    }
)

RELEASE_STATUSES: FrozenSet[str] = frozenset(s.value for s in ReleaseStatus)
UNMATCHED_PAYMENT_STATUSES: FrozenSet[str] = frozenset(
    s.value for s in UnmatchedPaymentStatus
)

# Payment matcher confidence per strategy (heuristic scores, not probabilities)
MATCH_CONFIDENCE: Dict[str, float] = {
    MatchMethod.appointment_id.value: 1.0,
    MatchMethod.email.value: 0.9,
    MatchMethod.phone.value: 0.85,
    MatchMethod.name_amount.value: 0.7,
    MatchMethod.none.value: 0.0,
}

# Confidence reported when a name+amount search yields several candidates
AMBIGUOUS_MATCH_CONFIDENCE: float = 0.5

# Name tokens shorter than this are ignored ("of", "jr")
MIN_NAME_TOKEN_LENGTH: int = 3
