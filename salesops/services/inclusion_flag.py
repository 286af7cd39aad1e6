"""Appointment inclusion flag calculation.

Decides which appointments of a contact count toward reporting metrics
and in which position:

- ``0``:    excluded (a cancellation superseded by another appointment)
- ``1``:    first countable appointment for the contact
- ``N>=2``: Nth countable appointment, in ``scheduled_at`` order
- ``None``: cannot be sequenced (no contact or no schedule time)

The flag is derived from the sibling set only, so it is computed by a
pure function over an in-memory snapshot and persisted by the caller.
"""

import logging
from typing import Any, Iterable, List, Optional, Tuple
from uuid import UUID

from salesops.core.constants import CANCELLED
from salesops.repositories.appointment_repository import AppointmentRepository

logger = logging.getLogger(__name__)


def is_cancelled(status: Optional[str], outcome: Optional[str]) -> bool:
    """Return ``True`` when either lifecycle field says "cancelled".

    ``status`` is an enumerated column and is compared exactly; ``outcome``
    is free text from post-call notes and is compared case-insensitively.
    A row whose status and outcome disagree is treated as cancelled.
    """
    if status == CANCELLED:
        return True
    return outcome is not None and outcome.strip().lower() == CANCELLED


def is_appointment_cancelled(appointment: Any) -> bool:
    return is_cancelled(appointment.status, appointment.outcome)


def _nullable_key(value: Any) -> Tuple:
    # NULL sorts before any real timestamp
    return (0,) if value is None else (1, value)


def _recency_key(appointment: Any) -> Tuple:
    return (
        _nullable_key(appointment.scheduled_at),
        _nullable_key(appointment.created_at),
    )


def _sequence_key(appointment: Any) -> Tuple:
    return (
        appointment.scheduled_at,
        _nullable_key(appointment.created_at),
        str(appointment.appointment_id),
    )


def _is_most_recent_cancellation(target: Any, cancellations: List[Any]) -> bool:
    latest = max(cancellations, key=_recency_key)
    if latest.appointment_id == target.appointment_id:
        return True
    # Exact ties on both timestamps share the flag
    return (
        latest.scheduled_at == target.scheduled_at
        and latest.created_at == target.created_at
    )


def compute_inclusion_flag(target: Any, siblings: Iterable[Any]) -> Optional[int]:
    """Compute the inclusion flag of *target* against its sibling snapshot.

    *siblings* is every appointment of the same (contact, company) pair;
    it may or may not contain *target* itself.  Rules are evaluated in
    order and the first one that applies wins:

    1. No ``contact_id`` or ``scheduled_at`` → ``None``.
    2. Cancelled (status or outcome):
       a. any other non-cancelled sibling exists → ``0``;
       b. otherwise the most recent cancellation (``scheduled_at`` desc,
          ``created_at`` desc) → ``1``, older ones → ``0``.
    3. No-shows get no special treatment and fall through to rule 4.
    4. 1-indexed position among non-cancelled siblings scheduled at or
       before *target*, ordered by ``scheduled_at`` (ties broken by
       ``created_at`` then id so the sequence stays dense).
    """
    if target.contact_id is None or target.scheduled_at is None:
        return None

    others = [a for a in siblings if a.appointment_id != target.appointment_id]

    if is_appointment_cancelled(target):
        if any(not is_appointment_cancelled(a) for a in others):
            return 0
        cancellations = [target] + [a for a in others if is_appointment_cancelled(a)]
        return 1 if _is_most_recent_cancellation(target, cancellations) else 0

    window = [
        a
        for a in [target, *others]
        if not is_appointment_cancelled(a)
        and a.scheduled_at is not None
        and a.scheduled_at <= target.scheduled_at
    ]
    window.sort(key=_sequence_key)
    position = next(
        i
        for i, appointment in enumerate(window, start=1)
        if appointment.appointment_id == target.appointment_id
    )
    return max(1, position)


class InclusionFlagCalculator:
    """Read-only calculator bound to the current database snapshot.

    Never writes: callers persist the returned value.  Unknown ids return
    ``None`` instead of raising so batch runs can skip and carry on.
    """

    async def calculate_inclusion_flag(
        self,
        appointment_id: UUID,
        appointment_repo: AppointmentRepository,
    ) -> Optional[int]:
        appointment = await appointment_repo.get_by_id(appointment_id)
        if appointment is None:
            logger.warning("Appointment %s not found", appointment_id)
            return None

        if appointment.contact_id is None or appointment.scheduled_at is None:
            return None

        siblings = await appointment_repo.get_contact_appointments(
            appointment.contact_id, appointment.company_id
        )
        return compute_inclusion_flag(appointment, siblings)
