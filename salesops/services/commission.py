import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, NamedTuple, Optional, Union
from uuid import UUID

from salesops.core.config import settings
from salesops.core.exceptions import (
    CommissionNotFoundError,
    InvalidCommissionInputError,
)
from salesops.models.appointment import Appointment
from salesops.models.commission import Commission
from salesops.models.sale import Sale
from salesops.repositories.closer_repository import CloserRepository
from salesops.repositories.commission_repository import CommissionRepository
from salesops.repositories.sale_repository import SaleRepository
from salesops.schemas.common import ReleaseStatus

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]

_CENT = Decimal("0.01")


class CommissionBreakdown(NamedTuple):
    total_commission: Decimal
    released_commission: Decimal


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so 0.1 stays 0.1 instead of its binary expansion
    return Decimal(str(value))


def calculate_commission(
    sale_amount: Number,
    commission_rate: Number,
    payment_amount: Optional[Number] = None,
) -> CommissionBreakdown:
    """Split a commission into the full entitlement and the released part.

    ``total = sale_amount * rate`` always.  When *payment_amount* is given
    and is strictly below *sale_amount*, the released part is
    proportional to the cash collected; otherwise everything is released.
    Pure arithmetic: no validation and no rounding.
    """
    sale = _to_decimal(sale_amount)
    total = sale * _to_decimal(commission_rate)

    if payment_amount is not None:
        payment = _to_decimal(payment_amount)
        if payment < sale:
            return CommissionBreakdown(total, total * (payment / sale))

    return CommissionBreakdown(total, total)


def validate_commission_inputs(sale_amount: Number, commission_rate: Number) -> None:
    """Boundary check run before :func:`calculate_commission`."""
    if _to_decimal(sale_amount) <= 0:
        raise InvalidCommissionInputError(
            f"Sale amount must be positive, got {sale_amount}"
        )
    rate = _to_decimal(commission_rate)
    if rate < 0 or rate > 1:
        raise InvalidCommissionInputError(
            f"Commission rate must be between 0 and 1, got {commission_rate}"
        )


def quantize_cents(value: Decimal) -> Decimal:
    """Round a monetary amount to cents (half-up) for persistence."""
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def resolve_release_status(total: Decimal, released: Decimal) -> ReleaseStatus:
    if released >= total:
        return ReleaseStatus.released
    if released <= 0:
        return ReleaseStatus.pending
    return ReleaseStatus.partial


def resolve_commission_rate(closer: Any, default_rate: Number) -> Decimal:
    """Closer override, then the closer's role default, then *default_rate*."""
    if closer.custom_commission_rate is not None:
        return _to_decimal(closer.custom_commission_rate)
    role = closer.commission_role
    if role is not None and role.default_rate is not None:
        return _to_decimal(role.default_rate)
    return _to_decimal(default_rate)


class CommissionService:
    """Creates and updates commission rows as cash is collected on a deal.

    The deal value is the appointment's ``total_price`` (falling back to
    the cash collected when no price was recorded) and the payment amount
    is the cumulative cash of every sale linked to the appointment, so
    each partial payment releases its proportional share.
    """

    def __init__(self, default_rate: Optional[Number] = None) -> None:
        self._default_rate = (
            default_rate if default_rate is not None else settings.DEFAULT_COMMISSION_RATE
        )

    async def release_for_appointment(
        self,
        appointment: Appointment,
        sale: Sale,
        closer_repo: CloserRepository,
        sale_repo: SaleRepository,
        commission_repo: CommissionRepository,
    ) -> Optional[Commission]:
        if appointment.closer_id is None:
            logger.warning(
                "Appointment %s has no closer; commission not created",
                appointment.appointment_id,
            )
            return None

        closer = await closer_repo.get_by_id(appointment.closer_id)
        if closer is None:
            logger.warning(
                "Closer %s not found; commission not created", appointment.closer_id
            )
            return None

        rate = resolve_commission_rate(closer, self._default_rate)
        collected = await sale_repo.sum_collected_for_appointment(
            appointment.appointment_id
        )
        deal_value = (
            _to_decimal(appointment.total_price)
            if appointment.total_price
            else collected
        )
        validate_commission_inputs(deal_value, rate)

        breakdown = calculate_commission(deal_value, rate, collected)
        total = quantize_cents(breakdown.total_commission)
        released = min(quantize_cents(breakdown.released_commission), total)
        status = resolve_release_status(total, released)

        commission = await commission_repo.get_for_appointment(
            appointment.appointment_id, closer.closer_id
        )
        if commission is None:
            commission = await commission_repo.create(
                company_id=appointment.company_id,
                appointment_id=appointment.appointment_id,
                sale_id=sale.sale_id,
                closer_id=closer.closer_id,
                rate=rate,
                total_amount=total,
                released_amount=released,
                release_status=status.value,
            )
        else:
            already_paid = (
                commission.release_status == ReleaseStatus.paid.value
                and _to_decimal(commission.released_amount) == released
            )
            commission.sale_id = sale.sale_id
            commission.rate = rate
            commission.total_amount = total
            commission.released_amount = released
            if not already_paid:
                commission.release_status = status.value

        logger.info(
            "Commission for appointment %s: %s of %s released (%s)",
            appointment.appointment_id,
            released,
            total,
            commission.release_status,
        )
        return commission

    async def mark_paid(
        self,
        commission_id: UUID,
        company_id: UUID,
        commission_repo: CommissionRepository,
    ) -> Commission:
        """Record that the released commission was paid out to the closer."""
        commission = await commission_repo.get_by_id(commission_id, company_id)
        if commission is None:
            raise CommissionNotFoundError()
        if commission.release_status == ReleaseStatus.pending.value:
            raise InvalidCommissionInputError(
                "Commission has nothing released yet and cannot be paid"
            )

        commission.release_status = ReleaseStatus.paid.value
        commission.paid_at = datetime.now(timezone.utc)
        await commission_repo.commit()
        return commission
