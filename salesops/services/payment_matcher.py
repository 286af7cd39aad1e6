import logging
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from salesops.core.config import settings
from salesops.core.constants import (
    AMBIGUOUS_MATCH_CONFIDENCE,
    MATCH_CONFIDENCE,
    MIN_NAME_TOKEN_LENGTH,
)
from salesops.repositories.appointment_repository import AppointmentRepository
from salesops.repositories.contact_repository import ContactRepository
from salesops.schemas.common import MatchMethod
from salesops.schemas.payment import MatchCandidate, MatchResult, PaymentData

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Strip everything but digits; ``None`` when nothing is left."""
    if not phone:
        return None
    digits = _NON_DIGITS.sub("", phone)
    return digits or None


def name_tokens(name: Optional[str]) -> List[str]:
    """Lower-cased words of a payer name that are worth searching for.

    Short words are dropped; a name made only of short words falls back
    to its first three characters.
    """
    if not name or not name.strip():
        return []
    cleaned = name.strip().lower()
    tokens = [w for w in cleaned.split() if len(w) >= MIN_NAME_TOKEN_LENGTH]
    return tokens or [cleaned[:MIN_NAME_TOKEN_LENGTH].strip()]


def _matched(
    appointment_id: UUID, method: MatchMethod, candidates: Optional[List] = None
) -> MatchResult:
    return MatchResult(
        appointment_id=appointment_id,
        confidence=MATCH_CONFIDENCE[method.value],
        method=method,
        candidates=candidates or [],
    )


class PaymentMatcher:
    """Priority-ordered resolver from a payment to one appointment.

    Strategies are tried cheapest and most certain first; the first one
    that succeeds wins and later ones are never consulted:

    1. explicit appointment id from payment-link metadata  (1.0)
    2. contact email → latest signed appointment in window (0.9)
    3. contact phone → latest signed appointment in window (0.85)
    4. name tokens + cash collected within tolerance        (0.7)
       several candidates → unresolved, 0.5, candidates attached
    5. nothing                                              (0.0)

    The matcher only reads; linking the sale is the caller's job.
    """

    def __init__(
        self,
        window_days: Optional[int] = None,
        amount_tolerance: Optional[float] = None,
    ) -> None:
        self._window_days = window_days or settings.PAYMENT_MATCH_WINDOW_DAYS
        self._tolerance = Decimal(
            str(
                amount_tolerance
                if amount_tolerance is not None
                else settings.PAYMENT_AMOUNT_TOLERANCE
            )
        )

    async def find_appointment_for_payment(
        self,
        company_id: UUID,
        payment: PaymentData,
        appointment_repo: AppointmentRepository,
        contact_repo: ContactRepository,
        now: Optional[datetime] = None,
    ) -> MatchResult:
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=self._window_days)

        # 1. Explicit linkage
        if payment.appointment_id is not None:
            logger.debug("Trying appointment id %s", payment.appointment_id)
            appointment = await appointment_repo.get_by_id(
                payment.appointment_id, company_id
            )
            if appointment is not None:
                return self._log_match(
                    _matched(appointment.appointment_id, MatchMethod.appointment_id)
                )

        # 2. Email
        if payment.email and payment.email.strip():
            logger.debug("Trying email match")
            contact = await contact_repo.find_by_email(
                company_id, payment.email.strip()
            )
            if contact is not None:
                appointment = await appointment_repo.find_latest_signed_for_contact(
                    contact.contact_id, company_id, since
                )
                if appointment is not None:
                    return self._log_match(
                        _matched(appointment.appointment_id, MatchMethod.email)
                    )

        # 3. Phone
        digits = normalize_phone(payment.phone)
        if digits:
            logger.debug("Trying phone match")
            contact = await contact_repo.find_by_phone(company_id, digits)
            if contact is not None:
                appointment = await appointment_repo.find_latest_signed_for_contact(
                    contact.contact_id, company_id, since
                )
                if appointment is not None:
                    return self._log_match(
                        _matched(appointment.appointment_id, MatchMethod.phone)
                    )

        # 4. Fuzzy name + amount
        if payment.name:
            result = await self._match_by_name_and_amount(
                company_id, payment, since, appointment_repo, contact_repo
            )
            if result is not None:
                return self._log_match(result)

        logger.info("No appointment found for payment %s", payment.external_id)
        return MatchResult()

    async def _match_by_name_and_amount(
        self,
        company_id: UUID,
        payment: PaymentData,
        since: datetime,
        appointment_repo: AppointmentRepository,
        contact_repo: ContactRepository,
    ) -> Optional[MatchResult]:
        tokens = name_tokens(payment.name)
        logger.debug("Trying name+amount match with tokens %s", tokens)
        contacts = await contact_repo.find_by_name_tokens(company_id, tokens)
        if not contacts:
            return None

        names: Dict[UUID, Optional[str]] = {c.contact_id: c.name for c in contacts}
        appointments = await appointment_repo.find_signed_for_contacts(
            list(names), company_id, since
        )

        amount = Decimal(payment.amount)
        margin = amount * self._tolerance
        candidates = [
            MatchCandidate(
                appointment_id=a.appointment_id,
                contact_id=a.contact_id,
                contact_name=names.get(a.contact_id),
                cash_collected=a.cash_collected,
                scheduled_at=a.scheduled_at,
                reason=f"Name matches and cash collected {a.cash_collected} "
                f"is within {self._tolerance:.0%} of {amount}",
            )
            for a in appointments
            if a.cash_collected is not None
            and abs(Decimal(a.cash_collected) - amount) <= margin
        ]

        if not candidates:
            return None
        if len(candidates) == 1:
            return _matched(
                candidates[0].appointment_id, MatchMethod.name_amount, candidates
            )
        # Ambiguity is surfaced for manual review, never guessed
        return MatchResult(
            appointment_id=None,
            confidence=AMBIGUOUS_MATCH_CONFIDENCE,
            method=MatchMethod.name_amount,
            candidates=candidates,
        )

    @staticmethod
    def _log_match(result: MatchResult) -> MatchResult:
        if result.appointment_id is None:
            logger.info(
                "Payment matched %d candidate appointments by %s; manual review needed",
                len(result.candidates),
                result.method.value,
            )
        else:
            logger.info(
                "Payment matched appointment %s by %s (confidence %.2f)",
                result.appointment_id,
                result.method.value,
                result.confidence,
            )
        return result
