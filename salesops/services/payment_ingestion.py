import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from salesops.core.config import settings
from salesops.core.exceptions import (
    AppointmentNotFoundError,
    CompanyResolutionError,
    InvalidPaymentDataError,
    PaymentAlreadyMatchedError,
    UnmatchedPaymentNotFoundError,
)
from salesops.models.appointment import Appointment
from salesops.models.sale import Sale
from salesops.repositories.appointment_repository import AppointmentRepository
from salesops.repositories.closer_repository import CloserRepository
from salesops.repositories.commission_repository import CommissionRepository
from salesops.repositories.contact_repository import ContactRepository
from salesops.repositories.sale_repository import SaleRepository
from salesops.repositories.unmatched_payment_repository import (
    UnmatchedPaymentRepository,
)
from salesops.schemas.common import MatchMethod, UnmatchedPaymentStatus
from salesops.schemas.payment import IncomingPayment, PaymentData
from salesops.services.commission import CommissionService
from salesops.services.metrics import MetricsService
from salesops.services.payment_matcher import PaymentMatcher, normalize_phone

logger = logging.getLogger(__name__)

_AMOUNT_JUNK = re.compile(r"[^0-9.\-]")

# Confidence recorded when a post-call note resolves a queued payment
_PCN_MATCH_CONFIDENCE: float = 0.9


def clean_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_amount(value: Any) -> Optional[Decimal]:
    """Parse ``1200``, ``"1200.50"`` or ``"$1,200.50"``; ``None`` if unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        amount = Decimal(str(value))
    else:
        cleaned = _AMOUNT_JUNK.sub("", str(value))
        if not cleaned:
            return None
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            return None
    return amount if amount.is_finite() else None


def parse_paid_at(value: Optional[str]) -> datetime:
    """ISO-8601 timestamp, or now when missing/unparseable."""
    if value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            logger.warning("Unparseable paid_at %r; using current time", value)
    return datetime.now(timezone.utc)


def parse_uuid(value: Any) -> Optional[UUID]:
    text = clean_string(value)
    if text is None:
        return None
    try:
        return UUID(text)
    except ValueError:
        return None


class PaymentIngestionService:
    """Turns processor payments into sales, appointment links and commissions.

    Confident matches are linked and their closer's commission is
    released straight away; everything else (no match, ambiguous
    candidates, low confidence) lands in the unmatched-payment review
    queue together with the matcher's candidates.
    """

    def __init__(
        self,
        matcher: Optional[PaymentMatcher] = None,
        commission_service: Optional[CommissionService] = None,
        metrics: Optional[MetricsService] = None,
        min_confidence: Optional[float] = None,
    ) -> None:
        self._matcher = matcher or PaymentMatcher()
        self._commissions = commission_service or CommissionService()
        self._metrics = metrics or MetricsService()
        self._min_confidence = (
            min_confidence
            if min_confidence is not None
            else settings.PAYMENT_AUTO_MATCH_MIN_CONFIDENCE
        )

    async def _resolve_company(
        self,
        payload: IncomingPayment,
        appointment_hint: Optional[UUID],
        appointment_repo: AppointmentRepository,
    ) -> UUID:
        metadata = payload.metadata or {}
        for candidate in (
            payload.company_id,
            metadata.get("company_id"),
            metadata.get("companyId"),
        ):
            company_id = parse_uuid(candidate)
            if company_id is not None:
                return company_id

        if appointment_hint is not None:
            appointment = await appointment_repo.get_by_id(appointment_hint)
            if appointment is not None:
                return appointment.company_id

        raise CompanyResolutionError()

    async def _link_and_release(
        self,
        sale: Sale,
        appointment: Appointment,
        matched_by: str,
        confidence: float,
        manually_matched: bool,
        closer_repo: CloserRepository,
        sale_repo: SaleRepository,
        commission_repo: CommissionRepository,
    ):
        await sale_repo.link_to_appointment(
            sale,
            appointment.appointment_id,
            matched_by=matched_by,
            confidence=confidence,
            manually_matched=manually_matched,
            contact_id=appointment.contact_id,
            closer_id=appointment.closer_id,
        )
        return await self._commissions.release_for_appointment(
            appointment, sale, closer_repo, sale_repo, commission_repo
        )

    async def ingest_payment(
        self,
        payload: IncomingPayment,
        appointment_repo: AppointmentRepository,
        contact_repo: ContactRepository,
        closer_repo: CloserRepository,
        sale_repo: SaleRepository,
        commission_repo: CommissionRepository,
        unmatched_repo: UnmatchedPaymentRepository,
    ) -> Dict[str, Any]:
        processor = clean_string(payload.processor)
        external_id = clean_string(payload.payment_id)
        amount = parse_amount(payload.amount)
        if not processor or not external_id or amount is None or amount <= 0:
            raise InvalidPaymentDataError(
                "processor, payment_id and a positive amount are required"
            )

        # 1. Idempotency on the processor's payment id
        existing = await sale_repo.get_by_external_id(external_id)
        if existing is not None:
            logger.info("Duplicate payment %s ignored", external_id)
            return {
                "status": "duplicate",
                "sale_id": existing.sale_id,
                "appointment_id": existing.appointment_id,
            }

        email = clean_string(payload.customer_email)
        email = email.lower() if email else None
        appointment_hint = parse_uuid(
            payload.appointment_id or (payload.metadata or {}).get("appointment_id")
        )
        company_id = await self._resolve_company(
            payload, appointment_hint, appointment_repo
        )

        # 2. Match
        payment = PaymentData(
            amount=amount,
            email=email,
            phone=normalize_phone(payload.customer_phone),
            name=clean_string(payload.customer_name),
            processor=processor,
            external_id=external_id,
            appointment_id=appointment_hint,
        )
        match = await self._matcher.find_appointment_for_payment(
            company_id, payment, appointment_repo, contact_repo
        )

        # 3. Persist the sale
        try:
            sale = await sale_repo.create(
                company_id=company_id,
                amount=amount,
                currency=(clean_string(payload.currency) or "USD").upper(),
                processor=processor,
                external_id=external_id,
                customer_email=email,
                customer_name=payment.name,
                customer_phone=payment.phone,
                paid_at=parse_paid_at(payload.paid_at),
                match_confidence=match.confidence,
            )
        except IntegrityError:
            # Concurrent delivery of the same payment won the insert
            await sale_repo.rollback()
            existing = await sale_repo.get_by_external_id(external_id)
            logger.info("Duplicate payment %s detected on insert", external_id)
            return {
                "status": "duplicate",
                "sale_id": existing.sale_id if existing else None,
                "appointment_id": existing.appointment_id if existing else None,
            }

        result: Dict[str, Any] = {"sale_id": sale.sale_id, "match": match}

        # 4. Confident match → link and release commission
        if match.appointment_id is not None and match.confidence >= self._min_confidence:
            appointment = await appointment_repo.get_by_id(
                match.appointment_id, company_id
            )
            commission = await self._link_and_release(
                sale,
                appointment,
                matched_by=match.method.value,
                confidence=match.confidence,
                manually_matched=False,
                closer_repo=closer_repo,
                sale_repo=sale_repo,
                commission_repo=commission_repo,
            )
            result.update(
                status="matched",
                appointment_id=appointment.appointment_id,
                commission_id=commission.commission_id if commission else None,
            )
            logger.info(
                "Payment %s matched to appointment %s",
                external_id,
                appointment.appointment_id,
            )
        else:
            # 5. Everything else waits for a human
            unmatched = await unmatched_repo.create(
                company_id=company_id,
                sale_id=sale.sale_id,
                status=UnmatchedPaymentStatus.pending.value,
                suggested_matches=[
                    c.model_dump(mode="json") for c in match.candidates
                ],
            )
            result.update(
                status="unmatched",
                unmatched_payment_id=unmatched.unmatched_payment_id,
            )
            logger.info(
                "Payment %s queued for review (%d candidates)",
                external_id,
                len(match.candidates),
            )

        await sale_repo.commit()
        await self._metrics.invalidate(company_id)
        return result

    async def match_unmatched_payment(
        self,
        unmatched_payment_id: UUID,
        appointment_id: UUID,
        company_id: UUID,
        appointment_repo: AppointmentRepository,
        closer_repo: CloserRepository,
        sale_repo: SaleRepository,
        commission_repo: CommissionRepository,
        unmatched_repo: UnmatchedPaymentRepository,
    ) -> Dict[str, Any]:
        """Resolve a queued payment to the appointment picked by a reviewer."""
        unmatched = await unmatched_repo.get_by_id(unmatched_payment_id, company_id)
        if unmatched is None:
            raise UnmatchedPaymentNotFoundError()
        if unmatched.status != UnmatchedPaymentStatus.pending.value:
            raise PaymentAlreadyMatchedError()

        appointment = await appointment_repo.get_by_id(appointment_id, company_id)
        if appointment is None:
            raise AppointmentNotFoundError()

        commission = await self._link_and_release(
            unmatched.sale,
            appointment,
            matched_by=MatchMethod.manual.value,
            confidence=1.0,
            manually_matched=True,
            closer_repo=closer_repo,
            sale_repo=sale_repo,
            commission_repo=commission_repo,
        )
        unmatched.status = UnmatchedPaymentStatus.matched.value
        unmatched.reviewed_at = datetime.now(timezone.utc)

        await sale_repo.commit()
        await self._metrics.invalidate(company_id)
        return {
            "status": "matched",
            "sale_id": unmatched.sale_id,
            "appointment_id": appointment.appointment_id,
            "commission_id": commission.commission_id if commission else None,
        }

    async def match_pending_payment_for_appointment(
        self,
        appointment: Appointment,
        contact_email: Optional[str],
        closer_repo: CloserRepository,
        sale_repo: SaleRepository,
        commission_repo: CommissionRepository,
        unmatched_repo: UnmatchedPaymentRepository,
    ) -> bool:
        """Link a queued payment to a freshly signed appointment by email.

        Called after a post-call note records a signed deal: a payment
        that arrived before the note had nothing signed to match against.
        The caller owns the commit.
        """
        if not contact_email:
            return False
        unmatched = await unmatched_repo.find_pending_by_email(
            appointment.company_id, contact_email
        )
        if unmatched is None:
            return False

        await self._link_and_release(
            unmatched.sale,
            appointment,
            matched_by=MatchMethod.pcn_submission.value,
            confidence=_PCN_MATCH_CONFIDENCE,
            manually_matched=False,
            closer_repo=closer_repo,
            sale_repo=sale_repo,
            commission_repo=commission_repo,
        )
        unmatched.status = UnmatchedPaymentStatus.matched.value
        unmatched.reviewed_at = datetime.now(timezone.utc)
        logger.info(
            "Queued payment %s matched to signed appointment %s",
            unmatched.unmatched_payment_id,
            appointment.appointment_id,
        )
        return True
