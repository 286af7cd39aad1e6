import logging
from typing import Optional
from uuid import UUID

from salesops.core.constants import OUTCOME_STATUS_MAP
from salesops.core.exceptions import (
    AppointmentNotFoundError,
    ContactNotFoundError,
    InvalidAppointmentDataError,
)
from salesops.models.appointment import Appointment
from salesops.repositories.appointment_repository import AppointmentRepository
from salesops.repositories.closer_repository import CloserRepository
from salesops.repositories.commission_repository import CommissionRepository
from salesops.repositories.contact_repository import ContactRepository
from salesops.repositories.sale_repository import SaleRepository
from salesops.repositories.unmatched_payment_repository import (
    UnmatchedPaymentRepository,
)
from salesops.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentOutcome,
    AppointmentReschedule,
)
from salesops.schemas.common import AppointmentStatus
from salesops.services.inclusion_reconciliation import InclusionReconciler
from salesops.services.payment_ingestion import PaymentIngestionService

logger = logging.getLogger(__name__)


class AppointmentService:
    """Applies appointment lifecycle events and keeps sibling flags current.

    Every mutation is followed by a recalculation of the whole contact,
    then a single commit.
    """

    def __init__(
        self,
        reconciler: Optional[InclusionReconciler] = None,
        ingestion: Optional[PaymentIngestionService] = None,
    ) -> None:
        self._reconciler = reconciler or InclusionReconciler()
        self._ingestion = ingestion or PaymentIngestionService()

    async def _get_appointment(
        self,
        appointment_id: UUID,
        company_id: UUID,
        appointment_repo: AppointmentRepository,
    ) -> Appointment:
        appointment = await appointment_repo.get_by_id(appointment_id, company_id)
        if appointment is None:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    async def _reconcile_and_commit(
        self, appointment: Appointment, appointment_repo: AppointmentRepository
    ) -> Appointment:
        if appointment.contact_id is not None:
            await self._reconciler.recalculate_contact_inclusion_flags(
                appointment.contact_id, appointment.company_id, appointment_repo
            )
        await appointment_repo.commit()
        await self._reconciler.invalidate_metrics(appointment.company_id)
        return appointment

    async def create_appointment(
        self,
        data: AppointmentCreate,
        appointment_repo: AppointmentRepository,
        contact_repo: ContactRepository,
    ) -> Appointment:
        contact = await contact_repo.get_by_id(data.contact_id, data.company_id)
        if contact is None:
            raise ContactNotFoundError(f"Contact {data.contact_id} not found")

        appointment = await appointment_repo.create(
            company_id=data.company_id,
            contact_id=data.contact_id,
            closer_id=data.closer_id,
            scheduled_at=data.scheduled_at,
            status=data.status.value,
            outcome=data.outcome,
        )
        logger.info(
            "Appointment %s created for contact %s",
            appointment.appointment_id,
            data.contact_id,
        )
        return await self._reconcile_and_commit(appointment, appointment_repo)

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentReschedule,
        appointment_repo: AppointmentRepository,
    ) -> Appointment:
        appointment = await self._get_appointment(
            appointment_id, data.company_id, appointment_repo
        )
        appointment.scheduled_at = data.scheduled_at
        appointment.status = AppointmentStatus.scheduled.value
        logger.info(
            "Appointment %s rescheduled to %s", appointment_id, data.scheduled_at
        )
        return await self._reconcile_and_commit(appointment, appointment_repo)

    async def cancel_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentCancel,
        appointment_repo: AppointmentRepository,
    ) -> Appointment:
        appointment = await self._get_appointment(
            appointment_id, data.company_id, appointment_repo
        )
        appointment.status = AppointmentStatus.cancelled.value
        logger.info(
            "Appointment %s cancelled%s",
            appointment_id,
            f": {data.reason}" if data.reason else "",
        )
        return await self._reconcile_and_commit(appointment, appointment_repo)

    async def record_outcome(
        self,
        appointment_id: UUID,
        data: AppointmentOutcome,
        appointment_repo: AppointmentRepository,
        contact_repo: ContactRepository,
        closer_repo: CloserRepository,
        sale_repo: SaleRepository,
        commission_repo: CommissionRepository,
        unmatched_repo: UnmatchedPaymentRepository,
    ) -> Appointment:
        """Apply a post-call note.

        Known outcomes move the status along; free-text outcomes are
        stored as-is.  A signed deal also tries to resolve a payment that
        arrived before the note.
        """
        outcome = data.outcome.strip()
        if not outcome:
            raise InvalidAppointmentDataError("Outcome must not be blank")

        appointment = await self._get_appointment(
            appointment_id, data.company_id, appointment_repo
        )
        appointment.outcome = outcome
        status = OUTCOME_STATUS_MAP.get(outcome.lower())
        if status is not None:
            appointment.status = status
        if data.cash_collected is not None:
            appointment.cash_collected = data.cash_collected
        if data.total_price is not None:
            appointment.total_price = data.total_price
        logger.info("Outcome %r recorded for appointment %s", outcome, appointment_id)

        if status == AppointmentStatus.signed.value and appointment.contact_id:
            contact = await contact_repo.get_by_id(
                appointment.contact_id, appointment.company_id
            )
            await self._ingestion.match_pending_payment_for_appointment(
                appointment,
                contact.email if contact else None,
                closer_repo,
                sale_repo,
                commission_repo,
                unmatched_repo,
            )

        return await self._reconcile_and_commit(appointment, appointment_repo)
