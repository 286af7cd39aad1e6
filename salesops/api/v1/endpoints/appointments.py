from uuid import UUID

from fastapi import APIRouter, Depends, Query

from salesops.core.exceptions import AppointmentNotFoundError
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
    AppointmentOut,
    AppointmentOutcome,
    AppointmentReschedule,
    InclusionFlagResponse,
)
from salesops.services.appointment_service import AppointmentService
from salesops.services.inclusion_flag import InclusionFlagCalculator
from salesops.api.deps import (
    get_appointment_repo,
    get_appointment_service,
    get_closer_repo,
    get_commission_repo,
    get_contact_repo,
    get_sale_repo,
    get_unmatched_repo,
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post("", response_model=AppointmentOut, status_code=201)
async def create_appointment(
    request_body: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
    appointment_repo: AppointmentRepository = Depends(get_appointment_repo),
    contact_repo: ContactRepository = Depends(get_contact_repo),
) -> AppointmentOut:
    """Book an appointment and recompute the contact's inclusion flags."""
    appointment = await service.create_appointment(
        request_body, appointment_repo, contact_repo
    )
    return AppointmentOut.model_validate(appointment)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentOut)
async def reschedule_appointment(
    appointment_id: UUID,
    request_body: AppointmentReschedule,
    service: AppointmentService = Depends(get_appointment_service),
    appointment_repo: AppointmentRepository = Depends(get_appointment_repo),
) -> AppointmentOut:
    appointment = await service.reschedule_appointment(
        appointment_id, request_body, appointment_repo
    )
    return AppointmentOut.model_validate(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentOut)
async def cancel_appointment(
    appointment_id: UUID,
    request_body: AppointmentCancel,
    service: AppointmentService = Depends(get_appointment_service),
    appointment_repo: AppointmentRepository = Depends(get_appointment_repo),
) -> AppointmentOut:
    """Cancel an appointment.  The row is kept; only its status changes."""
    appointment = await service.cancel_appointment(
        appointment_id, request_body, appointment_repo
    )
    return AppointmentOut.model_validate(appointment)


@router.post("/{appointment_id}/outcome", response_model=AppointmentOut)
async def record_outcome(
    appointment_id: UUID,
    request_body: AppointmentOutcome,
    service: AppointmentService = Depends(get_appointment_service),
    appointment_repo: AppointmentRepository = Depends(get_appointment_repo),
    contact_repo: ContactRepository = Depends(get_contact_repo),
    closer_repo: CloserRepository = Depends(get_closer_repo),
    sale_repo: SaleRepository = Depends(get_sale_repo),
    commission_repo: CommissionRepository = Depends(get_commission_repo),
    unmatched_repo: UnmatchedPaymentRepository = Depends(get_unmatched_repo),
) -> AppointmentOut:
    """Record a post-call note (showed, no_show, signed, ...)."""
    appointment = await service.record_outcome(
        appointment_id,
        request_body,
        appointment_repo=appointment_repo,
        contact_repo=contact_repo,
        closer_repo=closer_repo,
        sale_repo=sale_repo,
        commission_repo=commission_repo,
        unmatched_repo=unmatched_repo,
    )
    return AppointmentOut.model_validate(appointment)


@router.get("/{appointment_id}/inclusion-flag", response_model=InclusionFlagResponse)
async def get_inclusion_flag(
    appointment_id: UUID,
    company_id: UUID = Query(..., description="Tenant owning the appointment"),
    appointment_repo: AppointmentRepository = Depends(get_appointment_repo),
) -> InclusionFlagResponse:
    """Compute the flag from the current siblings without persisting it."""
    appointment = await appointment_repo.get_by_id(appointment_id, company_id)
    if appointment is None:
        raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
    flag = await InclusionFlagCalculator().calculate_inclusion_flag(
        appointment_id, appointment_repo
    )
    return InclusionFlagResponse(appointment_id=appointment_id, inclusion_flag=flag)
