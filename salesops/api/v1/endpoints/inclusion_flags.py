from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from salesops.repositories.appointment_repository import AppointmentRepository
from salesops.schemas.appointment import (
    BulkRecalculateRequest,
    BulkRecalculationResponse,
    ContactRecalculationResponse,
)
from salesops.services.inclusion_reconciliation import InclusionReconciler
from salesops.api.deps import (
    get_appointment_repo,
    get_reconciler,
    get_session_factory,
)

router = APIRouter(tags=["Inclusion Flags"])


@router.post(
    "/companies/{company_id}/contacts/{contact_id}/inclusion-flags/recalculate",
    response_model=ContactRecalculationResponse,
)
async def recalculate_contact(
    company_id: UUID,
    contact_id: UUID,
    reconciler: InclusionReconciler = Depends(get_reconciler),
    appointment_repo: AppointmentRepository = Depends(get_appointment_repo),
) -> ContactRecalculationResponse:
    flags = await reconciler.recalculate_contact_inclusion_flags(
        contact_id, company_id, appointment_repo
    )
    await appointment_repo.commit()
    await reconciler.invalidate_metrics(company_id)
    return ContactRecalculationResponse(
        contact_id=contact_id,
        flags={str(appointment_id): flag for appointment_id, flag in flags.items()},
    )


@router.post("/inclusion-flags/recalculate", response_model=BulkRecalculationResponse)
async def recalculate_all(
    request_body: Optional[BulkRecalculateRequest] = None,
    reconciler: InclusionReconciler = Depends(get_reconciler),
    session_factory=Depends(get_session_factory),
) -> BulkRecalculationResponse:
    """Backfill every flag, optionally for a single company.

    Runs in the request; use the batch script for large tenants.
    """
    summary = await reconciler.recalculate_all_inclusion_flags(
        session_factory, company_id=request_body.company_id if request_body else None
    )
    return BulkRecalculationResponse(**summary)
