from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from salesops.core.config import settings
from salesops.core.rate_limit import limiter
from salesops.repositories.appointment_repository import AppointmentRepository
from salesops.repositories.closer_repository import CloserRepository
from salesops.repositories.commission_repository import CommissionRepository
from salesops.repositories.contact_repository import ContactRepository
from salesops.repositories.sale_repository import SaleRepository
from salesops.repositories.unmatched_payment_repository import (
    UnmatchedPaymentRepository,
)
from salesops.schemas.payment import (
    IncomingPayment,
    ManualMatchRequest,
    MatchResult,
    PaymentIngestResponse,
    PaymentMatchRequest,
    UnmatchedPaymentOut,
)
from salesops.services.payment_ingestion import PaymentIngestionService
from salesops.services.payment_matcher import PaymentMatcher
from salesops.api.deps import (
    get_appointment_repo,
    get_closer_repo,
    get_commission_repo,
    get_contact_repo,
    get_payment_ingestion_service,
    get_payment_matcher,
    get_sale_repo,
    get_unmatched_repo,
    verify_webhook_secret,
)

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "/webhook",
    response_model=PaymentIngestResponse,
    dependencies=[Depends(verify_webhook_secret)],
)
@limiter.limit(settings.PAYMENT_WEBHOOK_RATE_LIMIT)
async def payment_webhook(
    request: Request,
    request_body: IncomingPayment,
    service: PaymentIngestionService = Depends(get_payment_ingestion_service),
    appointment_repo: AppointmentRepository = Depends(get_appointment_repo),
    contact_repo: ContactRepository = Depends(get_contact_repo),
    closer_repo: CloserRepository = Depends(get_closer_repo),
    sale_repo: SaleRepository = Depends(get_sale_repo),
    commission_repo: CommissionRepository = Depends(get_commission_repo),
    unmatched_repo: UnmatchedPaymentRepository = Depends(get_unmatched_repo),
) -> PaymentIngestResponse:
    """Ingest a payment forwarded by a processor integration.

    Redelivery of the same ``payment_id`` is answered with
    ``status="duplicate"`` and changes nothing.
    """
    result = await service.ingest_payment(
        request_body,
        appointment_repo=appointment_repo,
        contact_repo=contact_repo,
        closer_repo=closer_repo,
        sale_repo=sale_repo,
        commission_repo=commission_repo,
        unmatched_repo=unmatched_repo,
    )
    return PaymentIngestResponse(**result)


@router.post("/match", response_model=MatchResult)
async def match_payment(
    request_body: PaymentMatchRequest,
    matcher: PaymentMatcher = Depends(get_payment_matcher),
    appointment_repo: AppointmentRepository = Depends(get_appointment_repo),
    contact_repo: ContactRepository = Depends(get_contact_repo),
) -> MatchResult:
    """Dry run: report which appointment a payment would be matched to."""
    return await matcher.find_appointment_for_payment(
        request_body.company_id,
        request_body.payment,
        appointment_repo,
        contact_repo,
    )


@router.get("/unmatched", response_model=List[UnmatchedPaymentOut])
async def list_unmatched_payments(
    company_id: UUID = Query(..., description="Tenant to list the review queue of"),
    unmatched_repo: UnmatchedPaymentRepository = Depends(get_unmatched_repo),
) -> List[UnmatchedPaymentOut]:
    rows = await unmatched_repo.list_pending(company_id)
    return [UnmatchedPaymentOut(**row) for row in rows]


@router.post(
    "/unmatched/{unmatched_payment_id}/match", response_model=PaymentIngestResponse
)
async def match_unmatched_payment(
    unmatched_payment_id: UUID,
    request_body: ManualMatchRequest,
    service: PaymentIngestionService = Depends(get_payment_ingestion_service),
    appointment_repo: AppointmentRepository = Depends(get_appointment_repo),
    closer_repo: CloserRepository = Depends(get_closer_repo),
    sale_repo: SaleRepository = Depends(get_sale_repo),
    commission_repo: CommissionRepository = Depends(get_commission_repo),
    unmatched_repo: UnmatchedPaymentRepository = Depends(get_unmatched_repo),
) -> PaymentIngestResponse:
    """Resolve a queued payment to the appointment picked by a reviewer."""
    result = await service.match_unmatched_payment(
        unmatched_payment_id,
        request_body.appointment_id,
        request_body.company_id,
        appointment_repo=appointment_repo,
        closer_repo=closer_repo,
        sale_repo=sale_repo,
        commission_repo=commission_repo,
        unmatched_repo=unmatched_repo,
    )
    return PaymentIngestResponse(**result)
