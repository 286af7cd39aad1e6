from uuid import UUID

from fastapi import APIRouter, Depends

from salesops.repositories.commission_repository import CommissionRepository
from salesops.schemas.commission import (
    CommissionCalculateRequest,
    CommissionCalculateResponse,
    CommissionOut,
    MarkPaidRequest,
)
from salesops.services.commission import (
    CommissionService,
    calculate_commission,
    resolve_release_status,
    validate_commission_inputs,
)
from salesops.api.deps import get_commission_repo, get_commission_service

router = APIRouter(prefix="/commissions", tags=["Commissions"])


@router.post("/calculate", response_model=CommissionCalculateResponse)
async def calculate(
    request_body: CommissionCalculateRequest,
) -> CommissionCalculateResponse:
    """Preview the commission split for a sale without persisting anything."""
    validate_commission_inputs(request_body.sale_amount, request_body.commission_rate)
    breakdown = calculate_commission(
        request_body.sale_amount,
        request_body.commission_rate,
        request_body.payment_amount,
    )
    return CommissionCalculateResponse(
        total_commission=breakdown.total_commission,
        released_commission=breakdown.released_commission,
        release_status=resolve_release_status(
            breakdown.total_commission, breakdown.released_commission
        ),
    )


@router.post("/{commission_id}/paid", response_model=CommissionOut)
async def mark_commission_paid(
    commission_id: UUID,
    request_body: MarkPaidRequest,
    service: CommissionService = Depends(get_commission_service),
    commission_repo: CommissionRepository = Depends(get_commission_repo),
) -> CommissionOut:
    commission = await service.mark_paid(
        commission_id, request_body.company_id, commission_repo
    )
    return CommissionOut.model_validate(commission)
