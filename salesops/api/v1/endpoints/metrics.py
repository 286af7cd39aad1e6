from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from salesops.repositories.metrics_repository import MetricsRepository
from salesops.schemas.metrics import CompanyMetrics
from salesops.services.metrics import MetricsService
from salesops.api.deps import get_metrics_repo, get_metrics_service

router = APIRouter(prefix="/metrics", tags=["Metrics"])


@router.get("/{company_id}", response_model=CompanyMetrics)
async def company_metrics(
    company_id: UUID,
    start: Optional[datetime] = Query(None, description="Scheduled at or after"),
    end: Optional[datetime] = Query(None, description="Scheduled before"),
    closer_id: Optional[UUID] = Query(None, description="Restrict to one closer"),
    service: MetricsService = Depends(get_metrics_service),
    metrics_repo: MetricsRepository = Depends(get_metrics_repo),
) -> CompanyMetrics:
    """Show rate, close rate and cash KPIs over inclusion-flagged appointments."""
    metrics = await service.get_company_metrics(
        company_id, metrics_repo, start=start, end=end, closer_id=closer_id
    )
    return CompanyMetrics(**metrics)
