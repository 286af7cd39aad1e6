from fastapi import APIRouter

from salesops.api.v1.endpoints import (
    appointments,
    commissions,
    health,
    inclusion_flags,
    metrics,
    payments,
)

router = APIRouter(prefix="/api/v1")

router.include_router(appointments.router)
router.include_router(inclusion_flags.router)
router.include_router(payments.router)
router.include_router(commissions.router)
router.include_router(metrics.router)
router.include_router(health.router)
