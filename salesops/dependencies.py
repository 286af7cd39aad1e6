import hmac
import logging
from typing import Optional

from fastapi import Depends, Header
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from salesops.core.config import settings
from salesops.core.database import AsyncSessionLocal, get_db
from salesops.core.exceptions import InvalidWebhookSecretError
from salesops.services.appointment_service import AppointmentService
from salesops.services.commission import CommissionService
from salesops.services.inclusion_reconciliation import InclusionReconciler
from salesops.services.metrics import MetricsService
from salesops.services.payment_ingestion import PaymentIngestionService
from salesops.services.payment_matcher import PaymentMatcher

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Redis client factory
# ---------------------------------------------------------------------------


async def get_redis_client() -> Redis:
    """Get an async Redis client instance using connection pooling."""
    try:
        client = Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        await client.ping()
        return client
    except Exception:
        logger.warning("Redis unavailable – caching disabled for this request")
        return None  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Repository factory functions (one per repository, each gets the shared db)
# ---------------------------------------------------------------------------


async def get_appointment_repo(
    db: AsyncSession = Depends(get_db),
):
    from salesops.repositories.appointment_repository import AppointmentRepository

    return AppointmentRepository(db)


async def get_contact_repo(
    db: AsyncSession = Depends(get_db),
):
    from salesops.repositories.contact_repository import ContactRepository

    return ContactRepository(db)


async def get_closer_repo(
    db: AsyncSession = Depends(get_db),
):
    from salesops.repositories.closer_repository import CloserRepository

    return CloserRepository(db)


async def get_sale_repo(
    db: AsyncSession = Depends(get_db),
):
    from salesops.repositories.sale_repository import SaleRepository

    return SaleRepository(db)


async def get_commission_repo(
    db: AsyncSession = Depends(get_db),
):
    from salesops.repositories.commission_repository import CommissionRepository

    return CommissionRepository(db)


async def get_unmatched_repo(
    db: AsyncSession = Depends(get_db),
):
    from salesops.repositories.unmatched_payment_repository import (
        UnmatchedPaymentRepository,
    )

    return UnmatchedPaymentRepository(db)


async def get_metrics_repo(
    db: AsyncSession = Depends(get_db),
):
    from salesops.repositories.metrics_repository import MetricsRepository

    return MetricsRepository(db)


async def get_session_factory():
    """Session factory for background-style runs that open their own sessions."""
    return AsyncSessionLocal


# ---------------------------------------------------------------------------
# Cache service factory
# ---------------------------------------------------------------------------


async def get_cache_service(
    redis_client: Redis = Depends(get_redis_client),
):
    """Build a :class:`CacheService` backed by the shared Redis client."""
    from salesops.core.cache import CacheService

    return CacheService(redis_client=redis_client)


# ---------------------------------------------------------------------------
# Service factory functions
# ---------------------------------------------------------------------------


async def get_metrics_service(
    cache=Depends(get_cache_service),
) -> MetricsService:
    return MetricsService(cache=cache)


async def get_reconciler(
    metrics: MetricsService = Depends(get_metrics_service),
) -> InclusionReconciler:
    return InclusionReconciler(metrics=metrics)


async def get_payment_matcher() -> PaymentMatcher:
    return PaymentMatcher()


async def get_commission_service() -> CommissionService:
    return CommissionService()


async def get_payment_ingestion_service(
    matcher: PaymentMatcher = Depends(get_payment_matcher),
    commission_service: CommissionService = Depends(get_commission_service),
    metrics: MetricsService = Depends(get_metrics_service),
) -> PaymentIngestionService:
    """Build a :class:`PaymentIngestionService` with injected dependencies."""
    return PaymentIngestionService(
        matcher=matcher,
        commission_service=commission_service,
        metrics=metrics,
    )


async def get_appointment_service(
    reconciler: InclusionReconciler = Depends(get_reconciler),
    ingestion: PaymentIngestionService = Depends(get_payment_ingestion_service),
) -> AppointmentService:
    """Build an :class:`AppointmentService` with injected dependencies."""
    return AppointmentService(reconciler=reconciler, ingestion=ingestion)


# ---------------------------------------------------------------------------
# Webhook authentication
# ---------------------------------------------------------------------------


async def verify_webhook_secret(
    x_webhook_secret: Optional[str] = Header(None),
) -> None:
    """Reject webhook calls whose shared secret does not match.

    No secret configured means the check is disabled.
    """
    secret = settings.PAYMENT_WEBHOOK_SECRET
    if secret and not hmac.compare_digest(x_webhook_secret or "", secret):
        raise InvalidWebhookSecretError()
