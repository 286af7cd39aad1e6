import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from salesops.core.cache import CacheService
from salesops.core.config import settings
from salesops.repositories.metrics_repository import MetricsRepository

logger = logging.getLogger(__name__)

# Redis key prefix for per-company metric snapshots
_METRICS_KEY_PREFIX = "metrics"


def metrics_cache_prefix(company_id: Optional[UUID] = None) -> str:
    """Key prefix covering every cached metric variant of *company_id*.

    Without a company the prefix covers every tenant.
    """
    if company_id is None:
        return f"{_METRICS_KEY_PREFIX}:"
    return f"{_METRICS_KEY_PREFIX}:{company_id}:"


def _rate(numerator: int, denominator: int) -> Optional[float]:
    if not denominator:
        return None
    return round(numerator * 100.0 / denominator, 2)


class MetricsService:
    """Builds dashboard KPIs from inclusion-flagged appointments with Redis caching.

    Show rate is shows over countable appointments, close rate is signed
    deals over shows.  Entries are invalidated per company whenever the
    reconciliation driver or payment ingestion touches that company.
    """

    def __init__(self, cache: Optional[CacheService] = None) -> None:
        self._cache: CacheService = cache or CacheService()

    async def get_company_metrics(
        self,
        company_id: UUID,
        metrics_repo: MetricsRepository,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        closer_id: Optional[UUID] = None,
    ) -> Dict[str, Any]:
        cache_key = (
            f"{metrics_cache_prefix(company_id)}"
            f"{start.isoformat() if start else '*'}:"
            f"{end.isoformat() if end else '*'}:"
            f"{closer_id or '*'}"
        )
        cached = await self._cache.get_json(cache_key)
        if cached is not None:
            return cached

        counts = await metrics_repo.get_appointment_counts(
            company_id, start=start, end=end, closer_id=closer_id
        )
        commissions = await metrics_repo.get_commission_totals(
            company_id, closer_id=closer_id
        )

        metrics = {
            "first_calls": counts["first_calls"],
            "countable_appointments": counts["countable_appointments"],
            "shows": counts["shows"],
            "no_shows": counts["no_shows"],
            "signed": counts["signed"],
            "cancellations": counts["cancellations"],
            "show_rate": _rate(counts["shows"], counts["countable_appointments"]),
            "close_rate": _rate(counts["signed"], counts["shows"]),
            "cash_collected": Decimal(counts["cash_collected"]),
            "total_commission": commissions["total_commission"],
            "released_commission": commissions["released_commission"],
        }

        await self._cache.set_json(cache_key, metrics, ttl=settings.REDIS_CACHE_TTL)
        return metrics

    async def invalidate(self, company_id: Optional[UUID] = None) -> None:
        """Drop cached metrics of one company (or of every company)."""
        removed = await self._cache.delete_prefix(metrics_cache_prefix(company_id))
        if removed:
            logger.debug("Invalidated %d cached metric entries", removed)
