"""Tests for the cached metrics service and the fail-soft cache wrapper."""

import json
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.dialects import postgresql

from salesops.core.cache import CacheService
from salesops.repositories.appointment_repository import AppointmentRepository
from salesops.services.metrics import MetricsService, metrics_cache_prefix

COUNTS = {
    "first_calls": 4,
    "countable_appointments": 8,
    "shows": 6,
    "no_shows": 2,
    "signed": 3,
    "cancellations": 1,
    "cash_collected": "4500.00",
}
COMMISSIONS = {
    "total_commission": Decimal("900.00"),
    "released_commission": Decimal("450.00"),
}


def _metrics_repo():
    repo = AsyncMock()
    repo.get_appointment_counts = AsyncMock(return_value=COUNTS)
    repo.get_commission_totals = AsyncMock(return_value=COMMISSIONS)
    return repo


class TestCompanyMetrics:
    @pytest.mark.asyncio
    async def test_cache_miss_queries_and_stores(
        self, mock_cache, mock_redis, company_id
    ):
        repo = _metrics_repo()

        metrics = await MetricsService(cache=mock_cache).get_company_metrics(
            company_id, repo
        )

        assert metrics["show_rate"] == 75.0
        assert metrics["close_rate"] == 50.0
        assert metrics["cash_collected"] == Decimal("4500.00")
        assert metrics["cancellations"] == 1
        repo.get_appointment_counts.assert_awaited_once()
        key, ttl, _ = mock_redis.setex.await_args.args
        assert key.startswith(metrics_cache_prefix(company_id))
        assert ttl > 0

    @pytest.mark.asyncio
    async def test_cache_hit_skips_queries(self, mock_cache, mock_redis, company_id):
        mock_redis.get = AsyncMock(return_value=json.dumps({"shows": 9}))
        repo = _metrics_repo()

        metrics = await MetricsService(cache=mock_cache).get_company_metrics(
            company_id, repo
        )

        assert metrics == {"shows": 9}
        repo.get_appointment_counts.assert_not_called()

    @pytest.mark.asyncio
    async def test_rates_without_denominator_are_none(self, company_id):
        repo = _metrics_repo()
        repo.get_appointment_counts = AsyncMock(
            return_value={**COUNTS, "countable_appointments": 0, "shows": 0}
        )

        metrics = await MetricsService().get_company_metrics(company_id, repo)

        assert metrics["show_rate"] is None
        assert metrics["close_rate"] is None

    @pytest.mark.asyncio
    async def test_filters_change_the_cache_key(
        self, mock_cache, mock_redis, company_id
    ):
        service = MetricsService(cache=mock_cache)
        await service.get_company_metrics(company_id, _metrics_repo())
        await service.get_company_metrics(
            company_id, _metrics_repo(), closer_id=uuid4()
        )

        keys = [call.args[0] for call in mock_redis.setex.await_args_list]
        assert len(set(keys)) == 2


class TestInvalidation:
    @pytest.mark.asyncio
    async def test_invalidate_drops_company_prefix(
        self, mock_cache, mock_redis, company_id
    ):
        prefix = metrics_cache_prefix(company_id)
        seen = {}

        async def scan_iter(match):
            seen["match"] = match
            for key in (f"{prefix}a", f"{prefix}b"):
                yield key

        mock_redis.scan_iter = scan_iter

        await MetricsService(cache=mock_cache).invalidate(company_id)

        assert seen["match"] == f"{prefix}*"
        assert mock_redis.delete.await_count == 2

    def test_prefix_without_company_covers_every_tenant(self, company_id):
        assert metrics_cache_prefix(company_id).startswith(metrics_cache_prefix())


class TestCacheService:
    @pytest.mark.asyncio
    async def test_without_redis_everything_is_a_no_op(self):
        cache = CacheService(redis_client=None)

        assert await cache.get_json("k") is None
        await cache.set_json("k", {"a": 1})
        assert await cache.delete_prefix("k") == 0
        assert cache.is_available is False

    @pytest.mark.asyncio
    async def test_redis_errors_are_swallowed(self, mock_redis):
        mock_redis.get = AsyncMock(side_effect=ConnectionError("down"))
        cache = CacheService(redis_client=mock_redis)

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_corrupt_json_is_ignored(self, mock_redis):
        mock_redis.get = AsyncMock(return_value="{not json")

        assert await CacheService(redis_client=mock_redis).get_json("k") is None


class TestAppointmentCountsQuery:
    def test_cancellations_use_the_trimmed_case_insensitive_predicate(self):
        clause = AppointmentRepository.cancelled_clause()

        sql = str(clause.compile(dialect=postgresql.dialect()))

        assert "appointments.status = " in sql
        assert "lower(btrim(appointments.outcome, " in sql
