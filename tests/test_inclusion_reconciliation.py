"""Tests for the per-contact and bulk inclusion flag drivers."""

import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from salesops.services.inclusion_reconciliation import InclusionReconciler
from tests.factories import make_appointment

REPO_PATH = "salesops.services.inclusion_reconciliation.AppointmentRepository"


def _session_factory():
    """Callable returning an async context manager, like ``AsyncSessionLocal``."""

    @asynccontextmanager
    async def factory():
        yield MagicMock()

    return factory


def _bulk_repo(ids):
    repo = MagicMock()
    repo.list_ids = AsyncMock(return_value=ids)
    repo.set_inclusion_flag = AsyncMock()
    repo.commit = AsyncMock()
    return repo


class TestRecalculateContact:
    @pytest.mark.asyncio
    async def test_assigns_every_sibling(self, contact_id, company_id, metrics_service):
        appts = [
            make_appointment(
                contact_id=contact_id, company_id=company_id, day=d, status=s
            )
            for d, s in ((1, "cancelled"), (3, "no_show"), (7, "signed"))
        ]
        repo = AsyncMock()
        repo.get_contact_appointments = AsyncMock(return_value=appts)

        reconciler = InclusionReconciler(metrics=metrics_service)
        flags = await reconciler.recalculate_contact_inclusion_flags(
            contact_id, company_id, repo
        )

        assert [a.inclusion_flag for a in appts] == [0, 1, 2]
        assert flags == {a.appointment_id: a.inclusion_flag for a in appts}
        repo.flush.assert_awaited_once()
        repo.commit.assert_not_called()
        metrics_service.invalidate.assert_not_called()

    @pytest.mark.asyncio
    async def test_second_run_changes_nothing(
        self, contact_id, company_id, metrics_service
    ):
        appts = [
            make_appointment(contact_id=contact_id, day=d, status=s)
            for d, s in ((1, "scheduled"), (2, "cancelled"), (5, "showed"))
        ]
        repo = AsyncMock()
        repo.get_contact_appointments = AsyncMock(return_value=appts)
        reconciler = InclusionReconciler(metrics=metrics_service)

        first = await reconciler.recalculate_contact_inclusion_flags(
            contact_id, company_id, repo
        )
        second = await reconciler.recalculate_contact_inclusion_flags(
            contact_id, company_id, repo
        )

        assert first == second

    @pytest.mark.asyncio
    async def test_cancellation_demotes_and_reorders(
        self, contact_id, company_id, metrics_service
    ):
        first = make_appointment(contact_id=contact_id, day=1, inclusion_flag=1)
        second = make_appointment(contact_id=contact_id, day=4, inclusion_flag=2)
        repo = AsyncMock()
        repo.get_contact_appointments = AsyncMock(return_value=[first, second])
        reconciler = InclusionReconciler(metrics=metrics_service)

        first.status = "cancelled"
        await reconciler.recalculate_contact_inclusion_flags(
            contact_id, company_id, repo
        )

        assert first.inclusion_flag == 0
        assert second.inclusion_flag == 1

    @pytest.mark.asyncio
    async def test_contact_without_appointments(
        self, contact_id, company_id, metrics_service
    ):
        repo = AsyncMock()
        repo.get_contact_appointments = AsyncMock(return_value=[])

        flags = await InclusionReconciler(
            metrics=metrics_service
        ).recalculate_contact_inclusion_flags(contact_id, company_id, repo)

        assert flags == {}

    @pytest.mark.asyncio
    async def test_invalidate_metrics_drops_company_cache(
        self, company_id, metrics_service
    ):
        await InclusionReconciler(metrics=metrics_service).invalidate_metrics(
            company_id
        )

        metrics_service.invalidate.assert_awaited_once_with(company_id)


class TestRecalculateAll:
    @pytest.mark.asyncio
    async def test_counts_updated_appointments(self, metrics_service):
        ids = [uuid4() for _ in range(5)]
        repo = _bulk_repo(ids)
        calculator = MagicMock()
        calculator.calculate_inclusion_flag = AsyncMock(return_value=1)

        with patch(REPO_PATH, return_value=repo):
            reconciler = InclusionReconciler(
                calculator=calculator, metrics=metrics_service
            )
            summary = await reconciler.recalculate_all_inclusion_flags(
                _session_factory(), batch_size=2
            )

        assert summary == {"total": 5, "updated": 5, "errors": 0}
        assert repo.set_inclusion_flag.await_count == 5
        assert repo.commit.await_count == 5
        metrics_service.invalidate.assert_awaited_once_with(None)

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, metrics_service):
        ids = [uuid4() for _ in range(4)]
        bad = ids[1]
        repo = _bulk_repo(ids)

        async def calculate(appointment_id, _repo):
            if appointment_id == bad:
                raise RuntimeError("boom")
            return 2

        calculator = MagicMock()
        calculator.calculate_inclusion_flag = AsyncMock(side_effect=calculate)

        with patch(REPO_PATH, return_value=repo):
            summary = await InclusionReconciler(
                calculator=calculator, metrics=metrics_service
            ).recalculate_all_inclusion_flags(_session_factory())

        assert summary == {"total": 4, "updated": 3, "errors": 1}
        written = [c.args[0] for c in repo.set_inclusion_flag.await_args_list]
        assert bad not in written

    @pytest.mark.asyncio
    async def test_scoped_to_company(self, company_id, metrics_service):
        repo = _bulk_repo([])

        with patch(REPO_PATH, return_value=repo):
            summary = await InclusionReconciler(
                metrics=metrics_service
            ).recalculate_all_inclusion_flags(_session_factory(), company_id=company_id)

        assert summary == {"total": 0, "updated": 0, "errors": 0}
        repo.list_ids.assert_awaited_once_with(company_id)
        metrics_service.invalidate.assert_awaited_once_with(company_id)

    @pytest.mark.asyncio
    async def test_listing_failure_propagates(self, metrics_service):
        repo = _bulk_repo([])
        repo.list_ids = AsyncMock(side_effect=RuntimeError("db down"))

        with patch(REPO_PATH, return_value=repo):
            with pytest.raises(RuntimeError):
                await InclusionReconciler(
                    metrics=metrics_service
                ).recalculate_all_inclusion_flags(_session_factory())

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, metrics_service):
        ids = [uuid4() for _ in range(6)]
        repo = _bulk_repo(ids)
        in_flight = 0
        peak = 0

        async def calculate(appointment_id, _repo):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return 1

        calculator = MagicMock()
        calculator.calculate_inclusion_flag = AsyncMock(side_effect=calculate)

        with patch(REPO_PATH, return_value=repo):
            await InclusionReconciler(
                calculator=calculator, metrics=metrics_service
            ).recalculate_all_inclusion_flags(
                _session_factory(), batch_size=6, concurrency=2
            )

        assert peak <= 2
