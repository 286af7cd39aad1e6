"""Tests for payment webhook ingestion, manual matching and PCN resolution."""

from datetime import timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from salesops.core.exceptions import (
    AppointmentNotFoundError,
    CompanyResolutionError,
    InvalidPaymentDataError,
    PaymentAlreadyMatchedError,
    UnmatchedPaymentNotFoundError,
)
from salesops.schemas.common import MatchMethod
from salesops.schemas.payment import IncomingPayment, MatchCandidate, MatchResult
from salesops.services.payment_ingestion import (
    PaymentIngestionService,
    parse_amount,
    parse_paid_at,
)
from tests.factories import make_appointment


def _repos(*, appointment=None, existing_sale=None):
    appointment_repo = AsyncMock()
    appointment_repo.get_by_id = AsyncMock(return_value=appointment)
    contact_repo = AsyncMock()
    closer_repo = AsyncMock()
    sale_repo = AsyncMock()
    sale_repo.get_by_external_id = AsyncMock(return_value=existing_sale)
    sale_repo.create = AsyncMock(
        side_effect=lambda **kw: SimpleNamespace(sale_id=uuid4(), **kw)
    )
    commission_repo = AsyncMock()
    unmatched_repo = AsyncMock()
    unmatched_repo.create = AsyncMock(
        side_effect=lambda **kw: SimpleNamespace(unmatched_payment_id=uuid4(), **kw)
    )
    return {
        "appointment_repo": appointment_repo,
        "contact_repo": contact_repo,
        "closer_repo": closer_repo,
        "sale_repo": sale_repo,
        "commission_repo": commission_repo,
        "unmatched_repo": unmatched_repo,
    }


def _service(match: MatchResult, metrics_service, commission=None):
    matcher = MagicMock()
    matcher.find_appointment_for_payment = AsyncMock(return_value=match)
    commissions = MagicMock()
    commissions.release_for_appointment = AsyncMock(return_value=commission)
    service = PaymentIngestionService(
        matcher=matcher, commission_service=commissions, metrics=metrics_service
    )
    return service, matcher, commissions


def _payload(company, **overrides):
    data = {
        "processor": "stripe",
        "payment_id": "pi_123",
        "amount": "$1,200.50",
        "customer_email": "  Jane@Example.com ",
        "customer_name": "Jane Doe",
        "customer_phone": "+1 (555) 010-2030",
        "company_id": str(company),
    }
    data.update(overrides)
    return IncomingPayment(**data)


class TestParsing:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("$1,200.50", Decimal("1200.50")),
            (1200, Decimal("1200")),
            (99.9, Decimal("99.9")),
            (" 45 ", Decimal("45")),
        ],
    )
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", True, "1.2.3"])
    def test_parse_amount_unusable(self, raw):
        assert parse_amount(raw) is None

    def test_parse_paid_at_handles_z_suffix(self):
        parsed = parse_paid_at("2026-03-01T10:00:00Z")
        assert parsed.tzinfo is not None
        assert parsed.hour == 10

    def test_parse_paid_at_naive_is_utc(self):
        assert parse_paid_at("2026-03-01T10:00:00").tzinfo == timezone.utc

    def test_parse_paid_at_garbage_defaults_to_now(self):
        assert parse_paid_at("yesterday").tzinfo is not None


class TestIngestPayment:
    @pytest.mark.asyncio
    async def test_confident_match_links_and_releases(
        self, company_id, metrics_service
    ):
        appt = make_appointment(company_id=company_id, contact_id=uuid4())
        commission = SimpleNamespace(commission_id=uuid4())
        match = MatchResult(
            appointment_id=appt.appointment_id,
            confidence=0.9,
            method=MatchMethod.email,
        )
        service, matcher, commissions = _service(match, metrics_service, commission)
        repos = _repos(appointment=appt)

        result = await service.ingest_payment(_payload(company_id), **repos)

        assert result["status"] == "matched"
        assert result["appointment_id"] == appt.appointment_id
        assert result["commission_id"] == commission.commission_id

        created = repos["sale_repo"].create.await_args.kwargs
        assert created["amount"] == Decimal("1200.50")
        assert created["customer_email"] == "jane@example.com"
        assert created["customer_phone"] == "15550102030"
        assert created["currency"] == "USD"

        link = repos["sale_repo"].link_to_appointment.await_args
        assert link.kwargs["matched_by"] == "email"
        assert link.kwargs["manually_matched"] is False
        commissions.release_for_appointment.assert_awaited_once()
        repos["unmatched_repo"].create.assert_not_called()
        repos["sale_repo"].commit.assert_awaited_once()
        metrics_service.invalidate.assert_awaited_once_with(company_id)

        payment = matcher.find_appointment_for_payment.await_args.args[1]
        assert payment.email == "jane@example.com"

    @pytest.mark.asyncio
    async def test_ambiguous_match_is_queued_with_candidates(
        self, company_id, metrics_service
    ):
        candidates = [
            MatchCandidate(appointment_id=uuid4(), reason="name"),
            MatchCandidate(appointment_id=uuid4(), reason="name"),
        ]
        match = MatchResult(
            confidence=0.5, method=MatchMethod.name_amount, candidates=candidates
        )
        service, _, commissions = _service(match, metrics_service)
        repos = _repos()

        result = await service.ingest_payment(_payload(company_id), **repos)

        assert result["status"] == "unmatched"
        queued = repos["unmatched_repo"].create.await_args.kwargs
        assert queued["status"] == "pending"
        assert len(queued["suggested_matches"]) == 2
        repos["sale_repo"].link_to_appointment.assert_not_called()
        commissions.release_for_appointment.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_match_is_queued(self, company_id, metrics_service):
        service, _, _ = _service(MatchResult(), metrics_service)
        repos = _repos()

        result = await service.ingest_payment(_payload(company_id), **repos)

        assert result["status"] == "unmatched"
        assert repos["unmatched_repo"].create.await_args.kwargs[
            "suggested_matches"
        ] == []

    @pytest.mark.asyncio
    async def test_duplicate_delivery_is_a_no_op(self, company_id, metrics_service):
        existing = SimpleNamespace(sale_id=uuid4(), appointment_id=uuid4())
        service, matcher, _ = _service(MatchResult(), metrics_service)
        repos = _repos(existing_sale=existing)

        result = await service.ingest_payment(_payload(company_id), **repos)

        assert result == {
            "status": "duplicate",
            "sale_id": existing.sale_id,
            "appointment_id": existing.appointment_id,
        }
        matcher.find_appointment_for_payment.assert_not_called()
        repos["sale_repo"].create.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_on_insert(self, company_id, metrics_service):
        existing = SimpleNamespace(sale_id=uuid4(), appointment_id=None)
        service, _, _ = _service(MatchResult(), metrics_service)
        repos = _repos()
        repos["sale_repo"].get_by_external_id = AsyncMock(
            side_effect=[None, existing]
        )
        repos["sale_repo"].create = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("unique"))
        )

        result = await service.ingest_payment(_payload(company_id), **repos)

        assert result["status"] == "duplicate"
        assert result["sale_id"] == existing.sale_id
        repos["sale_repo"].rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_company_from_metadata(self, company_id, metrics_service):
        service, matcher, _ = _service(MatchResult(), metrics_service)
        payload = _payload(
            company_id, company_id=None, metadata={"companyId": str(company_id)}
        )

        await service.ingest_payment(payload, **_repos())

        assert matcher.find_appointment_for_payment.await_args.args[0] == company_id

    @pytest.mark.asyncio
    async def test_company_from_hinted_appointment(self, company_id, metrics_service):
        appt = make_appointment(company_id=company_id)
        service, matcher, _ = _service(MatchResult(), metrics_service)
        payload = _payload(
            company_id, company_id=None, appointment_id=str(appt.appointment_id)
        )

        await service.ingest_payment(payload, **_repos(appointment=appt))

        assert matcher.find_appointment_for_payment.await_args.args[0] == company_id

    @pytest.mark.asyncio
    async def test_unknown_company_is_rejected(self, company_id, metrics_service):
        service, _, _ = _service(MatchResult(), metrics_service)
        payload = _payload(company_id, company_id=None)

        with pytest.raises(CompanyResolutionError):
            await service.ingest_payment(payload, **_repos())

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "override",
        [{"processor": " "}, {"payment_id": None}, {"amount": "free"}, {"amount": 0}],
    )
    async def test_invalid_payload_is_rejected(
        self, company_id, metrics_service, override
    ):
        service, _, _ = _service(MatchResult(), metrics_service)

        with pytest.raises(InvalidPaymentDataError):
            await service.ingest_payment(_payload(company_id, **override), **_repos())


def _unmatched(company_id, status="pending"):
    sale = SimpleNamespace(sale_id=uuid4(), appointment_id=None)
    return SimpleNamespace(
        unmatched_payment_id=uuid4(),
        company_id=company_id,
        sale_id=sale.sale_id,
        sale=sale,
        status=status,
        reviewed_at=None,
    )


class TestManualMatch:
    @pytest.mark.asyncio
    async def test_reviewer_match_links_sale(self, company_id, metrics_service):
        appt = make_appointment(company_id=company_id, contact_id=uuid4())
        unmatched = _unmatched(company_id)
        service, _, commissions = _service(MatchResult(), metrics_service)
        repos = _repos(appointment=appt)
        repos["unmatched_repo"].get_by_id = AsyncMock(return_value=unmatched)
        repos.pop("contact_repo")

        result = await service.match_unmatched_payment(
            unmatched.unmatched_payment_id,
            appt.appointment_id,
            company_id,
            **repos,
        )

        assert result["status"] == "matched"
        assert unmatched.status == "matched"
        assert unmatched.reviewed_at is not None
        link = repos["sale_repo"].link_to_appointment.await_args
        assert link.kwargs["matched_by"] == "manual"
        assert link.kwargs["confidence"] == 1.0
        assert link.kwargs["manually_matched"] is True
        commissions.release_for_appointment.assert_awaited_once()
        repos["sale_repo"].commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_already_reviewed_payment(self, company_id, metrics_service):
        service, _, _ = _service(MatchResult(), metrics_service)
        repos = _repos()
        repos["unmatched_repo"].get_by_id = AsyncMock(
            return_value=_unmatched(company_id, status="matched")
        )
        repos.pop("contact_repo")

        with pytest.raises(PaymentAlreadyMatchedError):
            await service.match_unmatched_payment(uuid4(), uuid4(), company_id, **repos)

    @pytest.mark.asyncio
    async def test_missing_unmatched_payment(self, company_id, metrics_service):
        service, _, _ = _service(MatchResult(), metrics_service)
        repos = _repos()
        repos["unmatched_repo"].get_by_id = AsyncMock(return_value=None)
        repos.pop("contact_repo")

        with pytest.raises(UnmatchedPaymentNotFoundError):
            await service.match_unmatched_payment(uuid4(), uuid4(), company_id, **repos)

    @pytest.mark.asyncio
    async def test_missing_appointment(self, company_id, metrics_service):
        service, _, _ = _service(MatchResult(), metrics_service)
        repos = _repos(appointment=None)
        repos["unmatched_repo"].get_by_id = AsyncMock(
            return_value=_unmatched(company_id)
        )
        repos.pop("contact_repo")

        with pytest.raises(AppointmentNotFoundError):
            await service.match_unmatched_payment(uuid4(), uuid4(), company_id, **repos)


class TestPendingPaymentForSignedAppointment:
    @pytest.mark.asyncio
    async def test_queued_payment_is_linked(self, company_id, metrics_service):
        appt = make_appointment(company_id=company_id, contact_id=uuid4())
        unmatched = _unmatched(company_id)
        service, _, commissions = _service(MatchResult(), metrics_service)
        repos = _repos()
        repos["unmatched_repo"].find_pending_by_email = AsyncMock(
            return_value=unmatched
        )

        linked = await service.match_pending_payment_for_appointment(
            appt,
            "jane@example.com",
            repos["closer_repo"],
            repos["sale_repo"],
            repos["commission_repo"],
            repos["unmatched_repo"],
        )

        assert linked is True
        assert unmatched.status == "matched"
        link = repos["sale_repo"].link_to_appointment.await_args
        assert link.kwargs["matched_by"] == "pcn_submission"
        assert link.kwargs["confidence"] == 0.9
        commissions.release_for_appointment.assert_awaited_once()
        repos["sale_repo"].commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_nothing_queued(self, company_id, metrics_service):
        appt = make_appointment(company_id=company_id)
        service, _, _ = _service(MatchResult(), metrics_service)
        repos = _repos()
        repos["unmatched_repo"].find_pending_by_email = AsyncMock(return_value=None)

        linked = await service.match_pending_payment_for_appointment(
            appt,
            "jane@example.com",
            repos["closer_repo"],
            repos["sale_repo"],
            repos["commission_repo"],
            repos["unmatched_repo"],
        )

        assert linked is False
        repos["sale_repo"].link_to_appointment.assert_not_called()

    @pytest.mark.asyncio
    async def test_contact_without_email(self, company_id, metrics_service):
        service, _, _ = _service(MatchResult(), metrics_service)
        repos = _repos()

        linked = await service.match_pending_payment_for_appointment(
            make_appointment(company_id=company_id),
            None,
            repos["closer_repo"],
            repos["sale_repo"],
            repos["commission_repo"],
            repos["unmatched_repo"],
        )

        assert linked is False
        repos["unmatched_repo"].find_pending_by_email.assert_not_called()
