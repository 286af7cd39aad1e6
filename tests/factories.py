"""Lightweight stand-ins for ORM rows used across the test suite."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional
from uuid import UUID, uuid4

BASE_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_appointment(
    *,
    day: Optional[int] = 1,
    status: Optional[str] = "scheduled",
    outcome: Optional[str] = None,
    contact_id: Optional[UUID] = None,
    company_id: Optional[UUID] = None,
    appointment_id: Optional[UUID] = None,
    created_offset: int = 0,
    closer_id: Optional[UUID] = None,
    inclusion_flag: Optional[int] = None,
    cash_collected=None,
    total_price=None,
):
    """Appointment row.

    *day* is the number of days after ``BASE_TIME`` the call is
    scheduled; ``None`` leaves ``scheduled_at`` empty.
    """
    return SimpleNamespace(
        appointment_id=appointment_id or uuid4(),
        company_id=company_id or uuid4(),
        contact_id=contact_id,
        closer_id=closer_id,
        scheduled_at=None if day is None else BASE_TIME + timedelta(days=day),
        created_at=BASE_TIME + timedelta(seconds=created_offset),
        status=status,
        outcome=outcome,
        inclusion_flag=inclusion_flag,
        cash_collected=None if cash_collected is None else Decimal(str(cash_collected)),
        total_price=None if total_price is None else Decimal(str(total_price)),
    )


def make_closer(*, custom_rate=None, role_rate=None, closer_id=None):
    role = None
    if role_rate is not None:
        role = SimpleNamespace(default_rate=Decimal(str(role_rate)))
    return SimpleNamespace(
        closer_id=closer_id or uuid4(),
        custom_commission_rate=(
            None if custom_rate is None else Decimal(str(custom_rate))
        ),
        commission_role=role,
    )


def make_contact(*, name="Jane Doe", email="jane@example.com", phone=None):
    return SimpleNamespace(contact_id=uuid4(), name=name, email=email, phone=phone)
