from sqlalchemy import (
    Column,
    String,
    Numeric,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from salesops.models.base import Base
from sqlalchemy.sql import func


class Commission(Base):
    """Closer's commission on one signed appointment.

    ``total_amount`` is the full entitlement on the deal price;
    ``released_amount`` grows with the cash actually collected and never
    exceeds the total.  One row per (appointment, closer); ``sale_id``
    points at the payment that last changed it.
    """

    __tablename__ = "commissions"
    __mapper_args__ = {"eager_defaults": True}

    commission_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    appointment_id = Column(
        UUID(as_uuid=True),
        ForeignKey("appointments.appointment_id", ondelete="CASCADE"),
        nullable=False,
    )
    sale_id = Column(
        UUID(as_uuid=True),
        ForeignKey("sales.sale_id", ondelete="SET NULL"),
    )
    closer_id = Column(
        UUID(as_uuid=True),
        ForeignKey("closers.closer_id", ondelete="CASCADE"),
        nullable=False,
    )
    rate = Column(Numeric(5, 4), nullable=False)
    total_amount = Column(Numeric(15, 2), nullable=False)
    released_amount = Column(Numeric(15, 2), nullable=False, server_default="0")
    release_status = Column(String(20), nullable=False, server_default="pending")
    paid_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "appointment_id", "closer_id", name="uq_commission_appointment_closer"
        ),
        CheckConstraint(
            "released_amount <= total_amount", name="ck_commission_released_le_total"
        ),
        CheckConstraint(
            "release_status IN ('pending', 'partial', 'released', 'paid')",
            name="ck_commission_release_status",
        ),
    )
