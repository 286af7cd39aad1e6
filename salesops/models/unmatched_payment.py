from sqlalchemy import Column, String, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from salesops.models.base import Base
from sqlalchemy.sql import func


class UnmatchedPayment(Base):
    """Sale that the matcher could not confidently link, queued for review."""

    __tablename__ = "unmatched_payments"
    __mapper_args__ = {"eager_defaults": True}

    unmatched_payment_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    sale_id = Column(
        UUID(as_uuid=True),
        ForeignKey("sales.sale_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    status = Column(String(20), nullable=False, server_default="pending")
    suggested_matches = Column(JSONB, nullable=False, server_default="[]")
    reviewed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    sale = relationship("Sale", lazy="joined")

    __table_args__ = (
        Index("ix_unmatched_payments_company_status", "company_id", "status"),
        CheckConstraint(
            "status IN ('pending', 'matched', 'ignored')",
            name="ck_unmatched_payment_status",
        ),
    )
