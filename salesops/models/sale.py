from sqlalchemy import (
    Boolean,
    Column,
    String,
    Numeric,
    Float,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from salesops.models.base import Base
from sqlalchemy.sql import func


class Sale(Base):
    """Payment received from a processor, optionally linked to one appointment.

    ``external_id`` is the processor's payment id and makes ingestion
    idempotent.  ``matched_by`` / ``match_confidence`` record how the
    appointment link was established.
    """

    __tablename__ = "sales"
    __mapper_args__ = {"eager_defaults": True}

    sale_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    appointment_id = Column(
        UUID(as_uuid=True),
        ForeignKey("appointments.appointment_id", ondelete="SET NULL"),
    )
    contact_id = Column(
        UUID(as_uuid=True),
        ForeignKey("contacts.contact_id", ondelete="SET NULL"),
    )
    closer_id = Column(
        UUID(as_uuid=True),
        ForeignKey("closers.closer_id", ondelete="SET NULL"),
    )
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, server_default="USD")
    processor = Column(String(50), nullable=False)
    external_id = Column(String(255), nullable=False, unique=True)
    customer_email = Column(String(255))
    customer_name = Column(String(200))
    customer_phone = Column(String(30))
    paid_at = Column(DateTime(timezone=True), server_default=func.now())
    matched_by = Column(String(100))
    match_confidence = Column(Float)
    manually_matched = Column(Boolean, nullable=False, server_default="false")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    appointment = relationship("Appointment", back_populates="sales")

    __table_args__ = (
        Index("ix_sales_company_appointment", "company_id", "appointment_id"),
        CheckConstraint("amount > 0", name="ck_sale_amount_positive"),
        CheckConstraint(
            "match_confidence IS NULL OR match_confidence BETWEEN 0 AND 1",
            name="ck_sale_match_confidence",
        ),
    )
