from sqlalchemy import (
    Column,
    String,
    Numeric,
    Integer,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from salesops.models.base import Base
from sqlalchemy.sql import func

from salesops.core.constants import APPOINTMENT_STATUS_CHECK_CLAUSE


class Appointment(Base):
    """Sales call booked for a contact, sequenced per (contact, company).

    ``scheduled_at`` is the business ordering key; ``created_at`` only
    breaks ties between cancellations.  ``inclusion_flag`` is derived:
    0 excludes the row from metrics, 1 marks the first countable call,
    N marks the Nth.  ``NULL`` appears on legacy or incomplete rows.
    Cancellation is a status, rows are never deleted.
    """

    __tablename__ = "appointments"
    # Fetch server-side defaults (ids, timestamps) on INSERT/UPDATE
    __mapper_args__ = {"eager_defaults": True}

    appointment_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    contact_id = Column(
        UUID(as_uuid=True),
        ForeignKey("contacts.contact_id", ondelete="SET NULL"),
    )
    closer_id = Column(
        UUID(as_uuid=True),
        ForeignKey("closers.closer_id", ondelete="SET NULL"),
    )
    scheduled_at = Column(DateTime(timezone=True))
    status = Column(String(30), server_default="scheduled")
    outcome = Column(String(50))
    inclusion_flag = Column(Integer)
    cash_collected = Column(Numeric(15, 2))
    total_price = Column(Numeric(15, 2))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    contact = relationship("Contact", back_populates="appointments")
    closer = relationship("Closer", back_populates="appointments")
    sales = relationship("Sale", back_populates="appointment")

    __table_args__ = (
        Index(
            "ix_appointments_company_contact_scheduled",
            "company_id",
            "contact_id",
            "scheduled_at",
        ),
        Index("ix_appointments_company_flag", "company_id", "inclusion_flag"),
        CheckConstraint(APPOINTMENT_STATUS_CHECK_CLAUSE, name="ck_appointment_status"),
        CheckConstraint(
            "inclusion_flag IS NULL OR inclusion_flag >= 0",
            name="ck_appointment_inclusion_flag",
        ),
    )
