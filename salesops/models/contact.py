from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from salesops.models.base import Base
from sqlalchemy.sql import func


class Contact(Base):
    """CRM prospect.  Groups appointments; has no lifecycle of its own."""

    __tablename__ = "contacts"
    contact_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(200))
    email = Column(String(255))
    phone = Column(String(30))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    company = relationship("Company", back_populates="contacts")
    appointments = relationship("Appointment", back_populates="contact")

    __table_args__ = (
        Index("ix_contacts_company_email", "company_id", "email"),
        Index("ix_contacts_company_phone", "company_id", "phone"),
    )
