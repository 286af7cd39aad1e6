from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from salesops.models.base import Base
from sqlalchemy.sql import func


class Company(Base):
    """Tenant partition.  Every other row belongs to exactly one company."""

    __tablename__ = "companies"
    company_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    contacts = relationship("Contact", back_populates="company")
    closers = relationship("Closer", back_populates="company")
