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
from sqlalchemy.orm import relationship
from salesops.models.base import Base
from sqlalchemy.sql import func


class CommissionRole(Base):
    """Named commission tier (e.g. "Senior Closer") with a default rate."""

    __tablename__ = "commission_roles"
    role_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(100), nullable=False)
    default_rate = Column(Numeric(5, 4), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    closers = relationship("Closer", back_populates="commission_role")

    __table_args__ = (
        UniqueConstraint("company_id", "name", name="uq_commission_role_name"),
        CheckConstraint(
            "default_rate BETWEEN 0 AND 1", name="ck_commission_role_rate"
        ),
    )


class Closer(Base):
    """Sales rep who runs appointments and earns commission on signed deals.

    The effective commission rate is ``custom_commission_rate`` when set,
    otherwise the role's ``default_rate``, otherwise the company-wide
    default from settings.
    """

    __tablename__ = "closers"
    closer_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    commission_role_id = Column(
        UUID(as_uuid=True),
        ForeignKey("commission_roles.role_id", ondelete="SET NULL"),
    )
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False)
    custom_commission_rate = Column(Numeric(5, 4))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    company = relationship("Company", back_populates="closers")
    commission_role = relationship(
        "CommissionRole", back_populates="closers", lazy="joined"
    )
    appointments = relationship("Appointment", back_populates="closer")

    __table_args__ = (
        UniqueConstraint("company_id", "email", name="uq_closer_email"),
        CheckConstraint(
            "custom_commission_rate IS NULL OR custom_commission_rate BETWEEN 0 AND 1",
            name="ck_closer_commission_rate",
        ),
    )
