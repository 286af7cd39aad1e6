"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _company_fk() -> sa.Column:
    return sa.Column(
        "company_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=False,
    )


def _timestamps(updated: bool = True) -> list:
    columns = [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        )
    ]
    if updated:
        columns.append(
            sa.Column(
                "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
            )
        )
    return columns


def upgrade() -> None:
    # gen_random_uuid() is built in from PostgreSQL 13; pgcrypto covers older servers
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "companies",
        _uuid_pk("company_id"),
        sa.Column("name", sa.String(200), nullable=False),
        *_timestamps(updated=False),
    )

    op.create_table(
        "commission_roles",
        _uuid_pk("role_id"),
        _company_fk(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("default_rate", sa.Numeric(5, 4), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("company_id", "name", name="uq_commission_role_name"),
        sa.CheckConstraint(
            "default_rate BETWEEN 0 AND 1", name="ck_commission_role_rate"
        ),
    )

    op.create_table(
        "closers",
        _uuid_pk("closer_id"),
        _company_fk(),
        sa.Column(
            "commission_role_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("commission_roles.role_id", ondelete="SET NULL"),
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("custom_commission_rate", sa.Numeric(5, 4)),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "email", name="uq_closer_email"),
        sa.CheckConstraint(
            "custom_commission_rate IS NULL OR custom_commission_rate BETWEEN 0 AND 1",
            name="ck_closer_commission_rate",
        ),
    )

    op.create_table(
        "contacts",
        _uuid_pk("contact_id"),
        _company_fk(),
        sa.Column("name", sa.String(200)),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(30)),
        *_timestamps(),
    )
    op.create_index("ix_contacts_company_email", "contacts", ["company_id", "email"])
    op.create_index("ix_contacts_company_phone", "contacts", ["company_id", "phone"])

    op.create_table(
        "appointments",
        _uuid_pk("appointment_id"),
        _company_fk(),
        sa.Column(
            "contact_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("contacts.contact_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "closer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("closers.closer_id", ondelete="SET NULL"),
        ),
        sa.Column("scheduled_at", sa.DateTime(timezone=True)),
        sa.Column("status", sa.String(30), server_default="scheduled"),
        sa.Column("outcome", sa.String(50)),
        sa.Column("inclusion_flag", sa.Integer()),
        sa.Column("cash_collected", sa.Numeric(15, 2)),
        sa.Column("total_price", sa.Numeric(15, 2)),
        *_timestamps(),
        sa.CheckConstraint(
            "status IS NULL OR status IN ('scheduled', 'showed', 'no_show', "
            "'signed', 'contract_sent', 'cancelled', 'rescheduled')",
            name="ck_appointment_status",
        ),
        sa.CheckConstraint(
            "inclusion_flag IS NULL OR inclusion_flag >= 0",
            name="ck_appointment_inclusion_flag",
        ),
    )
    # sibling snapshot reads and dashboard filters
    op.create_index(
        "ix_appointments_company_contact_scheduled",
        "appointments",
        ["company_id", "contact_id", "scheduled_at"],
    )
    op.create_index(
        "ix_appointments_company_flag",
        "appointments",
        ["company_id", "inclusion_flag"],
    )

    op.create_table(
        "sales",
        _uuid_pk("sale_id"),
        _company_fk(),
        sa.Column(
            "appointment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("appointments.appointment_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "contact_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("contacts.contact_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "closer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("closers.closer_id", ondelete="SET NULL"),
        ),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("processor", sa.String(50), nullable=False),
        sa.Column("external_id", sa.String(255), nullable=False, unique=True),
        sa.Column("customer_email", sa.String(255)),
        sa.Column("customer_name", sa.String(200)),
        sa.Column("customer_phone", sa.String(30)),
        sa.Column("paid_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("matched_by", sa.String(100)),
        sa.Column("match_confidence", sa.Float()),
        sa.Column(
            "manually_matched", sa.Boolean(), nullable=False, server_default="false"
        ),
        *_timestamps(updated=False),
        sa.CheckConstraint("amount > 0", name="ck_sale_amount_positive"),
        sa.CheckConstraint(
            "match_confidence IS NULL OR match_confidence BETWEEN 0 AND 1",
            name="ck_sale_match_confidence",
        ),
    )
    op.create_index(
        "ix_sales_company_appointment", "sales", ["company_id", "appointment_id"]
    )

    op.create_table(
        "commissions",
        _uuid_pk("commission_id"),
        _company_fk(),
        sa.Column(
            "appointment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("appointments.appointment_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sale_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("sales.sale_id", ondelete="SET NULL"),
        ),
        sa.Column(
            "closer_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("closers.closer_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("total_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column(
            "released_amount", sa.Numeric(15, 2), nullable=False, server_default="0"
        ),
        sa.Column(
            "release_status", sa.String(20), nullable=False, server_default="pending"
        ),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint(
            "appointment_id", "closer_id", name="uq_commission_appointment_closer"
        ),
        sa.CheckConstraint(
            "released_amount <= total_amount", name="ck_commission_released_le_total"
        ),
        sa.CheckConstraint(
            "release_status IN ('pending', 'partial', 'released', 'paid')",
            name="ck_commission_release_status",
        ),
    )

    op.create_table(
        "unmatched_payments",
        _uuid_pk("unmatched_payment_id"),
        _company_fk(),
        sa.Column(
            "sale_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("sales.sale_id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "suggested_matches",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True)),
        *_timestamps(updated=False),
        sa.CheckConstraint(
            "status IN ('pending', 'matched', 'ignored')",
            name="ck_unmatched_payment_status",
        ),
    )
    op.create_index(
        "ix_unmatched_payments_company_status",
        "unmatched_payments",
        ["company_id", "status"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_unmatched_payments_company_status", table_name="unmatched_payments"
    )
    op.drop_table("unmatched_payments")
    op.drop_table("commissions")
    op.drop_index("ix_sales_company_appointment", table_name="sales")
    op.drop_table("sales")
    op.drop_index("ix_appointments_company_flag", table_name="appointments")
    op.drop_index(
        "ix_appointments_company_contact_scheduled", table_name="appointments"
    )
    op.drop_table("appointments")
    op.drop_index("ix_contacts_company_phone", table_name="contacts")
    op.drop_index("ix_contacts_company_email", table_name="contacts")
    op.drop_table("contacts")
    op.drop_table("closers")
    op.drop_table("commission_roles")
    op.drop_table("companies")
