# backend/alembic/versions/001_booking_core.py
"""Booking core - booking types, rules, contacts, bookings and intake forms

Revision ID: 001_booking_core
Revises:
Create Date: 2026-10-19 00:00:00.000000

Bookings store their own UTC interval and are never resized when a booking
type's duration changes. On Postgres an exclusion constraint guarantees
that PENDING/CONFIRMED bookings of the same booking type never overlap on
[start_time, end_time); other dialects rely on the service-level row lock
plus the partial unique index on (booking_type_id, start_time).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001_booking_core"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_WHERE = sa.text("status IN ('PENDING', 'CONFIRMED')")


def upgrade() -> None:
    """Create booking core tables."""
    bind = op.get_bind()
    dialect_name = bind.dialect.name if bind is not None else "postgresql"
    is_postgres = dialect_name == "postgresql"
    json_type = JSONB(astext_type=sa.Text()) if is_postgres else sa.JSON()

    print("Creating booking core tables...")

    if is_postgres:
        op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist;")

    op.create_table(
        "booking_types",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("duration_minutes > 0", name="check_booking_type_duration_positive"),
    )
    op.create_index("ix_booking_types_tenant_id", "booking_types", ["tenant_id"])

    op.create_table(
        "availability_rules",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("booking_type_id", sa.String(26), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_minute", sa.Integer(), nullable=False),
        sa.Column("end_minute", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["booking_type_id"], ["booking_types.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_rule_day_of_week"),
        sa.CheckConstraint(
            "start_minute >= 0 AND end_minute <= 1440 AND start_minute < end_minute",
            name="check_rule_window",
        ),
        comment="Weekly open-hour windows, minutes since local midnight (0 = Sunday)",
    )
    op.create_index(
        "ix_availability_rules_type_day", "availability_rules", ["booking_type_id", "day_of_week"]
    )

    op.create_table(
        "contacts",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("first_name", sa.String(120), nullable=False),
        sa.Column("last_name", sa.String(120), nullable=False, server_default=""),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("source", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_contacts_tenant_email"),
        sa.UniqueConstraint("tenant_id", "phone", name="uq_contacts_tenant_phone"),
    )
    op.create_index("ix_contacts_tenant_id", "contacts", ["tenant_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("contact_id", sa.String(26), nullable=False),
        sa.Column("booking_type_id", sa.String(26), nullable=False),
        sa.Column("reference_code", sa.String(16), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("metadata", json_type, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["contact_id"], ["contacts.id"]),
        sa.ForeignKeyConstraint(["booking_type_id"], ["booking_types.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("reference_code", name="uq_bookings_reference_code"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'COMPLETED', 'NO_SHOW', 'CANCELLED')",
            name="ck_bookings_status",
        ),
        sa.CheckConstraint("end_time > start_time", name="check_booking_time_order"),
    )
    op.create_index("ix_bookings_tenant_id", "bookings", ["tenant_id"])
    op.create_index("ix_bookings_contact_id", "bookings", ["contact_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    # Conflict scans and day listings filter by type and start time
    op.create_index("ix_bookings_type_start", "bookings", ["booking_type_id", "start_time"])
    op.create_index(
        "uq_bookings_active_start_per_type",
        "bookings",
        ["booking_type_id", "start_time"],
        unique=True,
        sqlite_where=ACTIVE_WHERE,
        postgresql_where=ACTIVE_WHERE,
    )

    if is_postgres:
        print("Adding overlap exclusion constraint for active bookings...")
        op.execute(
            """
            ALTER TABLE bookings
            ADD CONSTRAINT bookings_no_overlap_per_type
            EXCLUDE USING gist (
                booking_type_id WITH =,
                tstzrange(start_time, end_time, '[)') WITH &&
            )
            WHERE (status IN ('PENDING', 'CONFIRMED'));
            """
        )

    op.create_table(
        "forms",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_forms_tenant_id", "forms", ["tenant_id"])

    op.create_table(
        "form_booking_types",
        sa.Column("form_id", sa.String(26), nullable=False),
        sa.Column("booking_type_id", sa.String(26), nullable=False),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["booking_type_id"], ["booking_types.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("form_id", "booking_type_id"),
    )

    op.create_table(
        "form_submissions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("form_id", sa.String(26), nullable=False),
        sa.Column("booking_id", sa.String(26), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"]),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_form_submissions_booking_id", "form_submissions", ["booking_id"])

    print("Booking core tables created")


def downgrade() -> None:
    """Drop booking core tables."""
    bind = op.get_bind()
    is_postgres = bind is not None and bind.dialect.name == "postgresql"

    print("Dropping booking core tables...")

    op.drop_index("ix_form_submissions_booking_id", table_name="form_submissions")
    op.drop_table("form_submissions")
    op.drop_table("form_booking_types")
    op.drop_index("ix_forms_tenant_id", table_name="forms")
    op.drop_table("forms")

    if is_postgres:
        op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS bookings_no_overlap_per_type;")
    op.drop_index("uq_bookings_active_start_per_type", table_name="bookings")
    op.drop_index("ix_bookings_type_start", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_contact_id", table_name="bookings")
    op.drop_index("ix_bookings_tenant_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_contacts_tenant_id", table_name="contacts")
    op.drop_table("contacts")
    op.drop_index("ix_availability_rules_type_day", table_name="availability_rules")
    op.drop_table("availability_rules")
    op.drop_index("ix_booking_types_tenant_id", table_name="booking_types")
    op.drop_table("booking_types")
