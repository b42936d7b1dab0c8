"""Create courts, customers, pricing, promo and reservation tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

JSONB_TYPE = postgresql.JSONB().with_variant(sa.JSON(), "sqlite")

court_status = sa.Enum("ACTIVE", "INACTIVE", "MAINTENANCE", name="courtstatus")
day_bucket = sa.Enum("SUN_WED", "THU", "FRI", "SAT", name="daybucket")
time_bucket = sa.Enum("DAY", "NIGHT", name="timebucket")
discount_type = sa.Enum("PERCENTAGE", "FIXED", name="discounttype")
reservation_status = sa.Enum(
    "PENDING",
    "CONFIRMED",
    "COMPLETED",
    "CANCELLED",
    "NO_SHOW",
    "BLOCKED",
    name="reservationstatus",
)
payment_status = sa.Enum("PENDING", "PARTIAL", "PAID", "REFUNDED", name="paymentstatus")
created_by = sa.Enum("CUSTOMER", "ADMIN", name="createdby")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "courts",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False, unique=True),
        sa.Column("description", sa.String(1024), nullable=False, server_default=""),
        sa.Column("status", court_status, nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "court_day_locks",
        sa.Column(
            "court_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("courts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("booking_date", sa.Date(), primary_key=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("email", sa.String(320)),
        sa.Column("total_bookings", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_customers_phone", "customers", ["phone"])

    op.create_table(
        "pricing_rules",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("day_bucket", day_bucket, nullable=False),
        sa.Column("time_bucket", time_bucket, nullable=False),
        sa.Column("price_per_hour", sa.Numeric(10, 2), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("day_bucket", "time_bucket", name="uq_pricing_rule_buckets"),
    )
    op.create_table(
        "promo_codes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(64), nullable=False, unique=True),
        sa.Column("discount_type", discount_type, nullable=False),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("max_total_uses", sa.Integer()),
        sa.Column("redemption_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "promo_code_redemptions",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "promo_code_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("promo_codes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "customer_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("customers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "promo_code_id", "customer_id", name="uq_promo_redemption_customer"
        ),
    )
    op.create_index(
        "ix_promo_code_redemptions_customer_id",
        "promo_code_redemptions",
        ["customer_id"],
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "court_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("courts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "customer_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("customers.id", ondelete="SET NULL"),
        ),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("start_minute", sa.Integer(), nullable=False),
        sa.Column("end_minute", sa.Integer(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("status", reservation_status, nullable=False),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("base_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("final_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("amount_paid", sa.Numeric(10, 2), nullable=False),
        sa.Column("pricing_breakdown", JSONB_TYPE, nullable=False),
        sa.Column(
            "promo_code_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("promo_codes.id", ondelete="SET NULL"),
        ),
        sa.Column("payment_reference", sa.String(128), unique=True),
        sa.Column("payment_method", sa.String(64)),
        sa.Column("notes", sa.String(2048)),
        sa.Column("created_by", created_by, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_reservations_booking_date", "reservations", ["booking_date"])
    op.create_index("ix_reservations_customer_id", "reservations", ["customer_id"])
    op.create_index(
        "ix_reservations_court_date_status",
        "reservations",
        ["court_id", "booking_date", "status"],
    )


def downgrade() -> None:
    op.drop_index("ix_reservations_court_date_status", table_name="reservations")
    op.drop_index("ix_reservations_customer_id", table_name="reservations")
    op.drop_index("ix_reservations_booking_date", table_name="reservations")
    op.drop_table("reservations")
    op.drop_index(
        "ix_promo_code_redemptions_customer_id", table_name="promo_code_redemptions"
    )
    op.drop_table("promo_code_redemptions")
    op.drop_table("promo_codes")
    op.drop_table("pricing_rules")
    op.drop_index("ix_customers_phone", table_name="customers")
    op.drop_table("customers")
    op.drop_table("court_day_locks")
    op.drop_table("courts")

    bind = op.get_bind()
    for enum in (
        created_by,
        payment_status,
        reservation_status,
        discount_type,
        time_bucket,
        day_bucket,
        court_status,
    ):
        enum.drop(bind, checkfirst=True)
