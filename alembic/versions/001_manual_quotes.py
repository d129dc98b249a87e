"""Add manual quote tables (quotes, days, expenses).

Revision ID: 001_manual_quotes
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "001_manual_quotes"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
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
        "manual_quotes",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Uuid(as_uuid=True), nullable=False),
        # Identity
        sa.Column("quote_name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(20), nullable=False, server_default="B2C"),
        # Season / validity
        sa.Column("season_name", sa.String(100), nullable=True),
        sa.Column("valid_from", sa.Date, nullable=True),
        sa.Column("valid_to", sa.Date, nullable=True),
        # Trip dates
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("tour_type", sa.String(20), nullable=False),
        # Pricing parameters
        sa.Column("pax", sa.Integer, nullable=False),
        sa.Column("markup", sa.DECIMAL(5, 2), nullable=False, server_default="0"),
        sa.Column("tax", sa.DECIMAL(5, 2), nullable=False, server_default="0"),
        sa.Column("transport_pricing_mode", sa.String(20), nullable=False, server_default="TOTAL"),
        # Cached pricing snapshot
        sa.Column("pricing_table_json", sa.JSON, nullable=True),
        sa.Column("pricing_version", sa.Integer, nullable=True),
        sa.Column("pricing_calculated_at", sa.DateTime(timezone=True), nullable=True),
        # Optimistic locking / soft delete
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("pax >= 1", name="ck_manual_quotes_pax"),
        sa.CheckConstraint("start_date < end_date", name="ck_manual_quotes_dates"),
    )
    op.create_index("ix_manual_quotes_tenant_id", "manual_quotes", ["tenant_id"])
    op.create_index("ix_manual_quotes_quote_name", "manual_quotes", ["quote_name"])

    op.create_table(
        "manual_quote_days",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column(
            "quote_id",
            sa.BigInteger,
            sa.ForeignKey("manual_quotes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day_number", sa.Integer, nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_manual_quote_days_tenant_id", "manual_quote_days", ["tenant_id"])
    op.create_index("ix_manual_quote_days_quote_id", "manual_quote_days", ["quote_id"])

    op.create_table(
        "manual_quote_expenses",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column(
            "day_id",
            sa.BigInteger,
            sa.ForeignKey("manual_quote_days.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("hotel_category", sa.String(50), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("price", sa.DECIMAL(12, 2), nullable=False),
        # Informational amounts (not priced)
        sa.Column("single_supplement", sa.DECIMAL(12, 2), nullable=True),
        sa.Column("child_0_to_2", sa.DECIMAL(12, 2), nullable=True),
        sa.Column("child_3_to_5", sa.DECIMAL(12, 2), nullable=True),
        sa.Column("child_6_to_11", sa.DECIMAL(12, 2), nullable=True),
        sa.Column("vehicle_count", sa.Integer, nullable=True),
        sa.Column("price_per_vehicle", sa.DECIMAL(12, 2), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="ck_manual_quote_expenses_price"),
    )
    op.create_index("ix_manual_quote_expenses_tenant_id", "manual_quote_expenses", ["tenant_id"])
    op.create_index("ix_manual_quote_expenses_day_id", "manual_quote_expenses", ["day_id"])


def downgrade() -> None:
    op.drop_index("ix_manual_quote_expenses_day_id", table_name="manual_quote_expenses")
    op.drop_index("ix_manual_quote_expenses_tenant_id", table_name="manual_quote_expenses")
    op.drop_table("manual_quote_expenses")
    op.drop_index("ix_manual_quote_days_quote_id", table_name="manual_quote_days")
    op.drop_index("ix_manual_quote_days_tenant_id", table_name="manual_quote_days")
    op.drop_table("manual_quote_days")
    op.drop_index("ix_manual_quotes_quote_name", table_name="manual_quotes")
    op.drop_index("ix_manual_quotes_tenant_id", table_name="manual_quotes")
    op.drop_table("manual_quotes")
