"""Compliance tables.

Revision ID: 001_compliance
Revises:
Create Date: 2026-10-19

Creates routes, bank_entries, pools and pool_members.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001_compliance"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "routes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("route_id", sa.String(50), nullable=False),
        sa.Column("vessel_type", sa.String(50), nullable=False),
        sa.Column("fuel_type", sa.String(50), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        # gCO2eq/MJ
        sa.Column("ghg_intensity", sa.Numeric(10, 4), nullable=False),
        # tonnes / km / tonnes
        sa.Column("fuel_consumption", sa.Numeric(12, 2), nullable=False),
        sa.Column("distance", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_emissions", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_baseline", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.UniqueConstraint("route_id", "year", name="uq_routes_route_year"),
    )
    op.create_index("ix_routes_route_id", "routes", ["route_id"])
    op.create_index("ix_routes_year", "routes", ["year"])
    op.create_index(
        "uq_routes_baseline_per_year",
        "routes",
        ["year"],
        unique=True,
        postgresql_where=sa.text("is_baseline"),
        sqlite_where=sa.text("is_baseline = 1"),
    )

    op.create_table(
        "bank_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("route_id", sa.String(50), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("amount", sa.Numeric(24, 8), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.ForeignKeyConstraint(
            ["route_id", "year"], ["routes.route_id", "routes.year"],
            name="fk_bank_entries_route",
        ),
        sa.CheckConstraint("kind IN ('banked', 'applied')", name="ck_bank_entries_kind"),
        sa.CheckConstraint("amount >= 0", name="ck_bank_entries_amount"),
    )
    op.create_index("ix_bank_entries_route", "bank_entries", ["route_id", "year"])
    op.create_index("ix_bank_entries_created_at", "bank_entries", ["created_at"])

    op.create_table(
        "pools",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("total_adjusted_cb", sa.Numeric(24, 8), nullable=False),
        sa.Column("is_valid", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_pools_year", "pools", ["year"])

    op.create_table(
        "pool_members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("pool_id", sa.Integer(), sa.ForeignKey("pools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("route_id", sa.String(50), nullable=False),
        sa.Column("cb_before", sa.Numeric(24, 8), nullable=False),
        sa.Column("cb_after", sa.Numeric(24, 8), nullable=False),
        sa.UniqueConstraint("pool_id", "position", name="uq_pool_members_position"),
    )
    op.create_index("ix_pool_members_pool_id", "pool_members", ["pool_id"])


def downgrade() -> None:
    op.drop_index("ix_pool_members_pool_id", table_name="pool_members")
    op.drop_table("pool_members")
    op.drop_index("ix_pools_year", table_name="pools")
    op.drop_table("pools")
    op.drop_index("ix_bank_entries_created_at", table_name="bank_entries")
    op.drop_index("ix_bank_entries_route", table_name="bank_entries")
    op.drop_table("bank_entries")
    op.drop_index("uq_routes_baseline_per_year", table_name="routes")
    op.drop_index("ix_routes_year", table_name="routes")
    op.drop_index("ix_routes_route_id", table_name="routes")
    op.drop_table("routes")
