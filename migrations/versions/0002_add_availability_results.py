"""add daily_results and weekly_results tables

Revision ID: 0002
Revises: 0001
Create Date: 2026-09-29

Results are upserted by their unique key; a recomputation replaces the
whole row. policy_version records the shape that produced each row.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "daily_results",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("terminal_sn", sa.String(64), nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("policy_version", sa.Integer(), nullable=False),
        sa.Column("day_ok", sa.Boolean(), nullable=False),
        sa.Column("slot_ok_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("slot_fail_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed_slots", sa.JSON(), nullable=False),
        sa.Column("failed_reasons", sa.JSON(), nullable=False),
        sa.Column(
            "computed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_daily_results_date", "daily_results", ["date"])
    op.create_index("ix_daily_results_terminal_sn", "daily_results", ["terminal_sn"])
    op.create_index("ix_daily_results_policy_id", "daily_results", ["policy_id"])
    op.create_unique_constraint(
        "uq_daily_result_key", "daily_results", ["date", "terminal_sn", "policy_id"]
    )

    op.create_table(
        "weekly_results",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("terminal_sn", sa.String(64), nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("policy_version", sa.Integer(), nullable=False),
        sa.Column("available", sa.Boolean(), nullable=False),
        sa.Column("days_ok", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("days_fail", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("slots_ok_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("slots_fail_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("fail_dates", sa.JSON(), nullable=False),
        sa.Column("week_reasons", sa.JSON(), nullable=False),
        sa.Column(
            "computed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_weekly_results_week_start", "weekly_results", ["week_start"])
    op.create_index("ix_weekly_results_terminal_sn", "weekly_results", ["terminal_sn"])
    op.create_index("ix_weekly_results_policy_id", "weekly_results", ["policy_id"])
    op.create_unique_constraint(
        "uq_weekly_result_key", "weekly_results", ["week_start", "terminal_sn", "policy_id"]
    )


def downgrade() -> None:
    op.drop_constraint("uq_weekly_result_key", "weekly_results", type_="unique")
    op.drop_table("weekly_results")
    op.drop_constraint("uq_daily_result_key", "daily_results", type_="unique")
    op.drop_table("daily_results")
