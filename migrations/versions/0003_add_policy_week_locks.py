"""add policy_week_locks and policies.auto_failure_mode

Revision ID: 0003
Revises: 0002
Create Date: 2026-10-06

A week lock pins one policy (optionally one of its versions) to an ISO
week. auto_failure_mode decides whether a weekly auto recomputation skips
or aborts on a failed day; it is operational and not part of the shape.
"""
from alembic import op
import sqlalchemy as sa

revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "policy_week_locks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("week_year", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("policy_version", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_policy_week_locks_policy_id", "policy_week_locks", ["policy_id"])
    op.create_unique_constraint(
        "uq_policy_week_lock", "policy_week_locks", ["week_year", "week_number"]
    )

    auto_failure_mode_enum = sa.Enum("skip", "abort", name="auto_failure_mode_enum")
    auto_failure_mode_enum.create(op.get_bind(), checkfirst=True)
    op.add_column(
        "policies",
        sa.Column(
            "auto_failure_mode",
            sa.Enum("skip", "abort", name="auto_failure_mode_enum", create_type=False),
            nullable=False,
            server_default="skip",
        ),
    )


def downgrade() -> None:
    op.drop_column("policies", "auto_failure_mode")
    op.execute("DROP TYPE IF EXISTS auto_failure_mode_enum")
    op.drop_constraint("uq_policy_week_lock", "policy_week_locks", type_="unique")
    op.drop_index("ix_policy_week_locks_policy_id", table_name="policy_week_locks")
    op.drop_table("policy_week_locks")
