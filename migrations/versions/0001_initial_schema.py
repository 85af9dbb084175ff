"""initial schema: policies, policy versions, terminal telemetry

Revision ID: 0001
Revises:
Create Date: 2026-09-28 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    policy_status_enum = sa.Enum("draft", "active", "archived", name="policy_status_enum")
    policy_status_enum.create(op.get_bind(), checkfirst=True)

    paper_mode_enum = sa.Enum("strict", "lenient", name="paper_mode_enum")
    paper_mode_enum.create(op.get_bind(), checkfirst=True)

    # --- policies ---
    op.create_table(
        "policies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False, server_default=""),
        sa.Column("status", sa.Enum(
            "draft", "active", "archived", name="policy_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("current_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("use_tpe_on", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("use_internet", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("use_geofence", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("use_battery", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("use_paper", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("battery_min_pct", sa.Integer(), nullable=False, server_default="20"),
        sa.Column("daily_fail_n", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("weekly_fail_days", sa.Integer(), nullable=True),
        sa.Column("weekly_fail_slots", sa.Integer(), nullable=True),
        sa.Column("paper_mode", sa.Enum(
            "strict", "lenient", name="paper_mode_enum", create_type=False,
        ), nullable=False),
        sa.Column("slot_hours", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_policies_id", "policies", ["id"])
    op.create_index("ix_policies_status", "policies", ["status"])

    # --- policy_versions ---
    op.create_table(
        "policy_versions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("policy_id", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False, server_default=""),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("use_tpe_on", sa.Boolean(), nullable=False),
        sa.Column("use_internet", sa.Boolean(), nullable=False),
        sa.Column("use_geofence", sa.Boolean(), nullable=False),
        sa.Column("use_battery", sa.Boolean(), nullable=False),
        sa.Column("use_paper", sa.Boolean(), nullable=False),
        sa.Column("battery_min_pct", sa.Integer(), nullable=False),
        sa.Column("daily_fail_n", sa.Integer(), nullable=False),
        sa.Column("weekly_fail_days", sa.Integer(), nullable=True),
        sa.Column("weekly_fail_slots", sa.Integer(), nullable=True),
        sa.Column("paper_mode", sa.String(16), nullable=False),
        sa.Column("slot_hours", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("policy_id", "version", name="uq_policy_version"),
    )
    op.create_index("ix_policy_versions_id", "policy_versions", ["id"])
    op.create_index("ix_policy_versions_policy_id", "policy_versions", ["policy_id"])

    # --- terminal_telemetry (written by the ingestion pipeline) ---
    op.create_table(
        "terminal_telemetry",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("terminal_sn", sa.String(64), nullable=False),
        sa.Column("event_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(64), nullable=True),
        sa.Column("offline_duration", sa.String(64), nullable=True),
        sa.Column("signal", sa.String(32), nullable=True),
        sa.Column("geofence", sa.String(64), nullable=True),
        sa.Column("battery_rate_avg", sa.Float(), nullable=True),
        sa.Column("printer", sa.String(64), nullable=True),
        sa.Column("is_charging", sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_terminal_telemetry_id", "terminal_telemetry", ["id"])
    op.create_index("ix_terminal_telemetry_event_time", "terminal_telemetry", ["event_time"])
    op.create_index("ix_terminal_telemetry_sn_time", "terminal_telemetry", ["terminal_sn", "event_time"])


def downgrade() -> None:
    op.drop_table("terminal_telemetry")
    op.drop_table("policy_versions")
    op.drop_table("policies")

    op.execute("DROP TYPE IF EXISTS paper_mode_enum")
    op.execute("DROP TYPE IF EXISTS policy_status_enum")
