"""
PolicyVersion — immutable snapshot of a policy's shape.

Written once per (policy_id, version) by the shape-change path and never
updated afterwards. Week locks may pin a specific version so historical
weeks keep evaluating with the rules they were locked to.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Boolean, DateTime, JSON, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tpe_availability.db.base import Base


class PolicyVersion(Base):
    __tablename__ = "policy_versions"
    __table_args__ = (
        UniqueConstraint("policy_id", "version", name="uq_policy_version"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    policy_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    # display fields as they were when the snapshot was taken
    name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False)

    use_tpe_on: Mapped[bool] = mapped_column(Boolean, nullable=False)
    use_internet: Mapped[bool] = mapped_column(Boolean, nullable=False)
    use_geofence: Mapped[bool] = mapped_column(Boolean, nullable=False)
    use_battery: Mapped[bool] = mapped_column(Boolean, nullable=False)
    use_paper: Mapped[bool] = mapped_column(Boolean, nullable=False)
    battery_min_pct: Mapped[int] = mapped_column(Integer, nullable=False)
    daily_fail_n: Mapped[int] = mapped_column(Integer, nullable=False)
    weekly_fail_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weekly_fail_slots: Mapped[int | None] = mapped_column(Integer, nullable=True)
    paper_mode: Mapped[str] = mapped_column(String(16), nullable=False)
    slot_hours: Mapped[list] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
