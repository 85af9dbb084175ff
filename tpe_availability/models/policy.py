"""
Policy — tenant-configurable availability rule set.

Shape columns (toggles, thresholds, paper_mode, slot_hours) drive evaluation.
Any change to them bumps `current_version` and writes an immutable
PolicyVersion snapshot; see tpe_availability/services/policy_service.py.

Display / operational columns never bump the version:
  name, status, auto_failure_mode
"""
from datetime import datetime
from sqlalchemy import Integer, String, Boolean, DateTime, Enum, JSON, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from tpe_availability.db.base import Base


class PolicyStatus(str, enum.Enum):
    draft = "draft"
    active = "active"
    archived = "archived"


class PaperMode(str, enum.Enum):
    strict = "strict"
    lenient = "lenient"


class AutoFailureMode(str, enum.Enum):
    skip = "skip"
    abort = "abort"


class Policy(Base):
    __tablename__ = "policies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    status: Mapped[str] = mapped_column(
        Enum(PolicyStatus, name="policy_status_enum"),
        nullable=False,
        default=PolicyStatus.draft,
        index=True,
    )
    current_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # --- shape ---
    use_tpe_on: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    use_internet: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    use_geofence: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    use_battery: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    use_paper: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    battery_min_pct: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    daily_fail_n: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    weekly_fail_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weekly_fail_slots: Mapped[int | None] = mapped_column(Integer, nullable=True)
    paper_mode: Mapped[str] = mapped_column(
        Enum(PaperMode, name="paper_mode_enum"),
        nullable=False,
        default=PaperMode.strict,
    )
    slot_hours: Mapped[list] = mapped_column(
        JSON, nullable=False,
        comment="Ascending, de-duplicated hours of day (0-23)",
    )

    # --- operational ---
    auto_failure_mode: Mapped[str] = mapped_column(
        Enum(AutoFailureMode, name="auto_failure_mode_enum"),
        nullable=False,
        default=AutoFailureMode.skip,
        comment="Weekly auto recompute: skip failed days or abort the week",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
