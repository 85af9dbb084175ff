"""
PolicyWeekLock — pins a policy (optionally a specific version) to one ISO week.

At most one lock per (week_year, week_number). When present, daily and
weekly computations for that week use the locked policy instead of the
currently active one.
"""
from datetime import datetime
from sqlalchemy import Integer, DateTime, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tpe_availability.db.base import Base


class PolicyWeekLock(Base):
    __tablename__ = "policy_week_locks"
    __table_args__ = (
        UniqueConstraint("week_year", "week_number", name="uq_policy_week_lock"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    week_year: Mapped[int] = mapped_column(Integer, nullable=False)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    policy_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    policy_version: Mapped[int | None] = mapped_column(
        Integer, nullable=True,
        comment="Pinned snapshot version; NULL follows the policy's current version",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
