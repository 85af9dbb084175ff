"""
WeeklyResult — one availability decision per (week_start, terminal, policy).

Derived only from DailyResult rows of the same policy in
[week_start, week_start + 7 days).
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Boolean, DateTime, Date, JSON, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tpe_availability.db.base import Base


class WeeklyResult(Base):
    __tablename__ = "weekly_results"
    __table_args__ = (
        UniqueConstraint("week_start", "terminal_sn", "policy_id", name="uq_weekly_result_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    week_start: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    terminal_sn: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    policy_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    policy_version: Mapped[int] = mapped_column(Integer, nullable=False)
    available: Mapped[bool] = mapped_column(
        Boolean, nullable=False, comment="Weekly decision: True = available"
    )
    days_ok: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    days_fail: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    slots_ok_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    slots_fail_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fail_dates: Mapped[list] = mapped_column(JSON, nullable=False)
    week_reasons: Mapped[dict] = mapped_column(
        JSON, nullable=False, comment="Reason code -> number of days it occurred"
    )
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
