"""
DailyResult — one availability verdict per (date, terminal, policy).

Recomputation fully replaces the row for its key; `policy_version` records
which shape produced it.
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Boolean, DateTime, Date, JSON, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tpe_availability.db.base import Base


class DailyResult(Base):
    __tablename__ = "daily_results"
    __table_args__ = (
        UniqueConstraint("date", "terminal_sn", "policy_id", name="uq_daily_result_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    day: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    terminal_sn: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    policy_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    policy_version: Mapped[int] = mapped_column(Integer, nullable=False)
    day_ok: Mapped[bool] = mapped_column(Boolean, nullable=False)
    slot_ok_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    slot_fail_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_slots: Mapped[list] = mapped_column(
        JSON, nullable=False, comment="ISO-8601 UTC slot starts, ascending"
    )
    failed_reasons: Mapped[list] = mapped_column(
        JSON, nullable=False, comment="Reason codes seen on failing slots"
    )
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
