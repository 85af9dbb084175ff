"""
TerminalTelemetry — raw TPE readings, one row per terminal per reading.

Filled by the upstream ingestion pipeline; this service only reads it.
Vendor fields are kept as the loosely-typed strings the devices report.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Float, Boolean, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from tpe_availability.db.base import Base


class TerminalTelemetry(Base):
    __tablename__ = "terminal_telemetry"
    __table_args__ = (
        Index("ix_terminal_telemetry_sn_time", "terminal_sn", "event_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    terminal_sn: Mapped[str] = mapped_column(String(64), nullable=False)
    event_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    offline_duration: Mapped[str | None] = mapped_column(String(64), nullable=True)
    signal: Mapped[str | None] = mapped_column(String(32), nullable=True)
    geofence: Mapped[str | None] = mapped_column(String(64), nullable=True)
    battery_rate_avg: Mapped[float | None] = mapped_column(Float, nullable=True)
    printer: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_charging: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
