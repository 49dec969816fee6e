"""Assignment model: one technician bound to one work item for a planned window."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from garageflow.models.base import Base, ULIDMixin


class Assignment(Base, ULIDMixin):
    __tablename__ = "assignments"

    booking_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("bookings.id"), nullable=True, index=True)
    technician_id: Mapped[str] = mapped_column(String(26), ForeignKey("technicians.id"), index=True)
    center_id: Mapped[str] = mapped_column(String(64), index=True)
    planned_start_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    planned_end_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(20), default="ASSIGNED")
    queue_no: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    note: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
