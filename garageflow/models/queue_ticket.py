"""Same-day, same-center queue tickets and the per-day version counter."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from garageflow.models.base import Base, ULIDMixin


class QueueTicket(Base, ULIDMixin):
    __tablename__ = "queue_tickets"

    center_id: Mapped[str] = mapped_column(String(64), index=True)
    date: Mapped[str] = mapped_column(String(10), index=True)  # YYYY-MM-DD
    position: Mapped[int] = mapped_column(Integer)
    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"))
    status: Mapped[str] = mapped_column(String(20), default="Waiting")  # Waiting | NoShow | Converted
    estimated_start_utc: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    assignment_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("assignments.id"), nullable=True, default=None)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)


class QueueDay(Base, ULIDMixin):
    """Optimistic-concurrency token for one center's queue on one day."""

    __tablename__ = "queue_days"
    __table_args__ = (UniqueConstraint("center_id", "date"),)

    center_id: Mapped[str] = mapped_column(String(64))
    date: Mapped[str] = mapped_column(String(10))
    version: Mapped[int] = mapped_column(Integer, default=0)
