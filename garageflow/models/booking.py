"""Work item model: a customer booking or a walk-in service request."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from garageflow.models.base import Base, ULIDMixin


class Booking(Base, ULIDMixin):
    __tablename__ = "bookings"

    kind: Mapped[str] = mapped_column(String(20), default="booking")  # booking | service_request
    center_id: Mapped[str] = mapped_column(String(64), index=True)
    start_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_utc: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(20), default="PENDING")
    customer_ref: Mapped[str] = mapped_column(String(64))
    vehicle_ref: Mapped[str] = mapped_column(String(64), index=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
