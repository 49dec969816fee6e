"""Technician roster and the work-schedule windows they can be matched into."""

from __future__ import annotations

from datetime import date, time

from sqlalchemy import String, Boolean, ForeignKey, JSON, Integer, Date, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from garageflow.models.base import Base, ULIDMixin


class Technician(Base, ULIDMixin):
    __tablename__ = "technicians"

    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(255), default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    specialties: Mapped[list] = mapped_column(JSON, default=list)

    schedules = relationship(
        "WorkSchedule", back_populates="technician", lazy="selectin",
        order_by="WorkSchedule.created_at",
    )


class WorkSchedule(Base, ULIDMixin):
    __tablename__ = "work_schedules"

    technician_id: Mapped[str] = mapped_column(String(26), ForeignKey("technicians.id"), index=True)
    center_id: Mapped[str] = mapped_column(String(64))
    day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)  # 0 = Monday
    on_date: Mapped[date | None] = mapped_column(Date, nullable=True, default=None)
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    technician = relationship("Technician", back_populates="schedules")
