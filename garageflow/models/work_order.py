"""Work order model: spawned from a finalized intake, tracked through approval and repair."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Float, ForeignKey, Integer, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from garageflow.models.base import Base, ULIDMixin


class WorkOrder(Base, ULIDMixin):
    __tablename__ = "work_orders"

    intake_id: Mapped[str] = mapped_column(String(26), ForeignKey("service_intakes.id"), unique=True)
    technician_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("technicians.id"), nullable=True, default=None)
    service_type: Mapped[str] = mapped_column(String(100), default="")
    status: Mapped[str] = mapped_column(String(20), default="Draft")
    estimated_cost: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    parts_required: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    approval_notes: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    tasks = relationship(
        "WorkOrderTask", back_populates="work_order", lazy="selectin",
        order_by="WorkOrderTask.order",
    )


class WorkOrderTask(Base, ULIDMixin):
    __tablename__ = "work_order_tasks"

    work_order_id: Mapped[str] = mapped_column(String(26), ForeignKey("work_orders.id"), index=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    status: Mapped[str] = mapped_column(String(20), default="NotStarted")
    estimated_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    actual_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    technician_note: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    order: Mapped[int] = mapped_column(Integer, default=0)

    work_order = relationship("WorkOrder", back_populates="tasks")
