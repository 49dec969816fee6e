"""Service intake, the checklist catalog, and per-intake checklist responses."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from garageflow.models.base import Base, ULIDMixin


class ServiceIntake(Base, ULIDMixin):
    __tablename__ = "service_intakes"

    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"), index=True)
    status: Mapped[str] = mapped_column(String(20), default="Checked_In")
    customer_name: Mapped[str] = mapped_column(String(200), default="")
    customer_phone: Mapped[str] = mapped_column(String(50), default="")
    customer_email: Mapped[str] = mapped_column(String(255), default="")
    vehicle_brand: Mapped[str] = mapped_column(String(100), default="")
    vehicle_model: Mapped[str] = mapped_column(String(100), default="")
    license_plate: Mapped[str] = mapped_column(String(30), default="")
    odometer: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    battery_soc: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    arrival_notes: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    responses = relationship("ChecklistResponse", back_populates="intake", lazy="selectin")


class ChecklistItem(Base, ULIDMixin):
    __tablename__ = "checklist_items"

    category: Mapped[str] = mapped_column(String(50))
    label: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    type: Mapped[str] = mapped_column(String(10))  # Bool | Number | Text
    order: Mapped[int] = mapped_column(Integer, default=0)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class ChecklistResponse(Base, ULIDMixin):
    __tablename__ = "checklist_responses"
    __table_args__ = (UniqueConstraint("intake_id", "checklist_item_id"),)

    intake_id: Mapped[str] = mapped_column(String(26), ForeignKey("service_intakes.id"))
    checklist_item_id: Mapped[str] = mapped_column(String(26), ForeignKey("checklist_items.id"))
    bool_value: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=None)
    number_value: Mapped[float | None] = mapped_column(Float, nullable=True, default=None)
    text_value: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    severity: Mapped[str | None] = mapped_column(String(10), nullable=True, default=None)  # Low | Medium | High
    note: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    photo_url: Mapped[str | None] = mapped_column(String(500), nullable=True, default=None)

    intake = relationship("ServiceIntake", back_populates="responses")
