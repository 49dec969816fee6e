from __future__ import annotations

from typing import Literal

from garageflow.schemas.base import CamelModel, UtcDatetime


class IntakeCreate(CamelModel):
    booking_id: str
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    vehicle_brand: str = ""
    vehicle_model: str = ""
    license_plate: str = ""
    odometer: int | None = None
    battery_soc: float | None = None
    arrival_notes: str | None = None
    notes: str | None = None


class IntakeUpdate(CamelModel):
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    vehicle_brand: str | None = None
    vehicle_model: str | None = None
    license_plate: str | None = None
    odometer: int | None = None
    battery_soc: float | None = None
    arrival_notes: str | None = None
    notes: str | None = None


class ChecklistItemCreate(CamelModel):
    category: str
    label: str
    description: str | None = None
    type: Literal["Bool", "Number", "Text"]
    order: int = 0
    is_required: bool = False
    is_active: bool = True


class ChecklistItemRead(CamelModel):
    id: str
    category: str
    label: str
    description: str | None = None
    type: str
    order: int = 0
    is_required: bool
    is_active: bool


class ChecklistResponseIn(CamelModel):
    checklist_item_id: str
    bool_value: bool | None = None
    number_value: float | None = None
    text_value: str | None = None
    severity: Literal["Low", "Medium", "High"] | None = None
    note: str | None = None
    photo_url: str | None = None


class SaveChecklistResponsesRequest(CamelModel):
    responses: list[ChecklistResponseIn]


class ChecklistResponseRead(ChecklistResponseIn):
    id: str
    intake_id: str
    updated_at: UtcDatetime | None = None


class IntakeRead(CamelModel):
    id: str
    booking_id: str
    status: str
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    vehicle_brand: str = ""
    vehicle_model: str = ""
    license_plate: str = ""
    odometer: int | None = None
    battery_soc: float | None = None
    arrival_notes: str | None = None
    notes: str | None = None
    verified_at: UtcDatetime | None = None
    finalized_at: UtcDatetime | None = None
    created_at: UtcDatetime


class ChecklistCompletionRead(CamelModel):
    total: int
    completed: int
    required_total: int
    required_completed: int
    ratio: float
    missing_required_ids: list[str]
    is_all_required_completed: bool
