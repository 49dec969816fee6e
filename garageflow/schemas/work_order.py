from __future__ import annotations

from pydantic import Field

from garageflow.schemas.base import CamelModel, UtcDatetime


class TaskCreate(CamelModel):
    title: str
    description: str | None = None
    estimated_minutes: int | None = Field(default=None, ge=0)
    order: int | None = None


class TaskUpdate(CamelModel):
    title: str | None = None
    description: str | None = None
    status: str | None = None
    estimated_minutes: int | None = Field(default=None, ge=0)
    actual_minutes: int | None = Field(default=None, ge=0)
    technician_note: str | None = None


class TaskRead(CamelModel):
    id: str
    work_order_id: str
    title: str
    description: str | None = None
    status: str
    estimated_minutes: int | None = None
    actual_minutes: int | None = None
    technician_note: str | None = None
    order: int


class WorkOrderCreate(CamelModel):
    intake_id: str
    technician_id: str | None = None
    service_type: str = ""
    estimated_cost: float | None = Field(default=None, ge=0)
    parts_required: str | None = None
    notes: str | None = None
    tasks: list[TaskCreate] = []


class WorkOrderUpdate(CamelModel):
    technician_id: str | None = None
    service_type: str | None = None
    estimated_cost: float | None = Field(default=None, ge=0)
    parts_required: str | None = None
    notes: str | None = None


class WorkOrderTransition(CamelModel):
    status: str
    approval_notes: str | None = None


class WorkOrderRead(CamelModel):
    id: str
    intake_id: str
    technician_id: str | None = None
    service_type: str = ""
    status: str
    estimated_cost: float | None = None
    parts_required: str | None = None
    approval_notes: str | None = None
    notes: str | None = None
    started_at: UtcDatetime | None = None
    completed_at: UtcDatetime | None = None
    created_at: UtcDatetime
    tasks: list[TaskRead] = []
