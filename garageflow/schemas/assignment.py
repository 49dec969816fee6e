from __future__ import annotations

from pydantic import model_validator

from garageflow.schemas.base import CamelModel, UtcDatetime


class AssignmentCreate(CamelModel):
    booking_id: str
    technician_id: str
    center_id: str
    planned_start_utc: UtcDatetime
    planned_end_utc: UtcDatetime
    note: str | None = None

    @model_validator(mode="after")
    def _window_order(self):
        if self.planned_end_utc <= self.planned_start_utc:
            raise ValueError("plannedEndUtc must be after plannedStartUtc")
        return self


class AssignmentRead(CamelModel):
    id: str
    booking_id: str | None = None
    technician_id: str
    center_id: str
    planned_start_utc: UtcDatetime
    planned_end_utc: UtcDatetime
    status: str
    queue_no: int | None = None
    note: str | None = None
    created_at: UtcDatetime
    updated_at: UtcDatetime | None = None


class CancelAssignmentResponse(CamelModel):
    assignment: AssignmentRead
    has_active_assignments: bool
    booking_status: str | None = None


class RescheduleRequest(CamelModel):
    planned_start_utc: UtcDatetime
    planned_end_utc: UtcDatetime
    reason: str | None = None

    @model_validator(mode="after")
    def _window_order(self):
        if self.planned_end_utc <= self.planned_start_utc:
            raise ValueError("plannedEndUtc must be after plannedStartUtc")
        return self
