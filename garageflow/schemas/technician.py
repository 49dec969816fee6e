from __future__ import annotations

from datetime import date, time

from pydantic import Field, field_validator, model_validator

from garageflow.schemas.base import CamelModel, UtcDatetime


class WorkScheduleCreate(CamelModel):
    center_id: str
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    on_date: date | None = None
    start_time: time
    end_time: time
    is_active: bool = True

    @model_validator(mode="after")
    def _check_window(self):
        if (self.day_of_week is None) == (self.on_date is None):
            raise ValueError("exactly one of dayOfWeek or onDate is required")
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class WorkScheduleRead(CamelModel):
    id: str
    center_id: str
    day_of_week: int | None = None
    on_date: date | None = None
    start_time: time
    end_time: time
    is_active: bool = True


class TechnicianCreate(CamelModel):
    name: str
    email: str = ""
    specialties: list[str] = []
    is_active: bool = True
    schedules: list[WorkScheduleCreate] = []

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TechnicianRead(CamelModel):
    id: str
    name: str
    email: str = ""
    is_active: bool
    specialties: list[str] = []
    schedules: list[WorkScheduleRead] = []


class MatchedWindowRead(CamelModel):
    schedule_id: str
    center_id: str
    start: UtcDatetime
    end: UtcDatetime
    shift: str


class AvailableTechnicianRead(CamelModel):
    technician: TechnicianRead
    matched_windows: list[MatchedWindowRead]
    workload: int
    workload_band: str
