from __future__ import annotations

from datetime import date

from pydantic import computed_field, field_validator

from garageflow.schemas.base import CamelModel, UtcDatetime


def _iso_day(v: str) -> str:
    date.fromisoformat(v)
    return v


class QueueTicketCreate(CamelModel):
    center_id: str
    date: str
    booking_id: str
    reason: str | None = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, v: str) -> str:
        return _iso_day(v)


class QueueTicketRead(CamelModel):
    id: str
    center_id: str
    date: str
    position: int
    booking_id: str
    status: str
    estimated_start_utc: UtcDatetime | None = None
    assignment_id: str | None = None
    reason: str | None = None

    @computed_field
    @property
    def no_show(self) -> bool:
        return self.status == "NoShow"


class QueueRead(CamelModel):
    center_id: str
    date: str
    version: int
    tickets: list[QueueTicketRead]


class QueueReorderRequest(CamelModel):
    center_id: str
    date: str
    ticket_ids: list[str]
    version: int | None = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, v: str) -> str:
        return _iso_day(v)


class EtaUpdate(CamelModel):
    estimated_start_utc: UtcDatetime


class ConvertRequest(CamelModel):
    technician_id: str | None = None
    planned_start_utc: UtcDatetime | None = None
    planned_end_utc: UtcDatetime | None = None
