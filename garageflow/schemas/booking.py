from __future__ import annotations

from typing import Literal

from pydantic import model_validator

from garageflow.schemas.base import CamelModel, UtcDatetime


class BookingCreate(CamelModel):
    kind: Literal["booking", "service_request"] = "booking"
    center_id: str
    start_utc: UtcDatetime
    end_utc: UtcDatetime
    customer_ref: str
    vehicle_ref: str
    note: str | None = None

    @model_validator(mode="after")
    def _window_order(self):
        if self.end_utc <= self.start_utc:
            raise ValueError("endUtc must be after startUtc")
        return self


class BookingRead(CamelModel):
    id: str
    kind: str
    center_id: str
    start_utc: UtcDatetime
    end_utc: UtcDatetime
    status: str
    customer_ref: str
    vehicle_ref: str
    note: str | None = None
    created_at: UtcDatetime
