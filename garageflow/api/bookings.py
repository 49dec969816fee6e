"""Work item API: bookings and walk-in service requests."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from garageflow.core.errors import ConflictError, NotFoundError
from garageflow.core.workflow import BOOKING, BookingStatus
from garageflow.db import crud
from garageflow.dependencies import get_db
from garageflow.schemas import BookingCreate, BookingRead, TransitionRequest

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


@router.post("", status_code=201, response_model=BookingRead)
async def create_booking(body: BookingCreate, db: AsyncSession = Depends(get_db)):
    duplicates = await crud.find_overlapping_bookings(db, body.vehicle_ref, body.start_utc, body.end_utc)
    if duplicates:
        raise ConflictError(
            f"Vehicle {body.vehicle_ref} already has an open booking in this window",
            reason="duplicate_booking",
            details={"existingBookingIds": [b.id for b in duplicates]},
        )
    return await crud.create_booking(
        db,
        center_id=body.center_id,
        start_utc=body.start_utc,
        end_utc=body.end_utc,
        customer_ref=body.customer_ref,
        vehicle_ref=body.vehicle_ref,
        kind=body.kind,
        note=body.note,
    )


@router.get("", response_model=list[BookingRead])
async def list_bookings(
    center_id: str | None = Query(default=None, alias="centerId"),
    day: date | None = Query(default=None, alias="date"),
    status: BookingStatus | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_bookings(db, center_id=center_id, day=day, status=status.value if status else None)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(booking_id: str, db: AsyncSession = Depends(get_db)):
    booking = await crud.get_booking(db, booking_id)
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


@router.post("/{booking_id}/transition", response_model=BookingRead)
async def transition_booking(booking_id: str, body: TransitionRequest, db: AsyncSession = Depends(get_db)):
    booking = await crud.get_booking(db, booking_id)
    if not booking:
        raise NotFoundError("Booking", booking_id)
    BOOKING.ensure(booking.status, body.status)
    return await crud.update_booking(db, booking, status=body.status)
