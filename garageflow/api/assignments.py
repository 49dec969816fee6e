"""Assignment API: booking-to-technician scheduling with server-side conflict detection."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from garageflow.core.conflicts import TimeWindow
from garageflow.core.errors import NotFoundError
from garageflow.core.workflow import AssignmentStatus
from garageflow.db import crud
from garageflow.dependencies import get_db
from garageflow.schemas import (
    AssignmentCreate, AssignmentRead, CancelAssignmentResponse, RescheduleRequest, TransitionRequest,
)
from garageflow.services import assignments as assignment_service

router = APIRouter(prefix="/api/assignments", tags=["assignments"])


@router.post("", status_code=201, response_model=AssignmentRead)
async def create_assignment(body: AssignmentCreate, db: AsyncSession = Depends(get_db)):
    return await assignment_service.create_assignment(
        db,
        booking_id=body.booking_id,
        technician_id=body.technician_id,
        center_id=body.center_id,
        window=TimeWindow(body.planned_start_utc, body.planned_end_utc),
        note=body.note,
    )


@router.get("", response_model=list[AssignmentRead])
async def list_assignments(
    center_id: str | None = Query(default=None, alias="centerId"),
    day: date | None = Query(default=None, alias="date"),
    technician_id: str | None = Query(default=None, alias="technicianId"),
    booking_id: str | None = Query(default=None, alias="bookingId"),
    status: AssignmentStatus | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_assignments(
        db, center_id=center_id, day=day, technician_id=technician_id,
        booking_id=booking_id, status=status.value if status else None,
    )


@router.get("/{assignment_id}", response_model=AssignmentRead)
async def get_assignment(assignment_id: str, db: AsyncSession = Depends(get_db)):
    assignment = await crud.get_assignment(db, assignment_id)
    if not assignment:
        raise NotFoundError("Assignment", assignment_id)
    return assignment


@router.delete("/{assignment_id}", response_model=CancelAssignmentResponse)
async def cancel_assignment(assignment_id: str, db: AsyncSession = Depends(get_db)):
    assignment, has_active, booking_status = await assignment_service.cancel_assignment(db, assignment_id)
    return CancelAssignmentResponse(
        assignment=AssignmentRead.model_validate(assignment),
        has_active_assignments=has_active,
        booking_status=booking_status,
    )


@router.put("/{assignment_id}/reschedule", response_model=AssignmentRead)
async def reschedule_assignment(assignment_id: str, body: RescheduleRequest, db: AsyncSession = Depends(get_db)):
    return await assignment_service.reschedule_assignment(
        db, assignment_id, TimeWindow(body.planned_start_utc, body.planned_end_utc),
    )


@router.put("/{assignment_id}/status", response_model=AssignmentRead)
async def update_status(assignment_id: str, body: TransitionRequest, db: AsyncSession = Depends(get_db)):
    return await assignment_service.update_assignment_status(db, assignment_id, body.status)
