"""Authoritative assignment writes: every create/cancel/reschedule passes the conflict check here."""

from __future__ import annotations

import asyncio
import logging
import weakref

from sqlalchemy.ext.asyncio import AsyncSession

from garageflow.core.conflicts import TimeWindow, find_conflicts
from garageflow.core.errors import (
    AssignmentConflictError, FieldError, InvalidTransitionError, NotFoundError, ValidationError,
)
from garageflow.core.workflow import (
    ASSIGNABLE_BOOKING_STATUSES, ASSIGNMENT, BOOKING, AssignmentStatus, BookingStatus,
)
from garageflow.db import crud
from garageflow.models import Assignment, Booking

logger = logging.getLogger(__name__)

# One lock per technician serializes the read-check-insert sequence.
_technician_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()


def technician_lock(technician_id: str) -> asyncio.Lock:
    lock = _technician_locks.get(technician_id)
    if lock is None:
        lock = asyncio.Lock()
        _technician_locks[technician_id] = lock
    return lock


async def _require_booking(db: AsyncSession, booking_id: str) -> Booking:
    booking = await crud.get_booking(db, booking_id)
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


async def _require_assignment(db: AsyncSession, assignment_id: str) -> Assignment:
    assignment = await crud.get_assignment(db, assignment_id)
    if not assignment:
        raise NotFoundError("Assignment", assignment_id)
    return assignment


async def create_assignment(
    db: AsyncSession,
    booking_id: str,
    technician_id: str,
    center_id: str,
    window: TimeWindow,
    note: str | None = None,
) -> Assignment:
    """Bind a technician to a work item, moving the work item to ASSIGNED on first success."""
    booking = await _require_booking(db, booking_id)
    if booking.status not in ASSIGNABLE_BOOKING_STATUSES:
        raise InvalidTransitionError(
            "Booking", booking.status, BookingStatus.ASSIGNED.value,
            message=f"Booking {booking.id} is {booking.status} and cannot take new assignments",
        )
    if booking.center_id != center_id:
        raise ValidationError(FieldError("centerId", "does not match the booking's center"))

    tech = await crud.get_technician(db, technician_id)
    if not tech:
        raise NotFoundError("Technician", technician_id)
    if not tech.is_active:
        raise ValidationError(FieldError("technicianId", "technician is inactive"))

    async with technician_lock(technician_id):
        live = await crud.list_live_assignments(db, technician_id=technician_id)
        conflicts = find_conflicts(technician_id, window, live)
        if conflicts:
            logger.info(
                "Rejected assignment for technician %s at %s: overlaps %s",
                technician_id, center_id, [c.id for c in conflicts],
            )
            raise AssignmentConflictError(technician_id, center_id, [c.id for c in conflicts])

        assignment = await crud.create_assignment(
            db, booking_id=booking.id, technician_id=technician_id, center_id=center_id,
            planned_start_utc=window.start, planned_end_utc=window.end,
            status=AssignmentStatus.ASSIGNED.value, note=note, commit=False,
        )
        if booking.status != BookingStatus.ASSIGNED.value:
            BOOKING.transition(booking, BookingStatus.ASSIGNED)
        await db.commit()
        await db.refresh(assignment)

    logger.info("Assignment %s created: technician %s -> booking %s", assignment.id, technician_id, booking.id)
    return assignment


async def cancel_assignment(db: AsyncSession, assignment_id: str) -> tuple[Assignment, bool, str | None]:
    """Soft-cancel. Returns (assignment, has_active_assignments, booking_status)."""
    assignment = await _require_assignment(db, assignment_id)
    ASSIGNMENT.transition(assignment, AssignmentStatus.CANCELLED)

    booking_status = None
    has_active = False
    if assignment.booking_id:
        remaining = [
            a for a in await crud.list_live_assignments(db, booking_id=assignment.booking_id)
            if a.id != assignment.id
        ]
        has_active = bool(remaining)
        booking = await crud.get_booking(db, assignment.booking_id)
        if booking is not None:
            if not has_active and booking.status == BookingStatus.ASSIGNED.value:
                BOOKING.transition(booking, BookingStatus.REASSIGNED)
            booking_status = booking.status

    await db.commit()
    await db.refresh(assignment)
    logger.info(
        "Assignment %s cancelled (booking %s now %s, active remaining=%s)",
        assignment.id, assignment.booking_id, booking_status, has_active,
    )
    return assignment, has_active, booking_status


async def reschedule_assignment(db: AsyncSession, assignment_id: str, window: TimeWindow) -> Assignment:
    assignment = await _require_assignment(db, assignment_id)
    if ASSIGNMENT.is_terminal(assignment.status):
        raise InvalidTransitionError(
            "Assignment", assignment.status, assignment.status,
            message=f"Assignment {assignment.id} is {assignment.status} and cannot be rescheduled",
        )
    async with technician_lock(assignment.technician_id):
        live = await crud.list_live_assignments(db, technician_id=assignment.technician_id)
        conflicts = find_conflicts(assignment.technician_id, window, live, exclude_id=assignment.id)
        if conflicts:
            raise AssignmentConflictError(
                assignment.technician_id, assignment.center_id, [c.id for c in conflicts],
            )
        return await crud.update_assignment(
            db, assignment, planned_start_utc=window.start, planned_end_utc=window.end,
        )


async def update_assignment_status(db: AsyncSession, assignment_id: str, target: str) -> Assignment:
    """Lifecycle moves (start, complete). Cancellation goes through ``cancel_assignment``."""
    if target == AssignmentStatus.CANCELLED.value:
        assignment, _, _ = await cancel_assignment(db, assignment_id)
        return assignment
    assignment = await _require_assignment(db, assignment_id)
    ASSIGNMENT.transition(assignment, target)
    await db.commit()
    await db.refresh(assignment)
    return assignment
