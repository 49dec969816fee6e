"""Per-center, per-day queue: dense positions and a version token for optimistic concurrency."""

from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from garageflow.core.conflicts import TimeWindow
from garageflow.core.errors import (
    ConflictError, FieldError, InvalidTransitionError, NotFoundError, ReorderConflictError,
    ValidationError,
)
from garageflow.db import crud
from garageflow.models import QueueTicket
from garageflow.services import assignments as assignment_service

logger = logging.getLogger(__name__)

WAITING = "Waiting"
NO_SHOW = "NoShow"
CONVERTED = "Converted"

# One lock per (center, date) serializes every change to positions and the version.
_queue_locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = weakref.WeakValueDictionary()


def queue_lock(center_id: str, day: str) -> asyncio.Lock:
    lock = _queue_locks.get((center_id, day))
    if lock is None:
        lock = asyncio.Lock()
        _queue_locks[(center_id, day)] = lock
    return lock


async def read_queue(db: AsyncSession, center_id: str, day: str) -> tuple[int, list[QueueTicket]]:
    queue_day = await crud.get_queue_day(db, center_id, day)
    tickets = await crud.list_queue_tickets(db, center_id, day)
    return queue_day.version, tickets


async def _densify(db: AsyncSession, center_id: str, day: str) -> None:
    """Renumber waiting tickets 1..n, keeping their relative order."""
    tickets = await crud.list_queue_tickets(db, center_id, day)
    for i, ticket in enumerate((t for t in tickets if t.status == WAITING), start=1):
        ticket.position = i


async def _require_ticket(db: AsyncSession, ticket_id: str) -> QueueTicket:
    ticket = await crud.get_queue_ticket(db, ticket_id)
    if not ticket:
        raise NotFoundError("QueueTicket", ticket_id)
    return ticket


async def add_ticket(
    db: AsyncSession, center_id: str, day: str, booking_id: str, reason: str | None = None,
) -> QueueTicket:
    booking = await crud.get_booking(db, booking_id)
    if not booking:
        raise NotFoundError("Booking", booking_id)
    if booking.center_id != center_id:
        raise ValidationError(FieldError("centerId", "does not match the booking's center"))

    async with queue_lock(center_id, day):
        _, tickets = await read_queue(db, center_id, day)
        waiting = [t for t in tickets if t.status == WAITING]
        if any(t.booking_id == booking_id for t in waiting):
            raise ConflictError(
                f"Booking {booking_id} is already queued at {center_id} on {day}",
                reason="duplicate_ticket",
                details={"bookingId": booking_id, "centerId": center_id, "date": day},
            )

        ticket = await crud.add_queue_ticket(
            db, center_id, day, booking_id, position=len(waiting) + 1, reason=reason,
        )
        await crud.bump_queue_version(db, center_id, day)
        await db.commit()
    await db.refresh(ticket)
    return ticket


async def reorder(
    db: AsyncSession, center_id: str, day: str, ordered_ids: list[str], expected_version: int | None,
) -> tuple[int, list[QueueTicket]]:
    """Replace the whole waiting order, or reject if the queue moved since it was read."""
    async with queue_lock(center_id, day):
        version, tickets = await read_queue(db, center_id, day)
        if expected_version is not None and expected_version != version:
            raise ReorderConflictError(center_id, day, expected_version, version)

        waiting = {t.id: t for t in tickets if t.status == WAITING}
        if len(set(ordered_ids)) != len(ordered_ids) or set(ordered_ids) != set(waiting):
            logger.info("Reorder for %s/%s rejected: ticket set differs from the live queue", center_id, day)
            raise ReorderConflictError(center_id, day, expected_version, version)

        for position, ticket_id in enumerate(ordered_ids, start=1):
            waiting[ticket_id].position = position
        if not await crud.bump_queue_version(db, center_id, day, expected=version):
            # another writer got in between the read and this update
            await db.rollback()
            current, _ = await read_queue(db, center_id, day)
            raise ReorderConflictError(center_id, day, expected_version, current)
        await db.commit()
        return await read_queue(db, center_id, day)


async def mark_no_show(db: AsyncSession, ticket_id: str) -> QueueTicket:
    ticket = await _require_ticket(db, ticket_id)
    async with queue_lock(ticket.center_id, ticket.date):
        await db.refresh(ticket)
        if ticket.status == NO_SHOW:
            return ticket
        if ticket.status != WAITING:
            raise InvalidTransitionError("QueueTicket", ticket.status, NO_SHOW)
        ticket.status = NO_SHOW
        await db.flush()
        await _densify(db, ticket.center_id, ticket.date)
        await crud.bump_queue_version(db, ticket.center_id, ticket.date)
        await db.commit()
    await db.refresh(ticket)
    return ticket


async def update_eta(db: AsyncSession, ticket_id: str, estimated_start_utc) -> QueueTicket:
    ticket = await _require_ticket(db, ticket_id)
    return await crud.update_queue_ticket(db, ticket, estimated_start_utc=estimated_start_utc)


async def convert(
    db: AsyncSession,
    ticket_id: str,
    technician_id: str | None = None,
    window: TimeWindow | None = None,
) -> QueueTicket:
    """Bind the ticket to an assignment. Converting a converted ticket returns it unchanged."""
    ticket = await _require_ticket(db, ticket_id)
    async with queue_lock(ticket.center_id, ticket.date):
        await db.refresh(ticket)
        if ticket.status == CONVERTED:
            return ticket
        if ticket.status != WAITING:
            raise InvalidTransitionError("QueueTicket", ticket.status, CONVERTED)

        live = await crud.list_live_assignments(db, booking_id=ticket.booking_id)
        if live:
            assignment = live[0]
        elif technician_id:
            if window is None:
                booking = await crud.get_booking(db, ticket.booking_id)
                window = TimeWindow(booking.start_utc, booking.end_utc)
            assignment = await assignment_service.create_assignment(
                db, booking_id=ticket.booking_id, technician_id=technician_id,
                center_id=ticket.center_id, window=window,
            )
        else:
            raise ValidationError(FieldError(
                "technicianId", "required when the work item has no live assignment",
            ))

        assignment.queue_no = ticket.position
        ticket.status = CONVERTED
        ticket.assignment_id = assignment.id
        await db.flush()
        await _densify(db, ticket.center_id, ticket.date)
        await crud.bump_queue_version(db, ticket.center_id, ticket.date)
        await db.commit()
    await db.refresh(ticket)
    logger.info("Queue ticket %s converted to assignment %s", ticket.id, assignment.id)
    return ticket


def validate_day(day: str) -> str:
    try:
        date.fromisoformat(day)
    except ValueError:
        raise ValidationError(FieldError("date", "must be YYYY-MM-DD"))
    return day
