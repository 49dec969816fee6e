"""CRUD operations for scheduling and workflow models."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from garageflow.core.conflicts import as_utc
from garageflow.core.workflow import LIVE_ASSIGNMENT_STATUSES, BookingStatus
from garageflow.models import (
    Booking, Technician, WorkSchedule, Assignment, QueueTicket, QueueDay,
    ServiceIntake, ChecklistItem, ChecklistResponse, WorkOrder, WorkOrderTask,
)

_TERMINAL_BOOKING = (BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value)


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


async def _save(db: AsyncSession, obj, **kwargs):
    for k, v in kwargs.items():
        setattr(obj, k, v)
    await db.commit()
    await db.refresh(obj)
    return obj


# ── Booking ──────────────────────────────────────────────

async def create_booking(
    db: AsyncSession, center_id: str, start_utc: datetime, end_utc: datetime,
    customer_ref: str, vehicle_ref: str, kind: str = "booking", note: str | None = None,
) -> Booking:
    booking = Booking(
        kind=kind, center_id=center_id,
        start_utc=as_utc(start_utc), end_utc=as_utc(end_utc),
        customer_ref=customer_ref, vehicle_ref=vehicle_ref, note=note,
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking


async def get_booking(db: AsyncSession, booking_id: str) -> Booking | None:
    return await db.get(Booking, booking_id)


async def list_bookings(
    db: AsyncSession, center_id: str | None = None, day: date | None = None, status: str | None = None,
) -> list[Booking]:
    q = select(Booking)
    if center_id:
        q = q.where(Booking.center_id == center_id)
    if day:
        lo, hi = _day_bounds(day)
        q = q.where(Booking.start_utc >= lo, Booking.start_utc < hi)
    if status:
        q = q.where(Booking.status == status)
    result = await db.execute(q.order_by(Booking.start_utc, Booking.id))
    return list(result.scalars().all())


async def find_overlapping_bookings(
    db: AsyncSession, vehicle_ref: str, start_utc: datetime, end_utc: datetime,
) -> list[Booking]:
    """Open bookings for the same vehicle whose window overlaps ``[start_utc, end_utc)``."""
    result = await db.execute(
        select(Booking).where(
            Booking.vehicle_ref == vehicle_ref,
            Booking.status.not_in(_TERMINAL_BOOKING),
            Booking.start_utc < as_utc(end_utc),
            Booking.end_utc > as_utc(start_utc),
        )
    )
    return list(result.scalars().all())


async def update_booking(db: AsyncSession, booking: Booking, **kwargs) -> Booking:
    return await _save(db, booking, **kwargs)


# ── Technician ───────────────────────────────────────────

async def create_technician(
    db: AsyncSession, name: str, email: str = "", specialties: list[str] | None = None,
    is_active: bool = True,
) -> Technician:
    tech = Technician(name=name, email=email, specialties=specialties or [], is_active=is_active)
    db.add(tech)
    await db.commit()
    await db.refresh(tech, ["schedules"])
    return tech


async def get_technician(db: AsyncSession, tech_id: str) -> Technician | None:
    return await db.get(Technician, tech_id)


async def list_technicians(db: AsyncSession, active_only: bool = False) -> list[Technician]:
    q = select(Technician).order_by(Technician.id)
    if active_only:
        q = q.where(Technician.is_active == True)
    result = await db.execute(q)
    return list(result.scalars().all())


async def add_work_schedule(
    db: AsyncSession, technician: Technician, center_id: str, start_time: time, end_time: time,
    day_of_week: int | None = None, on_date: date | None = None, is_active: bool = True,
) -> WorkSchedule:
    schedule = WorkSchedule(
        technician_id=technician.id, center_id=center_id,
        day_of_week=day_of_week, on_date=on_date,
        start_time=start_time, end_time=end_time, is_active=is_active,
    )
    db.add(schedule)
    await db.commit()
    await db.refresh(schedule)
    await db.refresh(technician, ["schedules"])
    return schedule


async def update_technician(db: AsyncSession, tech: Technician, **kwargs) -> Technician:
    return await _save(db, tech, **kwargs)


# ── Assignment ───────────────────────────────────────────

async def create_assignment(
    db: AsyncSession, booking_id: str | None, technician_id: str, center_id: str,
    planned_start_utc: datetime, planned_end_utc: datetime,
    status: str = "ASSIGNED", note: str | None = None, commit: bool = True,
) -> Assignment:
    assignment = Assignment(
        booking_id=booking_id, technician_id=technician_id, center_id=center_id,
        planned_start_utc=as_utc(planned_start_utc), planned_end_utc=as_utc(planned_end_utc),
        status=status, note=note,
    )
    db.add(assignment)
    if commit:
        await db.commit()
        await db.refresh(assignment)
    else:
        await db.flush()
    return assignment


async def get_assignment(db: AsyncSession, assignment_id: str) -> Assignment | None:
    return await db.get(Assignment, assignment_id)


async def list_assignments(
    db: AsyncSession, center_id: str | None = None, day: date | None = None,
    technician_id: str | None = None, status: str | None = None, booking_id: str | None = None,
) -> list[Assignment]:
    q = select(Assignment)
    if center_id:
        q = q.where(Assignment.center_id == center_id)
    if day:
        lo, hi = _day_bounds(day)
        q = q.where(Assignment.planned_start_utc >= lo, Assignment.planned_start_utc < hi)
    if technician_id:
        q = q.where(Assignment.technician_id == technician_id)
    if status:
        q = q.where(Assignment.status == status)
    if booking_id:
        q = q.where(Assignment.booking_id == booking_id)
    result = await db.execute(q.order_by(Assignment.planned_start_utc, Assignment.id))
    return list(result.scalars().all())


async def list_live_assignments(
    db: AsyncSession, technician_id: str | None = None, booking_id: str | None = None,
) -> list[Assignment]:
    """Assignments still holding technician time (PENDING, ASSIGNED, ACTIVE), any center."""
    q = select(Assignment).where(Assignment.status.in_(LIVE_ASSIGNMENT_STATUSES))
    if technician_id:
        q = q.where(Assignment.technician_id == technician_id)
    if booking_id:
        q = q.where(Assignment.booking_id == booking_id)
    result = await db.execute(q.order_by(Assignment.planned_start_utc))
    return list(result.scalars().all())


async def update_assignment(db: AsyncSession, assignment: Assignment, **kwargs) -> Assignment:
    return await _save(db, assignment, **kwargs)


# ── Queue ────────────────────────────────────────────────

async def get_queue_day(db: AsyncSession, center_id: str, day: str) -> QueueDay:
    """Version row for a center's queue on a day, created on first touch.

    Call before any other pending write in the session: losing the insert race
    rolls the session back before reading the winner's row.
    """
    stmt = (
        select(QueueDay)
        .where(QueueDay.center_id == center_id, QueueDay.date == day)
        .execution_options(populate_existing=True)
    )
    queue_day = (await db.execute(stmt)).scalars().first()
    if queue_day is None:
        queue_day = QueueDay(center_id=center_id, date=day, version=0)
        db.add(queue_day)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            queue_day = (await db.execute(stmt)).scalars().one()
    return queue_day


async def bump_queue_version(
    db: AsyncSession, center_id: str, day: str, expected: int | None = None,
) -> bool:
    """Increment the version in SQL. With ``expected``, only if it still holds that value."""
    stmt = update(QueueDay).where(QueueDay.center_id == center_id, QueueDay.date == day)
    if expected is not None:
        stmt = stmt.where(QueueDay.version == expected)
    stmt = stmt.values(version=QueueDay.version + 1).execution_options(synchronize_session=False)
    result = await db.execute(stmt)
    return result.rowcount == 1


async def list_queue_tickets(db: AsyncSession, center_id: str, day: str) -> list[QueueTicket]:
    """Waiting tickets by position, then terminal tickets in creation order."""
    result = await db.execute(
        select(QueueTicket)
        .where(QueueTicket.center_id == center_id, QueueTicket.date == day)
        .order_by(QueueTicket.created_at, QueueTicket.id)
    )
    tickets = list(result.scalars().all())
    waiting = sorted((t for t in tickets if t.status == "Waiting"), key=lambda t: t.position)
    return waiting + [t for t in tickets if t.status != "Waiting"]


async def add_queue_ticket(
    db: AsyncSession, center_id: str, day: str, booking_id: str, position: int,
    reason: str | None = None,
) -> QueueTicket:
    ticket = QueueTicket(
        center_id=center_id, date=day, booking_id=booking_id,
        position=position, reason=reason,
    )
    db.add(ticket)
    await db.flush()
    return ticket


async def get_queue_ticket(db: AsyncSession, ticket_id: str) -> QueueTicket | None:
    return await db.get(QueueTicket, ticket_id)


async def update_queue_ticket(db: AsyncSession, ticket: QueueTicket, **kwargs) -> QueueTicket:
    return await _save(db, ticket, **kwargs)


# ── Checklist catalog ────────────────────────────────────

async def create_checklist_item(
    db: AsyncSession, category: str, label: str, type: str, order: int = 0,
    is_required: bool = False, is_active: bool = True, description: str | None = None,
) -> ChecklistItem:
    item = ChecklistItem(
        category=category, label=label, type=type, order=order,
        is_required=is_required, is_active=is_active, description=description,
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item


async def list_checklist_items(db: AsyncSession, active_only: bool = True) -> list[ChecklistItem]:
    q = select(ChecklistItem).order_by(ChecklistItem.category, ChecklistItem.order, ChecklistItem.id)
    if active_only:
        q = q.where(ChecklistItem.is_active == True)
    result = await db.execute(q)
    return list(result.scalars().all())


# ── ServiceIntake ────────────────────────────────────────

async def create_intake(db: AsyncSession, booking_id: str, **fields) -> ServiceIntake:
    intake = ServiceIntake(booking_id=booking_id, **fields)
    db.add(intake)
    await db.commit()
    await db.refresh(intake)
    return intake


async def get_intake(db: AsyncSession, intake_id: str) -> ServiceIntake | None:
    return await db.get(ServiceIntake, intake_id)


async def update_intake(db: AsyncSession, intake: ServiceIntake, **kwargs) -> ServiceIntake:
    return await _save(db, intake, **kwargs)


async def list_responses(db: AsyncSession, intake_id: str) -> list[ChecklistResponse]:
    result = await db.execute(
        select(ChecklistResponse)
        .where(ChecklistResponse.intake_id == intake_id)
        .order_by(ChecklistResponse.created_at, ChecklistResponse.id)
    )
    return list(result.scalars().all())


_RESPONSE_FIELDS = ("bool_value", "number_value", "text_value", "severity", "note", "photo_url")


async def upsert_responses(db: AsyncSession, intake_id: str, responses: list[dict]) -> list[ChecklistResponse]:
    """Insert or overwrite responses keyed by (intake, checklist item). Does not commit."""
    existing = {r.checklist_item_id: r for r in await list_responses(db, intake_id)}
    for payload in responses:
        row = existing.get(payload["checklist_item_id"])
        if row is None:
            row = ChecklistResponse(intake_id=intake_id, checklist_item_id=payload["checklist_item_id"])
            db.add(row)
            existing[row.checklist_item_id] = row
        for field in _RESPONSE_FIELDS:
            setattr(row, field, payload.get(field))
    await db.flush()
    return list(existing.values())


# ── WorkOrder ────────────────────────────────────────────

async def create_work_order(
    db: AsyncSession, intake_id: str, service_type: str = "", technician_id: str | None = None,
    estimated_cost: float | None = None, parts_required: str | None = None,
    notes: str | None = None, tasks: list[dict] | None = None,
) -> WorkOrder:
    wo = WorkOrder(
        intake_id=intake_id, service_type=service_type, technician_id=technician_id,
        estimated_cost=estimated_cost, parts_required=parts_required, notes=notes,
    )
    db.add(wo)
    await db.flush()
    for i, task in enumerate(tasks or [], start=1):
        db.add(WorkOrderTask(
            work_order_id=wo.id,
            title=task["title"],
            description=task.get("description"),
            estimated_minutes=task.get("estimated_minutes"),
            order=task.get("order") or i,
        ))
    await db.commit()
    await db.refresh(wo, ["tasks"])
    return wo


async def get_work_order(db: AsyncSession, wo_id: str) -> WorkOrder | None:
    return await db.get(WorkOrder, wo_id)


async def get_work_order_for_intake(db: AsyncSession, intake_id: str) -> WorkOrder | None:
    result = await db.execute(select(WorkOrder).where(WorkOrder.intake_id == intake_id))
    return result.scalars().first()


async def update_work_order(db: AsyncSession, wo: WorkOrder, **kwargs) -> WorkOrder:
    return await _save(db, wo, **kwargs)


async def add_task(
    db: AsyncSession, wo: WorkOrder, title: str, description: str | None = None,
    estimated_minutes: int | None = None, order: int | None = None,
) -> WorkOrderTask:
    if order is None:
        order = max((t.order for t in wo.tasks), default=0) + 1
    task = WorkOrderTask(
        work_order_id=wo.id, title=title, description=description,
        estimated_minutes=estimated_minutes, order=order,
    )
    db.add(task)
    await db.commit()
    await db.refresh(task)
    await db.refresh(wo, ["tasks"])
    return task


async def get_task(db: AsyncSession, task_id: str) -> WorkOrderTask | None:
    return await db.get(WorkOrderTask, task_id)


async def update_task(db: AsyncSession, task: WorkOrderTask, **kwargs) -> WorkOrderTask:
    return await _save(db, task, **kwargs)
