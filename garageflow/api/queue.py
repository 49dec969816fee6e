"""Queue API: same-day ordering per center, no-show marking, ETA, and conversion."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from garageflow.core.conflicts import TimeWindow
from garageflow.core.errors import FieldError, NotFoundError, ValidationError
from garageflow.db import crud
from garageflow.dependencies import get_db
from garageflow.schemas import (
    ConvertRequest, EtaUpdate, QueueRead, QueueReorderRequest, QueueTicketCreate, QueueTicketRead,
)
from garageflow.services import queue_board

router = APIRouter(prefix="/api/queue", tags=["queue"])


def _queue(center_id: str, day: str, version: int, tickets) -> QueueRead:
    return QueueRead(
        center_id=center_id,
        date=day,
        version=version,
        tickets=[QueueTicketRead.model_validate(t) for t in tickets],
    )


@router.get("", response_model=QueueRead)
async def get_queue(
    center_id: str = Query(alias="centerId"),
    day: str = Query(alias="date"),
    db: AsyncSession = Depends(get_db),
):
    queue_board.validate_day(day)
    version, tickets = await queue_board.read_queue(db, center_id, day)
    return _queue(center_id, day, version, tickets)


@router.post("", status_code=201, response_model=QueueTicketRead)
async def add_to_queue(body: QueueTicketCreate, db: AsyncSession = Depends(get_db)):
    return await queue_board.add_ticket(db, body.center_id, body.date, body.booking_id, reason=body.reason)


@router.post("/reorder", response_model=QueueRead)
async def reorder_queue(body: QueueReorderRequest, db: AsyncSession = Depends(get_db)):
    version, tickets = await queue_board.reorder(
        db, body.center_id, body.date, body.ticket_ids, expected_version=body.version,
    )
    return _queue(body.center_id, body.date, version, tickets)


@router.get("/{ticket_id}", response_model=QueueTicketRead)
async def get_ticket(ticket_id: str, db: AsyncSession = Depends(get_db)):
    ticket = await crud.get_queue_ticket(db, ticket_id)
    if not ticket:
        raise NotFoundError("QueueTicket", ticket_id)
    return ticket


@router.post("/{ticket_id}/no-show", response_model=QueueTicketRead)
async def mark_no_show(ticket_id: str, db: AsyncSession = Depends(get_db)):
    return await queue_board.mark_no_show(db, ticket_id)


@router.patch("/{ticket_id}/eta", response_model=QueueTicketRead)
async def update_eta(ticket_id: str, body: EtaUpdate, db: AsyncSession = Depends(get_db)):
    return await queue_board.update_eta(db, ticket_id, body.estimated_start_utc)


@router.post("/{ticket_id}/convert", response_model=QueueTicketRead)
async def convert_to_assignment(
    ticket_id: str,
    body: ConvertRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    body = body or ConvertRequest()
    window = None
    if body.planned_start_utc or body.planned_end_utc:
        if not (body.planned_start_utc and body.planned_end_utc):
            raise ValidationError(FieldError("plannedEndUtc", "start and end must be given together"))
        window = TimeWindow(body.planned_start_utc, body.planned_end_utc)
    return await queue_board.convert(db, ticket_id, technician_id=body.technician_id, window=window)
