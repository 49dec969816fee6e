"""Technician roster API, work schedules, and server-side availability matching."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from garageflow.core.availability import MatchFilters, MatchRequest, match_technicians
from garageflow.core.conflicts import TimeWindow
from garageflow.core.errors import NotFoundError
from garageflow.db import crud
from garageflow.dependencies import get_db
from garageflow.schemas import (
    AvailableTechnicianRead, MatchedWindowRead, TechnicianCreate, TechnicianRead,
    WorkScheduleCreate, WorkScheduleRead,
)

router = APIRouter(prefix="/api/technicians", tags=["technicians"])


@router.get("", response_model=list[TechnicianRead])
async def list_technicians(
    active_only: bool = Query(default=False, alias="activeOnly"),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_technicians(db, active_only=active_only)


@router.post("", status_code=201, response_model=TechnicianRead)
async def create_technician(body: TechnicianCreate, db: AsyncSession = Depends(get_db)):
    tech = await crud.create_technician(
        db, name=body.name, email=body.email, specialties=body.specialties, is_active=body.is_active,
    )
    for s in body.schedules:
        await crud.add_work_schedule(
            db, tech, center_id=s.center_id, start_time=s.start_time, end_time=s.end_time,
            day_of_week=s.day_of_week, on_date=s.on_date, is_active=s.is_active,
        )
    return tech


@router.get("/available", response_model=list[AvailableTechnicianRead])
async def available_technicians(
    center_id: str = Query(alias="centerId"),
    start_utc: datetime = Query(alias="startUtc"),
    end_utc: datetime = Query(alias="endUtc"),
    shift: str | None = Query(default=None),
    workload_band: str | None = Query(default=None, alias="workloadBand"),
    specialty: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    request = MatchRequest(
        center_id=center_id,
        window=TimeWindow(start_utc, end_utc),
        filters=MatchFilters(shift=shift, workload_band=workload_band, specialty=specialty),
    )
    roster = await crud.list_technicians(db, active_only=True)
    live = await crud.list_live_assignments(db)
    return [
        AvailableTechnicianRead(
            technician=TechnicianRead.model_validate(c.technician),
            matched_windows=[
                MatchedWindowRead(
                    schedule_id=m.schedule_id, center_id=m.center_id,
                    start=m.start, end=m.end, shift=m.shift,
                )
                for m in c.matched_windows
            ],
            workload=c.workload,
            workload_band=c.workload_band,
        )
        for c in match_technicians(request, roster, live)
    ]


@router.get("/{tech_id}", response_model=TechnicianRead)
async def get_technician(tech_id: str, db: AsyncSession = Depends(get_db)):
    tech = await crud.get_technician(db, tech_id)
    if not tech:
        raise NotFoundError("Technician", tech_id)
    return tech


@router.post("/{tech_id}/schedules", status_code=201, response_model=WorkScheduleRead)
async def add_schedule(tech_id: str, body: WorkScheduleCreate, db: AsyncSession = Depends(get_db)):
    tech = await crud.get_technician(db, tech_id)
    if not tech:
        raise NotFoundError("Technician", tech_id)
    return await crud.add_work_schedule(
        db, tech, center_id=body.center_id, start_time=body.start_time, end_time=body.end_time,
        day_of_week=body.day_of_week, on_date=body.on_date, is_active=body.is_active,
    )


@router.delete("/{tech_id}")
async def deactivate_technician(tech_id: str, db: AsyncSession = Depends(get_db)):
    tech = await crud.get_technician(db, tech_id)
    if not tech:
        raise NotFoundError("Technician", tech_id)
    tech = await crud.update_technician(db, tech, is_active=False)
    return {"ok": True, "id": tech.id}
