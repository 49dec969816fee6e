"""Service intake API: arrival, checklist responses, and the gated lifecycle."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from garageflow.core.checklist_gate import (
    checklist_completion, ensure_intake_transition, response_errors, responses_mutable,
)
from garageflow.core.errors import ConflictError, FieldError, NotFoundError, ValidationError
from garageflow.core.workflow import INTAKE, IntakeStatus
from garageflow.db import crud
from garageflow.dependencies import get_db
from garageflow.models import ServiceIntake
from garageflow.schemas import (
    ChecklistCompletionRead, ChecklistItemCreate, ChecklistItemRead, ChecklistResponseRead,
    IntakeCreate, IntakeRead, IntakeUpdate, SaveChecklistResponsesRequest, TransitionRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["intakes"])


async def _require_intake(db: AsyncSession, intake_id: str) -> ServiceIntake:
    intake = await crud.get_intake(db, intake_id)
    if not intake:
        raise NotFoundError("ServiceIntake", intake_id)
    return intake


# ── Checklist catalog ────────────────────────────────────

@router.get("/checklist-items", response_model=list[ChecklistItemRead])
async def list_checklist_items(
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_checklist_items(db, active_only=not include_inactive)


@router.post("/checklist-items", status_code=201, response_model=ChecklistItemRead)
async def create_checklist_item(body: ChecklistItemCreate, db: AsyncSession = Depends(get_db)):
    return await crud.create_checklist_item(db, **body.model_dump())


# ── Intakes ──────────────────────────────────────────────

@router.post("/intakes", status_code=201, response_model=IntakeRead)
async def create_intake(body: IntakeCreate, db: AsyncSession = Depends(get_db)):
    booking = await crud.get_booking(db, body.booking_id)
    if not booking:
        raise NotFoundError("Booking", body.booking_id)
    return await crud.create_intake(db, **body.model_dump())


@router.get("/intakes/{intake_id}", response_model=IntakeRead)
async def get_intake(intake_id: str, db: AsyncSession = Depends(get_db)):
    return await _require_intake(db, intake_id)


@router.patch("/intakes/{intake_id}", response_model=IntakeRead)
async def update_intake(intake_id: str, body: IntakeUpdate, db: AsyncSession = Depends(get_db)):
    intake = await _require_intake(db, intake_id)
    if intake.status not in (IntakeStatus.CHECKED_IN.value, IntakeStatus.INSPECTING.value):
        raise ConflictError(
            f"Intake {intake.id} is {intake.status}; vehicle details are locked",
            reason="intake_locked",
            details={"intakeId": intake.id, "status": intake.status},
        )
    updates = body.model_dump(exclude_unset=True)
    if updates:
        intake = await crud.update_intake(db, intake, **updates)
    return intake


@router.get("/intakes/{intake_id}/responses", response_model=list[ChecklistResponseRead])
async def list_responses(intake_id: str, db: AsyncSession = Depends(get_db)):
    await _require_intake(db, intake_id)
    return await crud.list_responses(db, intake_id)


@router.put("/intakes/{intake_id}/responses", response_model=list[ChecklistResponseRead])
async def save_responses(intake_id: str, body: SaveChecklistResponsesRequest, db: AsyncSession = Depends(get_db)):
    intake = await _require_intake(db, intake_id)
    if not responses_mutable(intake.status):
        raise ConflictError(
            f"Intake {intake.id} is {intake.status}; checklist responses are read-only",
            reason="intake_locked",
            details={"intakeId": intake.id, "status": intake.status},
        )

    items = {i.id: i for i in await crud.list_checklist_items(db, active_only=False)}
    errors: list[FieldError] = []
    for index, response in enumerate(body.responses):
        item = items.get(response.checklist_item_id)
        if item is None:
            errors.append(FieldError(f"responses[{index}].checklistItemId", "unknown checklist item"))
            continue
        errors.extend(response_errors(item, response, index))
    if errors:
        raise ValidationError(errors)

    await crud.upsert_responses(db, intake.id, [r.model_dump() for r in body.responses])
    if intake.status == IntakeStatus.CHECKED_IN.value and body.responses:
        INTAKE.transition(intake, IntakeStatus.INSPECTING)
        logger.info("Intake %s moved to Inspecting on first checklist save", intake.id)
    await db.commit()
    return await crud.list_responses(db, intake.id)


@router.get("/intakes/{intake_id}/completion", response_model=ChecklistCompletionRead)
async def get_completion(intake_id: str, db: AsyncSession = Depends(get_db)):
    await _require_intake(db, intake_id)
    completion = checklist_completion(
        await crud.list_checklist_items(db, active_only=True),
        await crud.list_responses(db, intake_id),
    )
    return ChecklistCompletionRead(
        total=completion.total,
        completed=completion.completed,
        required_total=completion.required_total,
        required_completed=completion.required_completed,
        ratio=completion.ratio,
        missing_required_ids=list(completion.missing_required_ids),
        is_all_required_completed=completion.is_all_required_completed,
    )


@router.post("/intakes/{intake_id}/transition", response_model=IntakeRead)
async def transition_intake(intake_id: str, body: TransitionRequest, db: AsyncSession = Depends(get_db)):
    intake = await _require_intake(db, intake_id)
    ensure_intake_transition(
        intake.status,
        body.status,
        await crud.list_checklist_items(db, active_only=True),
        await crud.list_responses(db, intake.id),
    )
    updates = {"status": body.status}
    now = datetime.now(timezone.utc)
    if body.status == IntakeStatus.VERIFIED.value:
        updates["verified_at"] = now
    elif body.status == IntakeStatus.FINALIZED.value:
        updates["finalized_at"] = now
    return await crud.update_intake(db, intake, **updates)
