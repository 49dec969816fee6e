"""Work order API: created from finalized intakes, driven through approval and repair."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from garageflow.core.checklist_gate import ensure_work_order_allowed
from garageflow.core.errors import ConflictError, NotFoundError
from garageflow.core.workflow import TASK, WORK_ORDER, WorkOrderStatus
from garageflow.db import crud
from garageflow.dependencies import get_db
from garageflow.models import WorkOrder
from garageflow.schemas import (
    TaskCreate, TaskRead, TaskUpdate, WorkOrderCreate, WorkOrderRead, WorkOrderTransition,
    WorkOrderUpdate,
)

router = APIRouter(prefix="/api/work-orders", tags=["work_orders"])


async def _require_work_order(db: AsyncSession, wo_id: str) -> WorkOrder:
    wo = await crud.get_work_order(db, wo_id)
    if not wo:
        raise NotFoundError("WorkOrder", wo_id)
    return wo


@router.post("", status_code=201, response_model=WorkOrderRead)
async def create_work_order(body: WorkOrderCreate, db: AsyncSession = Depends(get_db)):
    intake = await crud.get_intake(db, body.intake_id)
    if not intake:
        raise NotFoundError("ServiceIntake", body.intake_id)
    ensure_work_order_allowed(intake.status)

    existing = await crud.get_work_order_for_intake(db, intake.id)
    if existing:
        raise ConflictError(
            f"Intake {intake.id} already has work order {existing.id}",
            reason="duplicate_work_order",
            details={"workOrderId": existing.id},
        )
    if body.technician_id and not await crud.get_technician(db, body.technician_id):
        raise NotFoundError("Technician", body.technician_id)

    return await crud.create_work_order(
        db,
        intake_id=intake.id,
        service_type=body.service_type,
        technician_id=body.technician_id,
        estimated_cost=body.estimated_cost,
        parts_required=body.parts_required,
        notes=body.notes,
        tasks=[t.model_dump() for t in body.tasks],
    )


@router.get("", response_model=list[WorkOrderRead])
async def find_work_orders(
    intake_id: str = Query(alias="intakeId"),
    db: AsyncSession = Depends(get_db),
):
    wo = await crud.get_work_order_for_intake(db, intake_id)
    return [wo] if wo else []


@router.get("/{wo_id}", response_model=WorkOrderRead)
async def get_work_order(wo_id: str, db: AsyncSession = Depends(get_db)):
    return await _require_work_order(db, wo_id)


@router.patch("/{wo_id}", response_model=WorkOrderRead)
async def update_work_order(wo_id: str, body: WorkOrderUpdate, db: AsyncSession = Depends(get_db)):
    wo = await _require_work_order(db, wo_id)
    if WORK_ORDER.is_terminal(wo.status):
        raise ConflictError(
            f"Work order {wo.id} is {wo.status}", reason="work_order_locked",
            details={"workOrderId": wo.id, "status": wo.status},
        )
    updates = body.model_dump(exclude_unset=True)
    if updates:
        wo = await crud.update_work_order(db, wo, **updates)
    return wo


@router.post("/{wo_id}/transition", response_model=WorkOrderRead)
async def transition_work_order(wo_id: str, body: WorkOrderTransition, db: AsyncSession = Depends(get_db)):
    wo = await _require_work_order(db, wo_id)
    WORK_ORDER.ensure(wo.status, body.status)

    updates = {"status": body.status}
    if body.approval_notes is not None:
        updates["approval_notes"] = body.approval_notes
    now = datetime.now(timezone.utc)
    if body.status == WorkOrderStatus.IN_PROGRESS.value and wo.started_at is None:
        updates["started_at"] = now
    elif body.status == WorkOrderStatus.COMPLETED.value:
        updates["completed_at"] = now
    return await crud.update_work_order(db, wo, **updates)


@router.post("/{wo_id}/tasks", status_code=201, response_model=TaskRead)
async def add_task(wo_id: str, body: TaskCreate, db: AsyncSession = Depends(get_db)):
    wo = await _require_work_order(db, wo_id)
    if WORK_ORDER.is_terminal(wo.status):
        raise ConflictError(
            f"Work order {wo.id} is {wo.status}", reason="work_order_locked",
            details={"workOrderId": wo.id, "status": wo.status},
        )
    return await crud.add_task(
        db, wo, title=body.title, description=body.description,
        estimated_minutes=body.estimated_minutes, order=body.order,
    )


@router.patch("/{wo_id}/tasks/{task_id}", response_model=TaskRead)
async def update_task(wo_id: str, task_id: str, body: TaskUpdate, db: AsyncSession = Depends(get_db)):
    task = await crud.get_task(db, task_id)
    if not task or task.work_order_id != wo_id:
        raise NotFoundError("WorkOrderTask", task_id)
    updates = body.model_dump(exclude_unset=True)
    if "status" in updates:
        TASK.ensure(task.status, updates["status"])
    if updates:
        task = await crud.update_task(db, task, **updates)
    return task
