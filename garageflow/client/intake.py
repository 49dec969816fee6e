"""Client side of the intake checklist and work order lifecycle.

Gates are evaluated locally against a fresh read so an incomplete checklist
is reported without a failing round trip; the service evaluates them again.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from garageflow.client.cache import QueryCache
from garageflow.client.http import ApiClient
from garageflow.core.checklist_gate import (
    ChecklistCompletion, checklist_completion, ensure_intake_transition, ensure_work_order_allowed,
)
from garageflow.core.errors import ConflictError, FieldError, ValidationError
from garageflow.core.workflow import WORK_ORDER, status_value
from garageflow.schemas import (
    ChecklistItemRead, ChecklistResponseIn, ChecklistResponseRead, IntakeRead, WorkOrderCreate,
    WorkOrderRead,
)

logger = logging.getLogger(__name__)

CHECKLIST_ITEMS = "checklist-items"
INTAKES = "intakes"


def _as_response(value: ChecklistResponseIn | dict) -> ChecklistResponseIn:
    if isinstance(value, ChecklistResponseIn):
        return value
    return ChecklistResponseIn.model_validate(value)


class IntakeWorkflow:
    def __init__(self, api: ApiClient, cache: QueryCache | None = None):
        self._api = api
        self._cache = cache or QueryCache()

    # ── Reads ──

    async def checklist_items(self, *, refresh: bool = False) -> list[ChecklistItemRead]:
        cached = None if refresh else self._cache.confirmed(CHECKLIST_ITEMS)
        if cached is not None:
            return cached
        data = await self._api.get("/api/checklist-items")
        items = [ChecklistItemRead.model_validate(i) for i in data]
        self._cache.put_confirmed(CHECKLIST_ITEMS, items)
        return items

    async def get_intake(self, intake_id: str) -> IntakeRead:
        intake = IntakeRead.model_validate(await self._api.get(f"/api/intakes/{intake_id}"))
        self._cache.put_confirmed(INTAKES, intake, id=intake_id)
        return intake

    async def responses(self, intake_id: str) -> list[ChecklistResponseRead]:
        data = await self._api.get(f"/api/intakes/{intake_id}/responses")
        return [ChecklistResponseRead.model_validate(r) for r in data]

    async def completion(self, intake_id: str) -> ChecklistCompletion:
        items = await self.checklist_items(refresh=True)
        return checklist_completion(items, await self.responses(intake_id))

    # ── Writes ──

    async def create_intake(self, booking_id: str, **fields: Any) -> IntakeRead:
        if not booking_id:
            raise ValidationError(FieldError("bookingId", "is required"))
        payload = {"bookingId": booking_id, **fields}
        data = await self._api.post("/api/intakes", json=payload, retry=True)
        return IntakeRead.model_validate(data)

    async def save_responses(
        self, intake_id: str, responses: Iterable[ChecklistResponseIn | dict],
    ) -> list[ChecklistResponseRead]:
        body = [_as_response(r) for r in responses]
        if not body:
            return []
        data = await self._api.put(
            f"/api/intakes/{intake_id}/responses",
            json={"responses": [r.to_wire() for r in body]},
        )
        self._cache.invalidate(INTAKES, id=intake_id)
        return [ChecklistResponseRead.model_validate(r) for r in data]

    async def transition_intake(self, intake_id: str, target) -> IntakeRead:
        """Move an intake, refusing locally when the table or the checklist gate says no."""
        target = status_value(target)
        intake = await self.get_intake(intake_id)
        items = await self.checklist_items(refresh=True)
        responses = await self.responses(intake_id)
        ensure_intake_transition(intake.status, target, items, responses)

        data = await self._api.post(f"/api/intakes/{intake_id}/transition", json={"status": target})
        updated = IntakeRead.model_validate(data)
        self._cache.put_confirmed(INTAKES, updated, id=intake_id)
        logger.info("Intake %s: %s -> %s", intake_id, intake.status, updated.status)
        return updated

    async def create_work_order(self, order: WorkOrderCreate | dict) -> WorkOrderRead:
        if isinstance(order, dict):
            order = WorkOrderCreate.model_validate(order)
        intake = await self.get_intake(order.intake_id)
        ensure_work_order_allowed(intake.status)
        try:
            data = await self._api.post("/api/work-orders", json=order.to_wire(), retry=True)
        except ConflictError as exc:
            if exc.reason != "duplicate_work_order" or not exc.after_transient:
                raise
            existing_id = exc.details["workOrderId"]
            logger.info("Work order for intake %s had already landed as %s", order.intake_id, existing_id)
            return await self.get_work_order(existing_id)
        return WorkOrderRead.model_validate(data)

    async def get_work_order(self, work_order_id: str) -> WorkOrderRead:
        return WorkOrderRead.model_validate(await self._api.get(f"/api/work-orders/{work_order_id}"))

    async def transition_work_order(
        self, work_order_id: str, target, approval_notes: str | None = None,
    ) -> WorkOrderRead:
        target = status_value(target)
        current = await self.get_work_order(work_order_id)
        WORK_ORDER.ensure(current.status, target)
        payload = {"status": target}
        if approval_notes is not None:
            payload["approvalNotes"] = approval_notes
        data = await self._api.post(f"/api/work-orders/{work_order_id}/transition", json=payload)
        return WorkOrderRead.model_validate(data)
