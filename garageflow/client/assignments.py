"""Client-side assignment orchestration: create, cancel, reassign.

The service is authoritative for conflicts; the checks here only save a round
trip when the answer is already known.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date

from garageflow.client.cache import QueryCache
from garageflow.client.http import ApiClient
from garageflow.core.conflicts import TimeWindow, as_utc, find_conflicts, is_live
from garageflow.core.errors import (
    AssignmentConflictError, FieldError, GarageflowError, ValidationError,
)
from garageflow.core.workflow import ASSIGNMENT, status_value
from garageflow.schemas import AssignmentCreate, AssignmentRead, CancelAssignmentResponse

logger = logging.getLogger(__name__)

ASSIGNMENTS = "assignments"
BOOKINGS = "bookings"


@dataclass
class AssignmentOutcome:
    technician_id: str
    assignment: AssignmentRead | None = None
    error: GarageflowError | None = None

    @property
    def ok(self) -> bool:
        return self.assignment is not None


@dataclass
class ReassignResult:
    cancelled: CancelAssignmentResponse
    assignment: AssignmentRead | None = None
    error: GarageflowError | None = None

    @property
    def ready_for_assignment(self) -> bool:
        """True when the old assignment is gone and no replacement was created."""
        return self.assignment is None


def _require(**values: str | None) -> None:
    missing = [FieldError(name, "is required") for name, v in values.items() if not v or not str(v).strip()]
    if missing:
        raise ValidationError(missing)


def _window(window: TimeWindow | tuple) -> TimeWindow:
    if isinstance(window, TimeWindow):
        return window
    try:
        start, end = window
    except (TypeError, ValueError):
        raise ValidationError(FieldError("window", "must be a (start, end) pair"))
    return TimeWindow(start, end)


class AssignmentOrchestrator:
    def __init__(self, api: ApiClient, cache: QueryCache | None = None):
        self._api = api
        self._cache = cache or QueryCache()

    def _invalidate(self) -> None:
        self._cache.invalidate(ASSIGNMENTS)
        self._cache.invalidate(BOOKINGS)

    async def list_assignments(
        self,
        *,
        center_id: str | None = None,
        day: date | str | None = None,
        technician_id: str | None = None,
        booking_id: str | None = None,
        status: str | None = None,
    ) -> list[AssignmentRead]:
        params = {
            "centerId": center_id,
            "date": day.isoformat() if isinstance(day, date) else day,
            "technicianId": technician_id,
            "bookingId": booking_id,
            "status": status,
        }
        params = {k: v for k, v in params.items() if v is not None}
        data = await self._api.get("/api/assignments", params=params)
        rows = [AssignmentRead.model_validate(a) for a in data]
        self._cache.put_confirmed(ASSIGNMENTS, rows, **params)
        return rows

    async def get(self, assignment_id: str) -> AssignmentRead:
        return AssignmentRead.model_validate(await self._api.get(f"/api/assignments/{assignment_id}"))

    async def precheck(self, technician_id: str, center_id: str, window: TimeWindow) -> None:
        """Advisory overlap check against a fresh read of the technician's assignments."""
        existing = await self.list_assignments(technician_id=technician_id)
        conflicts = find_conflicts(technician_id, window, existing)
        if conflicts:
            raise AssignmentConflictError(technician_id, center_id, [c.id for c in conflicts])

    async def create(
        self,
        work_item_id: str,
        technician_id: str,
        center_id: str,
        window: TimeWindow | tuple,
        note: str | None = None,
        *,
        precheck: bool = False,
        retry: bool = True,
    ) -> AssignmentRead:
        _require(workItemId=work_item_id, technicianId=technician_id, centerId=center_id)
        window = _window(window)
        if precheck:
            await self.precheck(technician_id, center_id, window)

        payload = AssignmentCreate(
            booking_id=work_item_id,
            technician_id=technician_id,
            center_id=center_id,
            planned_start_utc=window.start,
            planned_end_utc=window.end,
            note=note,
        )
        try:
            data = await self._api.post("/api/assignments", json=payload.to_wire(), retry=retry)
        except AssignmentConflictError as exc:
            if not exc.after_transient:
                raise
            landed = await self._find_landed(work_item_id, technician_id, window)
            if landed is None or landed.id not in exc.conflicting_ids:
                raise
            logger.info("Create for %s/%s had already landed as %s", work_item_id, technician_id, landed.id)
            self._invalidate()
            return landed
        self._invalidate()
        assignment = AssignmentRead.model_validate(data)
        logger.info("Assigned technician %s to %s (%s)", technician_id, work_item_id, assignment.id)
        return assignment

    async def _find_landed(
        self, work_item_id: str, technician_id: str, window: TimeWindow,
    ) -> AssignmentRead | None:
        """The live assignment an earlier, unanswered attempt of this create produced."""
        for a in await self.list_assignments(technician_id=technician_id, booking_id=work_item_id):
            if (
                is_live(a)
                and as_utc(a.planned_start_utc) == window.start
                and as_utc(a.planned_end_utc) == window.end
            ):
                return a
        return None

    async def create_many(
        self,
        work_item_id: str,
        technician_ids: list[str],
        center_id: str,
        window: TimeWindow | tuple,
        note: str | None = None,
    ) -> list[AssignmentOutcome]:
        """One assignment per technician. A failure never rolls back the others."""
        _require(workItemId=work_item_id, centerId=center_id)
        if not technician_ids:
            raise ValidationError(FieldError("technicianIds", "at least one technician is required"))
        window = _window(window)

        async def one(technician_id: str) -> AssignmentOutcome:
            try:
                assignment = await self.create(work_item_id, technician_id, center_id, window, note)
            except GarageflowError as exc:
                logger.warning("Assignment of %s to %s failed: %s", technician_id, work_item_id, exc)
                return AssignmentOutcome(technician_id, error=exc)
            return AssignmentOutcome(technician_id, assignment=assignment)

        unique = list(dict.fromkeys(technician_ids))
        return list(await asyncio.gather(*(one(t) for t in unique)))

    async def cancel(self, assignment_id: str) -> CancelAssignmentResponse:
        _require(assignmentId=assignment_id)
        data = await self._api.delete(f"/api/assignments/{assignment_id}")
        self._invalidate()
        return CancelAssignmentResponse.model_validate(data)

    async def reassign(
        self,
        assignment_id: str,
        new_technician_id: str,
        window: TimeWindow | tuple | None = None,
    ) -> ReassignResult:
        """Cancel, then create for the new technician.

        The two steps are not atomic. When the create fails the work item is
        left without an assignment and the result says so; nothing is retried.
        """
        _require(assignmentId=assignment_id, newTechnicianId=new_technician_id)
        window = _window(window) if window is not None else None

        cancelled = await self.cancel(assignment_id)
        old = cancelled.assignment
        if window is None:
            window = TimeWindow(old.planned_start_utc, old.planned_end_utc)
        try:
            assignment = await self.create(
                old.booking_id, new_technician_id, old.center_id, window, old.note, retry=False,
            )
        except GarageflowError as exc:
            logger.warning(
                "Reassign of %s to %s failed after cancel; %s is ready for assignment: %s",
                assignment_id, new_technician_id, old.booking_id, exc,
            )
            return ReassignResult(cancelled, error=exc)
        return ReassignResult(cancelled, assignment=assignment)

    async def reschedule(
        self, assignment_id: str, window: TimeWindow | tuple, reason: str | None = None,
    ) -> AssignmentRead:
        window = _window(window)
        payload = {"plannedStartUtc": window.start.isoformat(), "plannedEndUtc": window.end.isoformat()}
        if reason:
            payload["reason"] = reason
        data = await self._api.put(f"/api/assignments/{assignment_id}/reschedule", json=payload)
        self._invalidate()
        return AssignmentRead.model_validate(data)

    async def update_status(self, assignment: AssignmentRead | str, status) -> AssignmentRead:
        """Move an assignment along its lifecycle, checked locally before the call."""
        if isinstance(assignment, str):
            assignment = await self.get(assignment)
        target = status_value(status)
        ASSIGNMENT.ensure(assignment.status, target)
        data = await self._api.put(f"/api/assignments/{assignment.id}/status", json={"status": target})
        self._invalidate()
        return AssignmentRead.model_validate(data)
