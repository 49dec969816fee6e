"""ServiceDesk: the single entry point a front end or script drives.

It owns its collaborators explicitly (HTTP client, query cache, error
channel, background runner) instead of reaching for module-level stores.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from garageflow.client.assignments import AssignmentOrchestrator
from garageflow.client.autosave import ChecklistDraft
from garageflow.client.background import BackgroundRunner, ErrorChannel
from garageflow.client.cache import QueryCache
from garageflow.client.http import ApiClient
from garageflow.client.intake import IntakeWorkflow
from garageflow.client.polling import PeriodicRefresh
from garageflow.client.queue import QueueCoordinator
from garageflow.client.risk import BlacklistResult, RiskChecker
from garageflow.config import Settings, get_settings
from garageflow.core.availability import AvailableTechnician, MatchFilters, MatchRequest, match_technicians
from garageflow.core.conflicts import TimeWindow
from garageflow.core.errors import ConflictError, GarageflowError
from garageflow.schemas import (
    AssignmentCreate, AssignmentRead, BookingCreate, BookingRead, CancelAssignmentResponse,
    ChecklistResponseIn, IntakeRead, QueueRead, TechnicianRead, WorkOrderCreate, WorkOrderRead,
)

logger = logging.getLogger(__name__)


class ServiceDesk:
    def __init__(
        self,
        api: ApiClient,
        *,
        settings: Settings | None = None,
        cache: QueryCache | None = None,
        errors: ErrorChannel | None = None,
    ):
        self.settings = settings or get_settings()
        self.api = api
        self.cache = cache or QueryCache()
        self.errors = errors or ErrorChannel()
        self.background = BackgroundRunner(self.errors)
        self.assignments = AssignmentOrchestrator(api, self.cache)
        self.queue = QueueCoordinator(api, self.cache)
        self.intakes = IntakeWorkflow(api, self.cache)
        self.risk = RiskChecker(api, self.settings.api.risk_check_url)

    @classmethod
    def connect(cls, base_url: str | None = None, **kwargs: Any) -> ServiceDesk:
        settings = kwargs.pop("settings", None) or get_settings()
        api = ApiClient(base_url or settings.api.base_url, timeout=settings.api.timeout, retry=settings.retry)
        return cls(api, settings=settings, **kwargs)

    async def aclose(self) -> None:
        await self.background.drain()
        await self.api.aclose()

    async def __aenter__(self) -> ServiceDesk:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ── Bookings ──

    async def create_booking(self, booking: BookingCreate | dict) -> tuple[BookingRead, BlacklistResult]:
        """Create a work item. The risk flag is informational and never blocks creation."""
        if isinstance(booking, dict):
            booking = BookingCreate.model_validate(booking)
        risk = await self.risk.check_blacklist(customer_ref=booking.customer_ref)
        if risk.flagged:
            logger.warning("Customer %s is flagged: %s", booking.customer_ref, risk.reason)
        try:
            data = await self.api.post("/api/bookings", json=booking.to_wire(), retry=True)
        except ConflictError as exc:
            if exc.reason != "duplicate_booking" or not exc.after_transient:
                raise
            for existing_id in exc.details.get("existingBookingIds", []):
                existing = await self.get_booking(existing_id)
                if (
                    existing.customer_ref == booking.customer_ref
                    and existing.start_utc == booking.start_utc
                    and existing.end_utc == booking.end_utc
                ):
                    logger.info("Booking for %s had already landed as %s", booking.vehicle_ref, existing.id)
                    return existing, risk
            raise
        self.cache.invalidate("bookings")
        return BookingRead.model_validate(data), risk

    async def get_booking(self, booking_id: str) -> BookingRead:
        return BookingRead.model_validate(await self.api.get(f"/api/bookings/{booking_id}"))

    # ── Matching ──

    async def _assignments_around(self, window: TimeWindow) -> list[AssignmentRead]:
        rows: dict[str, AssignmentRead] = {}
        day = window.day - timedelta(days=1)
        while day <= window.end.date():
            for a in await self.assignments.list_assignments(day=day):
                rows[a.id] = a
            day += timedelta(days=1)
        return list(rows.values())

    async def match_technicians(
        self, work_item: BookingRead, filters: MatchFilters | None = None,
    ) -> list[AvailableTechnician]:
        window = TimeWindow(work_item.start_utc, work_item.end_utc)
        request = MatchRequest(work_item.center_id, window, filters or MatchFilters())
        data = await self.api.get("/api/technicians", params={"activeOnly": "true"})
        roster = [TechnicianRead.model_validate(t) for t in data]
        try:
            assignments = await self._assignments_around(window)
        except GarageflowError as exc:
            logger.warning(
                "Could not read assignments for %s; matching on schedules only: %s", work_item.id, exc,
            )
            assignments = None
        return match_technicians(request, roster, assignments)

    # ── Assignments ──

    async def create_assignment(self, dto: AssignmentCreate | dict, *, precheck: bool = False) -> AssignmentRead:
        if isinstance(dto, dict):
            dto = AssignmentCreate.model_validate(dto)
        return await self.assignments.create(
            dto.booking_id, dto.technician_id, dto.center_id,
            TimeWindow(dto.planned_start_utc, dto.planned_end_utc), dto.note, precheck=precheck,
        )

    async def cancel_assignment(self, assignment_id: str) -> CancelAssignmentResponse:
        return await self.assignments.cancel(assignment_id)

    # ── Queue ──

    async def reorder_queue(self, center_id: str, day: date | str, ordered_ids: list[str]) -> QueueRead:
        return await self.queue.reorder(center_id, day, ordered_ids)

    def submit_reorder(self, center_id: str, day: date | str, ordered_ids: list[str]) -> asyncio.Task:
        """Reorder without waiting on the result. Failures are published on ``errors``."""
        return self.background.spawn(
            self.reorder_queue(center_id, day, ordered_ids), context=f"queue-reorder:{center_id}:{day}",
        )

    def submit_eta(self, ticket_id: str, estimated_start: datetime) -> asyncio.Task:
        return self.background.spawn(
            self.queue.update_eta(ticket_id, estimated_start), context=f"queue-eta:{ticket_id}",
        )

    def poll_queue(self, center_id: str, day: date | str, on_result=None) -> PeriodicRefresh[QueueRead]:
        return PeriodicRefresh(
            lambda: self.queue.refresh(center_id, day),
            self.settings.polling.interval,
            on_result=on_result,
            errors=self.errors,
            name=f"queue:{center_id}:{day}",
        )

    # ── Intake / work orders ──

    async def save_checklist_responses(
        self, intake_id: str, responses: Iterable[ChecklistResponseIn | dict],
    ) -> None:
        await self.intakes.save_responses(intake_id, responses)

    def checklist_draft(self, intake_id: str) -> ChecklistDraft:
        async def save(batch: list[ChecklistResponseIn]) -> None:
            await self.save_checklist_responses(intake_id, batch)

        return ChecklistDraft(save, self.settings.autosave.interval, errors=self.errors)

    async def transition_intake(self, intake_id: str, target) -> IntakeRead:
        return await self.intakes.transition_intake(intake_id, target)

    async def create_work_order(self, order: WorkOrderCreate | dict) -> WorkOrderRead:
        return await self.intakes.create_work_order(order)

    async def transition_work_order(
        self, work_order_id: str, target, approval_notes: str | None = None,
    ) -> WorkOrderRead:
        return await self.intakes.transition_work_order(work_order_id, target, approval_notes)
