"""Client side of the per-center, per-day queue."""

from __future__ import annotations

import logging
from datetime import date, datetime

from garageflow.client.assignments import ASSIGNMENTS
from garageflow.client.cache import QueryCache
from garageflow.client.http import ApiClient
from garageflow.core.conflicts import TimeWindow, as_utc
from garageflow.core.errors import ConflictError, FieldError, ReorderConflictError, ValidationError
from garageflow.schemas import QueueRead, QueueTicketRead

logger = logging.getLogger(__name__)

QUEUE = "queue"


def _day(day: date | str) -> str:
    if isinstance(day, date):
        return day.isoformat()
    try:
        date.fromisoformat(day)
    except (TypeError, ValueError):
        raise ValidationError(FieldError("date", "must be YYYY-MM-DD"))
    return day


class QueueCoordinator:
    """Reads and reorders one queue at a time per (center, date).

    Reorders carry the version of the last confirmed read. When the service
    answers 409 the cached snapshot is dropped and the caller must refresh
    before trying again; orders are never merged.
    """

    def __init__(self, api: ApiClient, cache: QueryCache | None = None):
        self._api = api
        self._cache = cache or QueryCache()

    def snapshot(self, center_id: str, day: date | str) -> QueueRead | None:
        return self._cache.confirmed(QUEUE, center_id=center_id, date=_day(day))

    async def refresh(self, center_id: str, day: date | str) -> QueueRead:
        day = _day(day)
        data = await self._api.get("/api/queue", params={"centerId": center_id, "date": day})
        queue = QueueRead.model_validate(data)
        self._cache.put_confirmed(QUEUE, queue, center_id=center_id, date=day)
        return queue

    async def add(
        self, work_item_id: str, center_id: str, day: date | str, reason: str | None = None,
    ) -> QueueTicketRead:
        day = _day(day)
        payload = {"centerId": center_id, "date": day, "bookingId": work_item_id}
        if reason:
            payload["reason"] = reason
        try:
            data = await self._api.post("/api/queue", json=payload, retry=True)
        except ConflictError as exc:
            if exc.reason != "duplicate_ticket" or not exc.after_transient:
                raise
            queue = await self.refresh(center_id, day)
            for ticket in queue.tickets:
                if ticket.booking_id == work_item_id and ticket.status == "Waiting":
                    logger.info("Queue add for %s had already landed as %s", work_item_id, ticket.id)
                    return ticket
            raise
        self._cache.invalidate(QUEUE, center_id=center_id, date=day)
        return QueueTicketRead.model_validate(data)

    async def reorder(self, center_id: str, day: date | str, ordered_ids: list[str]) -> QueueRead:
        day = _day(day)
        if len(set(ordered_ids)) != len(ordered_ids):
            raise ValidationError(FieldError("ticketIds", "contains duplicates"))

        current = self.snapshot(center_id, day)
        if current is None:
            current = await self.refresh(center_id, day)

        by_id = {t.id: t for t in current.tickets}
        optimistic = current.model_copy(update={
            "tickets": [
                by_id[tid].model_copy(update={"position": i})
                for i, tid in enumerate(ordered_ids, start=1) if tid in by_id
            ],
        })
        self._cache.put_pending(QUEUE, optimistic, center_id=center_id, date=day)

        payload = {"centerId": center_id, "date": day, "ticketIds": ordered_ids, "version": current.version}
        try:
            data = await self._api.post("/api/queue/reorder", json=payload)
        except ReorderConflictError:
            logger.info("Queue %s/%s moved since version %d; dropping local order", center_id, day, current.version)
            self._cache.invalidate(QUEUE, center_id=center_id, date=day)
            raise
        except Exception as exc:
            self._cache.mark_failed(QUEUE, exc, center_id=center_id, date=day)
            raise

        queue = QueueRead.model_validate(data)
        self._cache.put_confirmed(QUEUE, queue, center_id=center_id, date=day)
        return queue

    def _drop(self, ticket: QueueTicketRead) -> QueueTicketRead:
        self._cache.invalidate(QUEUE, center_id=ticket.center_id, date=ticket.date)
        return ticket

    async def mark_no_show(self, ticket_id: str) -> QueueTicketRead:
        data = await self._api.post(f"/api/queue/{ticket_id}/no-show")
        return self._drop(QueueTicketRead.model_validate(data))

    async def update_eta(self, ticket_id: str, estimated_start: datetime) -> QueueTicketRead:
        if not isinstance(estimated_start, datetime):
            raise ValidationError(FieldError("estimatedStartUtc", "must be a datetime"))
        data = await self._api.patch(
            f"/api/queue/{ticket_id}/eta",
            json={"estimatedStartUtc": as_utc(estimated_start).isoformat()},
        )
        return self._drop(QueueTicketRead.model_validate(data))

    async def convert_to_assignment(
        self,
        ticket_id: str,
        technician_id: str | None = None,
        window: TimeWindow | None = None,
    ) -> QueueTicketRead:
        """Link the ticket to an assignment. Safe to call twice."""
        payload = {}
        if technician_id:
            payload["technicianId"] = technician_id
        if window is not None:
            payload["plannedStartUtc"] = window.start.isoformat()
            payload["plannedEndUtc"] = window.end.isoformat()
        data = await self._api.post(f"/api/queue/{ticket_id}/convert", json=payload, retry=True)
        self._cache.invalidate(ASSIGNMENTS)
        return self._drop(QueueTicketRead.model_validate(data))
