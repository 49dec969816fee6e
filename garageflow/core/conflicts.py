"""Double-booking detection over half-open ``[start, end)`` windows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable, Protocol

from garageflow.core.errors import FieldError, ValidationError
from garageflow.core.workflow import LIVE_ASSIGNMENT_STATUSES, status_value


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalize aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    def __post_init__(self):
        if not isinstance(self.start, datetime) or not isinstance(self.end, datetime):
            raise ValidationError(FieldError("window", "start and end must be datetimes"))
        object.__setattr__(self, "start", as_utc(self.start))
        object.__setattr__(self, "end", as_utc(self.end))
        if self.end <= self.start:
            raise ValidationError(FieldError("window.end", "end must be after start"))

    @property
    def day(self) -> date:
        return self.start.date()

    def overlaps(self, other: TimeWindow) -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, other: TimeWindow) -> bool:
        return self.start <= other.start and other.end <= self.end


class AssignmentLike(Protocol):
    id: str
    technician_id: str
    status: Any
    planned_start_utc: datetime
    planned_end_utc: datetime


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """True when ``[a_start, a_end)`` and ``[b_start, b_end)`` share an instant.

    Back-to-back windows (``a_end == b_start``) do not overlap.
    """
    return as_utc(a_start) < as_utc(b_end) and as_utc(b_start) < as_utc(a_end)


def is_live(assignment: AssignmentLike) -> bool:
    return status_value(assignment.status) in LIVE_ASSIGNMENT_STATUSES


def find_conflicts(
    technician_id: str,
    window: TimeWindow,
    existing: Iterable[AssignmentLike],
    exclude_id: str | None = None,
) -> list[AssignmentLike]:
    """Live assignments of ``technician_id`` whose planned window overlaps ``window``."""
    return [
        a for a in existing
        if a.technician_id == technician_id
        and a.id != exclude_id
        and is_live(a)
        and overlaps(a.planned_start_utc, a.planned_end_utc, window.start, window.end)
    ]


def has_conflict(
    technician_id: str,
    window: TimeWindow,
    existing: Iterable[AssignmentLike],
    exclude_id: str | None = None,
) -> bool:
    return bool(find_conflicts(technician_id, window, existing, exclude_id=exclude_id))
