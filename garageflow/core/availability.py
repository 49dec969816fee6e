"""Technician availability matching for a work item's center and time window.

A technician qualifies when they are active, one of their work-schedule
windows at the item's center fully contains the item's window, and they hold
no live assignment overlapping it. Shift, workload band and specialty are soft
filters layered on top for the dispatcher's convenience.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Protocol, Sequence

from garageflow.core.conflicts import AssignmentLike, TimeWindow, find_conflicts, is_live
from garageflow.core.errors import FieldError, ValidationError

logger = logging.getLogger(__name__)

SHIFTS = ("morning", "afternoon", "evening")

# Inclusive upper bounds of same-day live assignments per band; "heavy" is open-ended.
WORKLOAD_BANDS = {"light": 2, "moderate": 5, "heavy": None}


class ScheduleLike(Protocol):
    id: str
    center_id: str
    day_of_week: int | None
    on_date: date | None
    start_time: time
    end_time: time
    is_active: bool


class TechnicianLike(Protocol):
    id: str
    is_active: bool
    specialties: Sequence[str]
    schedules: Sequence[ScheduleLike]


@dataclass(frozen=True)
class MatchedWindow:
    schedule_id: str
    center_id: str
    start: datetime
    end: datetime

    @property
    def shift(self) -> str:
        return shift_for(self.start.time())


@dataclass
class AvailableTechnician:
    technician: Any
    matched_windows: list[MatchedWindow]
    workload: int

    @property
    def technician_id(self) -> str:
        return self.technician.id

    @property
    def shift(self) -> str:
        return self.matched_windows[0].shift

    @property
    def workload_band(self) -> str:
        return band_for(self.workload)


@dataclass(frozen=True)
class MatchFilters:
    shift: str | None = None
    workload_band: str | None = None
    specialty: str | None = None

    def __post_init__(self):
        if self.shift is not None and self.shift not in SHIFTS:
            raise ValidationError(FieldError("shift", f"must be one of {', '.join(SHIFTS)}"))
        if self.workload_band is not None and self.workload_band not in WORKLOAD_BANDS:
            raise ValidationError(FieldError("workloadBand", f"must be one of {', '.join(WORKLOAD_BANDS)}"))


@dataclass(frozen=True)
class MatchRequest:
    center_id: str
    window: TimeWindow
    filters: MatchFilters = field(default_factory=MatchFilters)

    def __post_init__(self):
        if not self.center_id:
            raise ValidationError(FieldError("centerId", "is required"))


def shift_for(start: time) -> str:
    if start.hour < 12:
        return "morning"
    if start.hour < 17:
        return "afternoon"
    return "evening"


def band_for(workload: int) -> str:
    for name, ceiling in WORKLOAD_BANDS.items():
        if ceiling is None or workload <= ceiling:
            return name
    return "heavy"


def schedule_window_on(schedule: ScheduleLike, day: date) -> TimeWindow | None:
    """Concrete UTC window of ``schedule`` on ``day``, or None if it does not apply."""
    if not schedule.is_active:
        return None
    if schedule.on_date is not None:
        if schedule.on_date != day:
            return None
    elif schedule.day_of_week is None or schedule.day_of_week != day.weekday():
        return None
    return TimeWindow(
        datetime.combine(day, schedule.start_time, tzinfo=timezone.utc),
        datetime.combine(day, schedule.end_time, tzinfo=timezone.utc),
    )


def covering_windows(technician: TechnicianLike, center_id: str, window: TimeWindow) -> list[MatchedWindow]:
    matched = []
    for schedule in technician.schedules:
        if schedule.center_id != center_id:
            continue
        concrete = schedule_window_on(schedule, window.day)
        if concrete is not None and concrete.contains(window):
            matched.append(MatchedWindow(schedule.id, schedule.center_id, concrete.start, concrete.end))
    return sorted(matched, key=lambda m: (m.start, m.schedule_id))


def same_day_workload(technician_id: str, day: date, assignments: Iterable[AssignmentLike]) -> int:
    return sum(
        1 for a in assignments
        if a.technician_id == technician_id
        and is_live(a)
        and TimeWindow(a.planned_start_utc, a.planned_end_utc).day == day
    )


def _passes_filters(candidate: AvailableTechnician, filters: MatchFilters) -> bool:
    if filters.shift and not any(m.shift == filters.shift for m in candidate.matched_windows):
        return False
    if filters.workload_band and candidate.workload_band != filters.workload_band:
        return False
    if filters.specialty:
        wanted = filters.specialty.casefold()
        if not any(s.casefold() == wanted for s in (candidate.technician.specialties or [])):
            return False
    return True


def match_technicians(
    request: MatchRequest,
    roster: Iterable[TechnicianLike],
    assignments: Iterable[AssignmentLike] | None,
) -> list[AvailableTechnician]:
    """Eligible technicians ordered by ascending workload, then id.

    ``assignments=None`` means the caller could not read current assignments;
    conflicts are then left to the authoritative check at creation time.
    An empty result is a normal outcome, not an error.
    """
    known = list(assignments) if assignments is not None else []
    results = []
    for tech in roster:
        if not tech.is_active:
            continue
        matched = covering_windows(tech, request.center_id, request.window)
        if not matched:
            continue
        if assignments is not None and find_conflicts(tech.id, request.window, known):
            continue
        candidate = AvailableTechnician(
            technician=tech,
            matched_windows=matched,
            workload=same_day_workload(tech.id, request.window.day, known),
        )
        if _passes_filters(candidate, request.filters):
            results.append(candidate)

    results.sort(key=lambda c: (c.workload, c.technician_id))
    logger.debug(
        "Matched %d technician(s) for center %s %s-%s",
        len(results), request.center_id, request.window.start, request.window.end,
    )
    return results
