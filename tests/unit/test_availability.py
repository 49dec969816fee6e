from datetime import date, datetime, time, timedelta, timezone
from types import SimpleNamespace

import pytest

from garageflow.core.availability import (
    MatchFilters, MatchRequest, band_for, match_technicians, shift_for,
)
from garageflow.core.conflicts import TimeWindow
from garageflow.core.errors import ValidationError

MONDAY = date(2026, 3, 2)
CENTER = "center-1"


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 3, 2, hour, minute, tzinfo=timezone.utc)


def schedule(id, center_id=CENTER, day_of_week=0, on_date=None, start=time(8), end=time(17), is_active=True):
    return SimpleNamespace(
        id=id, center_id=center_id, day_of_week=None if on_date else day_of_week, on_date=on_date,
        start_time=start, end_time=end, is_active=is_active,
    )


def tech(id, schedules, is_active=True, specialties=()):
    return SimpleNamespace(id=id, is_active=is_active, specialties=list(specialties), schedules=schedules)


def assignment(id, technician_id, start, end, status="ASSIGNED"):
    return SimpleNamespace(
        id=id, technician_id=technician_id, status=status,
        planned_start_utc=start, planned_end_utc=end,
    )


def request(start, end, **filters):
    return MatchRequest(CENTER, TimeWindow(start, end), MatchFilters(**filters))


def test_schedule_must_fully_contain_the_window():
    roster = [
        tech("t-full", [schedule("s1")]),
        tech("t-short", [schedule("s2", end=time(10))]),
    ]
    result = match_technicians(request(at(9), at(11)), roster, [])
    assert [c.technician_id for c in result] == ["t-full"]
    assert result[0].matched_windows[0].start == at(8)


def test_schedule_at_another_center_or_day_does_not_count():
    roster = [
        tech("t-other-center", [schedule("s1", center_id="center-2")]),
        tech("t-tuesday", [schedule("s2", day_of_week=1)]),
        tech("t-dated", [schedule("s3", on_date=MONDAY)]),
        tech("t-inactive-schedule", [schedule("s4", is_active=False)]),
    ]
    result = match_technicians(request(at(9), at(10)), roster, [])
    assert [c.technician_id for c in result] == ["t-dated"]


def test_inactive_technicians_and_conflicts_are_excluded():
    roster = [tech("t-a", [schedule("s1")]), tech("t-b", [schedule("s2")]), tech("t-c", [schedule("s3")], is_active=False)]
    busy = [assignment("a1", "t-a", at(9, 30), at(10, 30))]
    result = match_technicians(request(at(10), at(11)), roster, busy)
    assert [c.technician_id for c in result] == ["t-b"]


def test_unreadable_assignments_fall_back_to_schedule_only():
    roster = [tech("t-a", [schedule("s1")])]
    result = match_technicians(request(at(10), at(11)), roster, None)
    assert [c.technician_id for c in result] == ["t-a"]
    assert result[0].workload == 0


def test_results_ordered_by_workload_then_id():
    roster = [tech("t-c", [schedule("s1")]), tech("t-a", [schedule("s2")]), tech("t-b", [schedule("s3")])]
    existing = [
        assignment("a1", "t-a", at(8), at(9)),
        assignment("a2", "t-a", at(14), at(15)),
        assignment("a3", "t-c", at(15), at(16)),
        assignment("a4", "t-b", at(8), at(9), status="CANCELLED"),
    ]
    result = match_technicians(request(at(11), at(12)), roster, existing)
    assert [(c.technician_id, c.workload) for c in result] == [("t-b", 0), ("t-c", 1), ("t-a", 2)]


def test_empty_roster_gives_empty_result():
    assert match_technicians(request(at(9), at(10)), [], []) == []


def test_soft_filters():
    roster = [
        tech("t-battery", [schedule("s1")], specialties=["Battery"]),
        tech("t-tyres", [schedule("s2")], specialties=["tyres"]),
    ]
    result = match_technicians(request(at(13), at(14), specialty="battery"), roster, [])
    assert [c.technician_id for c in result] == ["t-battery"]

    # matched window starts at 08:00, so only "morning" passes
    assert match_technicians(request(at(13), at(14), shift="afternoon"), roster, []) == []
    assert len(match_technicians(request(at(13), at(14), shift="morning"), roster, [])) == 2


def test_workload_band_filter():
    roster = [tech("t-a", [schedule("s1")]), tech("t-b", [schedule("s2")])]
    existing = [assignment(f"a{i}", "t-a", at(8 + i), at(9 + i)) for i in range(3)]
    result = match_technicians(request(at(15), at(16), workload_band="moderate"), roster, existing)
    assert [c.technician_id for c in result] == ["t-a"]
    assert result[0].workload_band == "moderate"


@pytest.mark.parametrize("hour, expected", [(0, "morning"), (11, "morning"), (12, "afternoon"), (16, "afternoon"), (17, "evening")])
def test_shift_boundaries(hour, expected):
    assert shift_for(time(hour, 59 if hour in (11, 16) else 0)) == expected


@pytest.mark.parametrize("workload, expected", [(0, "light"), (2, "light"), (3, "moderate"), (5, "moderate"), (6, "heavy")])
def test_workload_bands(workload, expected):
    assert band_for(workload) == expected


def test_request_validation():
    with pytest.raises(ValidationError):
        MatchRequest("", TimeWindow(at(9), at(10)))
    with pytest.raises(ValidationError):
        MatchFilters(shift="night")
    with pytest.raises(ValidationError):
        MatchFilters(workload_band="extreme")


def test_window_spanning_midnight_is_not_covered_by_a_day_schedule():
    roster = [tech("t-a", [schedule("s1", start=time(0), end=time(23, 59))])]
    window = request(at(23), at(23) + timedelta(hours=2))
    assert match_technicians(window, roster, []) == []
