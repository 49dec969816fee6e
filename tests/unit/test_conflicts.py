from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from garageflow.core.conflicts import TimeWindow, find_conflicts, has_conflict, overlaps
from garageflow.core.errors import ValidationError

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def hours(n: float) -> timedelta:
    return timedelta(hours=n)


def assignment(id, start, end, technician_id="tech-1", status="ASSIGNED"):
    return SimpleNamespace(
        id=id, technician_id=technician_id, status=status,
        planned_start_utc=start, planned_end_utc=end,
    )


@pytest.mark.parametrize("a, b", [
    ((T0, T0 + hours(2)), (T0 + hours(1), T0 + hours(3))),
    ((T0, T0 + hours(4)), (T0 + hours(1), T0 + hours(2))),
    ((T0, T0 + hours(1)), (T0 + hours(1), T0 + hours(2))),
    ((T0, T0 + hours(1)), (T0 + hours(5), T0 + hours(6))),
])
def test_overlap_is_symmetric(a, b):
    assert overlaps(*a, *b) == overlaps(*b, *a)


def test_back_to_back_windows_do_not_overlap():
    assert not overlaps(T0, T0 + hours(1), T0 + hours(1), T0 + hours(2))
    assert overlaps(T0, T0 + hours(1) + timedelta(seconds=1), T0 + hours(1), T0 + hours(2))


def test_naive_datetimes_are_read_as_utc():
    naive = T0.replace(tzinfo=None)
    assert overlaps(naive, naive + hours(1), T0 + timedelta(minutes=30), T0 + hours(2))


def test_window_normalizes_offsets_to_utc():
    plus_two = timezone(timedelta(hours=2))
    window = TimeWindow(datetime(2026, 3, 2, 11, 0, tzinfo=plus_two), datetime(2026, 3, 2, 12, 0, tzinfo=plus_two))
    assert window.start == T0
    assert window.start.tzinfo == timezone.utc


@pytest.mark.parametrize("start, end", [(T0, T0), (T0 + hours(1), T0)])
def test_window_rejects_empty_or_inverted(start, end):
    with pytest.raises(ValidationError) as exc:
        TimeWindow(start, end)
    assert exc.value.errors[0].path == "window.end"


def test_window_rejects_non_datetimes():
    with pytest.raises(ValidationError):
        TimeWindow("2026-03-02T09:00:00Z", T0)


def test_conflicts_only_count_live_assignments_of_the_same_technician():
    window = TimeWindow(T0, T0 + hours(2))
    existing = [
        assignment("a1", T0 + hours(1), T0 + hours(3)),
        assignment("a2", T0, T0 + hours(1), status="CANCELLED"),
        assignment("a3", T0, T0 + hours(1), status="COMPLETED"),
        assignment("a4", T0, T0 + hours(1), technician_id="tech-2"),
        assignment("a5", T0 + hours(2), T0 + hours(3)),
    ]
    assert [a.id for a in find_conflicts("tech-1", window, existing)] == ["a1"]


@pytest.mark.parametrize("status", ["PENDING", "ASSIGNED", "ACTIVE"])
def test_live_statuses_conflict(status):
    existing = [assignment("a1", T0, T0 + hours(1), status=status)]
    assert has_conflict("tech-1", TimeWindow(T0, T0 + hours(1)), existing)


def test_exclude_id_skips_the_assignment_being_moved():
    existing = [assignment("a1", T0, T0 + hours(2))]
    window = TimeWindow(T0 + hours(1), T0 + hours(3))
    assert has_conflict("tech-1", window, existing)
    assert not has_conflict("tech-1", window, existing, exclude_id="a1")
