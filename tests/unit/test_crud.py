from datetime import date, datetime, time, timezone

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from garageflow.models import Base
from garageflow.db import crud


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


def at(hour: int, day: int = 2) -> datetime:
    return datetime(2026, 3, day, hour, tzinfo=timezone.utc)


async def test_create_and_get_booking(db):
    booking = await crud.create_booking(db, "center-1", at(9), at(10), "cust-1", "VIN1")
    assert booking.id is not None
    assert booking.status == "PENDING"
    assert booking.kind == "booking"

    fetched = await crud.get_booking(db, booking.id)
    assert fetched.vehicle_ref == "VIN1"


async def test_list_bookings_by_center_and_day(db):
    await crud.create_booking(db, "center-1", at(9), at(10), "c", "V1")
    await crud.create_booking(db, "center-1", at(9, day=3), at(10, day=3), "c", "V2")
    await crud.create_booking(db, "center-2", at(9), at(10), "c", "V3")

    rows = await crud.list_bookings(db, center_id="center-1", day=date(2026, 3, 2))
    assert [b.vehicle_ref for b in rows] == ["V1"]


async def test_find_overlapping_bookings_ignores_closed_ones(db):
    open_booking = await crud.create_booking(db, "center-1", at(9), at(11), "c", "VIN9")
    closed = await crud.create_booking(db, "center-1", at(9), at(11), "c", "VIN9")
    await crud.update_booking(db, closed, status="CANCELLED")

    found = await crud.find_overlapping_bookings(db, "VIN9", at(10), at(12))
    assert [b.id for b in found] == [open_booking.id]
    assert await crud.find_overlapping_bookings(db, "VIN9", at(11), at(12)) == []


async def test_technician_with_schedules(db):
    tech = await crud.create_technician(db, "Ana", specialties=["battery"])
    assert tech.schedules == []
    await crud.add_work_schedule(db, tech, "center-1", time(8), time(17), day_of_week=0)
    await crud.add_work_schedule(db, tech, "center-1", time(18), time(20), on_date=date(2026, 3, 4))

    fetched = await crud.get_technician(db, tech.id)
    assert len(fetched.schedules) == 2
    assert fetched.specialties == ["battery"]


async def test_list_live_assignments(db):
    tech = await crud.create_technician(db, "Ana")
    booking = await crud.create_booking(db, "center-1", at(9), at(10), "c", "V1")
    a1 = await crud.create_assignment(db, booking.id, tech.id, "center-1", at(9), at(10))
    a2 = await crud.create_assignment(db, booking.id, tech.id, "center-1", at(11), at(12))
    await crud.update_assignment(db, a2, status="CANCELLED")

    live = await crud.list_live_assignments(db, technician_id=tech.id)
    assert [a.id for a in live] == [a1.id]
    assert len(await crud.list_assignments(db, booking_id=booking.id)) == 2


async def test_queue_day_is_created_once(db):
    first = await crud.get_queue_day(db, "center-1", "2026-03-02")
    second = await crud.get_queue_day(db, "center-1", "2026-03-02")
    assert first.id == second.id
    assert first.version == 0


async def test_queue_tickets_waiting_first_by_position(db):
    booking = await crud.create_booking(db, "center-1", at(9), at(10), "c", "V1")
    t1 = await crud.add_queue_ticket(db, "center-1", "2026-03-02", booking.id, position=2)
    t2 = await crud.add_queue_ticket(db, "center-1", "2026-03-02", booking.id, position=1)
    t3 = await crud.add_queue_ticket(db, "center-1", "2026-03-02", booking.id, position=3)
    t3.status = "NoShow"
    await db.commit()

    tickets = await crud.list_queue_tickets(db, "center-1", "2026-03-02")
    assert [t.id for t in tickets] == [t2.id, t1.id, t3.id]


async def test_checklist_items_exclude_inactive_by_default(db):
    await crud.create_checklist_item(db, "Exterior", "Scratches", "Bool", is_required=True)
    await crud.create_checklist_item(db, "Exterior", "Old item", "Bool", is_active=False)
    assert len(await crud.list_checklist_items(db)) == 1
    assert len(await crud.list_checklist_items(db, active_only=False)) == 2


async def test_upsert_responses_overwrites_by_item(db):
    booking = await crud.create_booking(db, "center-1", at(9), at(10), "c", "V1")
    intake = await crud.create_intake(db, booking.id, license_plate="AB-123")
    item = await crud.create_checklist_item(db, "Battery", "SoC", "Number", is_required=True)

    await crud.upsert_responses(db, intake.id, [{"checklist_item_id": item.id, "number_value": 40.0}])
    await db.commit()
    await crud.upsert_responses(db, intake.id, [{"checklist_item_id": item.id, "number_value": 55.0}])
    await db.commit()

    responses = await crud.list_responses(db, intake.id)
    assert len(responses) == 1
    assert responses[0].number_value == 55.0


async def test_work_order_with_tasks(db):
    booking = await crud.create_booking(db, "center-1", at(9), at(10), "c", "V1")
    intake = await crud.create_intake(db, booking.id)
    wo = await crud.create_work_order(db, intake.id, service_type="Battery check", tasks=[
        {"title": "Diagnose"}, {"title": "Replace module", "estimated_minutes": 90},
    ])
    assert wo.status == "Draft"
    assert [t.title for t in wo.tasks] == ["Diagnose", "Replace module"]
    assert [t.order for t in wo.tasks] == [1, 2]

    task = await crud.add_task(db, wo, "Road test")
    assert task.order == 3
    assert (await crud.get_work_order_for_intake(db, intake.id)).id == wo.id
