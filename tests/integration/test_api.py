"""Integration tests for API endpoints."""

from __future__ import annotations

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from garageflow.db.engine import get_db
from garageflow.main import app
from garageflow.models import Base

CENTER = "center-1"


@pytest_asyncio.fixture
async def client():
    """Test client over an in-memory database."""
    test_engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    test_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async def override_get_db():
        async with test_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await test_engine.dispose()


async def make_booking(client, vehicle="VIN1", start="2026-03-02T09:00:00Z", end="2026-03-02T11:00:00Z"):
    r = await client.post("/api/bookings", json={
        "centerId": CENTER, "startUtc": start, "endUtc": end,
        "customerRef": "cust-1", "vehicleRef": vehicle,
    })
    assert r.status_code == 201, r.text
    return r.json()


async def make_technician(client, name="Ana", **extra):
    r = await client.post("/api/technicians", json={
        "name": name,
        "schedules": [{"centerId": CENTER, "dayOfWeek": 0, "startTime": "08:00:00", "endTime": "17:00:00"}],
        **extra,
    })
    assert r.status_code == 201, r.text
    return r.json()


async def assign(client, booking, tech, start="2026-03-02T09:00:00Z", end="2026-03-02T11:00:00Z"):
    return await client.post("/api/assignments", json={
        "bookingId": booking["id"], "technicianId": tech["id"], "centerId": CENTER,
        "plannedStartUtc": start, "plannedEndUtc": end,
    })


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


async def test_create_and_get_booking(client):
    booking = await make_booking(client)
    assert booking["status"] == "PENDING"
    assert booking["startUtc"] == "2026-03-02T09:00:00Z"

    r = await client.get(f"/api/bookings/{booking['id']}")
    assert r.status_code == 200
    assert r.json()["vehicleRef"] == "VIN1"


async def test_missing_booking_is_404(client):
    r = await client.get("/api/bookings/nope")
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


async def test_duplicate_booking_is_409(client):
    first = await make_booking(client)
    r = await client.post("/api/bookings", json={
        "centerId": CENTER, "startUtc": "2026-03-02T10:00:00Z", "endUtc": "2026-03-02T12:00:00Z",
        "customerRef": "cust-1", "vehicleRef": "VIN1",
    })
    assert r.status_code == 409
    body = r.json()
    assert body["reason"] == "duplicate_booking"
    assert body["existingBookingIds"] == [first["id"]]


async def test_validation_errors_are_400_with_paths(client):
    r = await client.post("/api/assignments", json={"technicianId": "t1"})
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "validation_error"
    assert "centerId" in {e["path"] for e in body["errors"]}


async def test_booking_transition_rules(client):
    booking = await make_booking(client)
    r = await client.post(f"/api/bookings/{booking['id']}/transition", json={"status": "COMPLETED"})
    assert r.status_code == 422
    assert r.json()["code"] == "invalid_transition"

    r = await client.post(f"/api/bookings/{booking['id']}/transition", json={"status": "CANCELLED"})
    assert r.status_code == 200
    assert r.json()["status"] == "CANCELLED"


async def test_technician_roster_and_schedules(client):
    tech = await make_technician(client, specialties=["battery"])
    assert len(tech["schedules"]) == 1

    r = await client.post(f"/api/technicians/{tech['id']}/schedules", json={
        "centerId": CENTER, "onDate": "2026-03-07", "startTime": "09:00:00", "endTime": "13:00:00",
    })
    assert r.status_code == 201

    r = await client.get(f"/api/technicians/{tech['id']}")
    assert len(r.json()["schedules"]) == 2

    r = await client.delete(f"/api/technicians/{tech['id']}")
    assert r.status_code == 200
    r = await client.get("/api/technicians", params={"activeOnly": "true"})
    assert r.json() == []


async def test_available_technicians(client):
    ana = await make_technician(client, "Ana")
    tomas = await make_technician(client, "Tomas")
    booking = await make_booking(client)
    assert (await assign(client, booking, ana)).status_code == 201

    r = await client.get("/api/technicians/available", params={
        "centerId": CENTER, "startUtc": "2026-03-02T10:00:00Z", "endUtc": "2026-03-02T12:00:00Z",
    })
    assert r.status_code == 200
    assert [c["technician"]["id"] for c in r.json()] == [tomas["id"]]
    assert r.json()[0]["workloadBand"] == "light"

    r = await client.get("/api/technicians/available", params={
        "centerId": CENTER, "startUtc": "2026-03-02T10:00:00Z", "endUtc": "2026-03-02T12:00:00Z",
        "shift": "night",
    })
    assert r.status_code == 400


async def test_assignment_overlap_is_409_with_details(client):
    tech = await make_technician(client)
    b1 = await make_booking(client, "VIN1")
    b2 = await make_booking(client, "VIN2")
    first = (await assign(client, b1, tech)).json()

    r = await assign(client, b2, tech, "2026-03-02T10:30:00Z", "2026-03-02T12:00:00Z")
    assert r.status_code == 409
    body = r.json()
    assert body["reason"] == "assignment_overlap"
    assert body["technicianId"] == tech["id"]
    assert body["conflictingAssignmentIds"] == [first["id"]]

    r = await client.get(f"/api/bookings/{b2['id']}")
    assert r.json()["status"] == "PENDING"


async def test_cancel_assignment_response(client):
    tech = await make_technician(client)
    booking = await make_booking(client)
    assignment = (await assign(client, booking, tech)).json()

    r = await client.delete(f"/api/assignments/{assignment['id']}")
    assert r.status_code == 200
    body = r.json()
    assert body["assignment"]["status"] == "CANCELLED"
    assert body["hasActiveAssignments"] is False
    assert body["bookingStatus"] == "REASSIGNED"


async def test_reschedule_and_status(client):
    tech = await make_technician(client)
    booking = await make_booking(client)
    assignment = (await assign(client, booking, tech)).json()

    r = await client.put(f"/api/assignments/{assignment['id']}/reschedule", json={
        "plannedStartUtc": "2026-03-02T13:00:00Z", "plannedEndUtc": "2026-03-02T14:00:00Z",
    })
    assert r.status_code == 200
    assert r.json()["plannedStartUtc"] == "2026-03-02T13:00:00Z"

    r = await client.put(f"/api/assignments/{assignment['id']}/status", json={"status": "COMPLETED"})
    assert r.status_code == 422
    r = await client.put(f"/api/assignments/{assignment['id']}/status", json={"status": "ACTIVE"})
    assert r.json()["status"] == "ACTIVE"


async def test_queue_reorder_and_version_conflict(client):
    tickets = []
    for i in range(3):
        booking = await make_booking(client, f"VIN{i}")
        r = await client.post("/api/queue", json={"centerId": CENTER, "date": "2026-03-02", "bookingId": booking["id"]})
        assert r.status_code == 201
        tickets.append(r.json())
    assert [t["position"] for t in tickets] == [1, 2, 3]

    r = await client.get("/api/queue", params={"centerId": CENTER, "date": "2026-03-02"})
    queue = r.json()
    assert queue["version"] == 3

    order = [tickets[2]["id"], tickets[0]["id"], tickets[1]["id"]]
    r = await client.post("/api/queue/reorder", json={
        "centerId": CENTER, "date": "2026-03-02", "ticketIds": order, "version": queue["version"],
    })
    assert r.status_code == 200
    assert [t["id"] for t in r.json()["tickets"]] == order
    assert [t["position"] for t in r.json()["tickets"]] == [1, 2, 3]

    r = await client.post("/api/queue/reorder", json={
        "centerId": CENTER, "date": "2026-03-02", "ticketIds": order, "version": queue["version"],
    })
    assert r.status_code == 409
    assert r.json()["reason"] == "queue_version_mismatch"
    assert r.json()["currentVersion"] == 4


async def test_queue_no_show_and_eta(client):
    booking = await make_booking(client)
    ticket = (await client.post("/api/queue", json={"centerId": CENTER, "date": "2026-03-02", "bookingId": booking["id"]})).json()

    r = await client.patch(f"/api/queue/{ticket['id']}/eta", json={"estimatedStartUtc": "2026-03-02T09:30:00Z"})
    assert r.json()["estimatedStartUtc"] == "2026-03-02T09:30:00Z"

    r = await client.post(f"/api/queue/{ticket['id']}/no-show")
    assert r.status_code == 200
    assert r.json()["noShow"] is True


async def _checklist(client):
    items = []
    for label, item_type, required in [("Damage", "Bool", True), ("SoC", "Number", True), ("Remarks", "Text", False)]:
        r = await client.post("/api/checklist-items", json={
            "category": "General", "label": label, "type": item_type, "isRequired": required,
        })
        assert r.status_code == 201
        items.append(r.json())
    return items


async def test_intake_gate_over_http(client):
    damage, soc, _ = await _checklist(client)
    booking = await make_booking(client)
    r = await client.post("/api/intakes", json={"bookingId": booking["id"], "licensePlate": "AB-123"})
    assert r.status_code == 201
    intake = r.json()
    assert intake["status"] == "Checked_In"

    r = await client.put(f"/api/intakes/{intake['id']}/responses", json={"responses": [
        {"checklistItemId": damage["id"], "numberValue": 1},
    ]})
    assert r.status_code == 400
    assert r.json()["errors"][0]["path"] == "responses[0].numberValue"

    r = await client.put(f"/api/intakes/{intake['id']}/responses", json={"responses": [
        {"checklistItemId": damage["id"], "boolValue": False},
    ]})
    assert r.status_code == 200
    assert (await client.get(f"/api/intakes/{intake['id']}")).json()["status"] == "Inspecting"

    r = await client.post(f"/api/intakes/{intake['id']}/transition", json={"status": "Verified"})
    assert r.status_code == 422
    assert r.json()["code"] == "incomplete_checklist"
    assert r.json()["missingItemIds"] == [soc["id"]]

    r = await client.get(f"/api/intakes/{intake['id']}/completion")
    assert r.json()["requiredCompleted"] == 1
    assert r.json()["ratio"] == 0.5

    await client.put(f"/api/intakes/{intake['id']}/responses", json={"responses": [
        {"checklistItemId": soc["id"], "numberValue": 64.5},
    ]})
    r = await client.post(f"/api/intakes/{intake['id']}/transition", json={"status": "Verified"})
    assert r.status_code == 200
    assert r.json()["verifiedAt"] is not None


async def test_work_order_requires_finalized_intake(client):
    booking = await make_booking(client)
    intake = (await client.post("/api/intakes", json={"bookingId": booking["id"]})).json()

    r = await client.post("/api/work-orders", json={"intakeId": intake["id"]})
    assert r.status_code == 422

    for status in ("Inspecting", "Verified", "Finalized"):
        r = await client.post(f"/api/intakes/{intake['id']}/transition", json={"status": status})
        assert r.status_code == 200, r.text

    r = await client.put(f"/api/intakes/{intake['id']}/responses", json={"responses": []})
    assert r.status_code == 409

    r = await client.post("/api/work-orders", json={
        "intakeId": intake["id"], "serviceType": "Battery check", "tasks": [{"title": "Diagnose"}],
    })
    assert r.status_code == 201
    wo = r.json()
    assert wo["status"] == "Draft"
    assert wo["tasks"][0]["status"] == "NotStarted"

    r = await client.post("/api/work-orders", json={"intakeId": intake["id"]})
    assert r.status_code == 409

    r = await client.post(f"/api/work-orders/{wo['id']}/transition", json={"status": "Approved"})
    assert r.status_code == 422
    r = await client.post(f"/api/work-orders/{wo['id']}/transition", json={"status": "AwaitingApproval"})
    assert r.json()["status"] == "AwaitingApproval"

    task_id = wo["tasks"][0]["id"]
    r = await client.patch(f"/api/work-orders/{wo['id']}/tasks/{task_id}", json={"status": "Done"})
    assert r.status_code == 422
    r = await client.patch(f"/api/work-orders/{wo['id']}/tasks/{task_id}", json={"status": "InProgress"})
    assert r.json()["status"] == "InProgress"
