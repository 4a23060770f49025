"""
Reservation, Car and Report API Tests.

Exercises the HTTP surface end to end against an in-memory store.
"""

import pytest
from datetime import datetime, timezone
from sqlalchemy.exc import SQLAlchemyError


async def create_car(client, plate="10-AB-123", price=100, **extra):
    response = await client.post("/v1/cars", json={
        "brand": "Toyota", "model": "Corolla", "plate": plate, "base_price_per_day": price, **extra
    })
    assert response.status_code == 201, response.text
    return response.json()


async def create_customer(client, first_name="Aysel", last_name="Mammadova"):
    response = await client.post("/v1/customers", json={
        "first_name": first_name, "last_name": last_name, "phone": "+994501112233"
    })
    assert response.status_code == 201, response.text
    return response.json()


async def book(client, car_id, customer_id, start="2024-06-01T10:00", end="2024-06-03T09:00", **extra):
    return await client.post("/v1/reservations", json={
        "car_id": car_id, "customer_id": customer_id, "start_at": start, "end_at": end, **extra
    })


@pytest.fixture
async def fleet(client):
    car = await create_car(client)
    customer = await create_customer(client)
    return car, customer


# ============================================================================
# CARS & CUSTOMERS
# ============================================================================

async def test_new_car_starts_free(client):
    car = await create_car(client)
    assert car["status"] == "FREE"

    response = await client.get(f"/v1/cars/{car['id']}")
    assert response.json()["plate"] == "10-AB-123"


async def test_duplicate_plate_is_rejected(client):
    await create_car(client, plate="10-AB-123")
    response = await client.post("/v1/cars", json={"plate": "10 ab 123"})
    assert response.status_code == 409
    assert response.json()["details"]["reason"] == "duplicate_plate"


async def test_car_status_cannot_be_set(client):
    car = await create_car(client)
    response = await client.patch(f"/v1/cars/{car['id']}", json={"status": "IN_USE"})
    assert response.status_code == 422


async def test_car_update(client):
    car = await create_car(client)
    response = await client.patch(f"/v1/cars/{car['id']}", json={"base_price_per_day": 120, "vin": None})
    assert response.status_code == 200
    assert response.json()["base_price_per_day"] == 120


async def test_negative_car_price_is_rejected(client):
    response = await client.post("/v1/cars", json={"plate": "99-XX-999", "base_price_per_day": -1})
    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "invalid_price"


async def test_unknown_car_is_404(client):
    response = await client.get("/v1/cars/nope")
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


async def test_car_with_booking_cannot_be_deleted(client, fleet):
    car, customer = fleet
    reservation = (await book(client, car["id"], customer["id"])).json()

    response = await client.delete(f"/v1/cars/{car['id']}")
    assert response.status_code == 409
    assert response.json()["details"]["reason"] == "car_has_reservations"

    await client.post(f"/v1/reservations/{reservation['id']}/cancel")
    response = await client.delete(f"/v1/cars/{car['id']}")
    assert response.status_code == 200


async def test_customer_with_booking_cannot_be_deleted(client, fleet):
    car, customer = fleet
    await book(client, car["id"], customer["id"])

    response = await client.delete(f"/v1/customers/{customer['id']}")
    assert response.status_code == 409
    assert response.json()["details"]["reason"] == "customer_has_reservations"


async def test_customer_crud(client):
    customer = await create_customer(client)
    response = await client.patch(f"/v1/customers/{customer['id']}", json={"phone": "+994559998877"})
    assert response.json()["phone"] == "+994559998877"

    response = await client.get("/v1/customers")
    assert len(response.json()) == 1

    response = await client.delete(f"/v1/customers/{customer['id']}")
    assert response.status_code == 200
    assert (await client.get(f"/v1/customers/{customer['id']}")).status_code == 404


# ============================================================================
# RESERVATIONS
# ============================================================================

async def test_create_reservation(client, fleet, notifier):
    car, customer = fleet
    response = await book(client, car["id"], customer["id"], discount_percent=10)

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "BOOKED"
    assert data["days"] == 3
    assert data["total_price"] == 270
    assert notifier.events[0][0] == "reservation.created"

    car_now = (await client.get(f"/v1/cars/{car['id']}")).json()
    assert car_now["status"] == "RESERVED"


async def test_failed_car_status_write_is_503_and_rolled_back(client, repository, mocker, fleet):
    car, customer = fleet
    original_replace = repository._replace

    async def replace(session, name, records):
        if name == "cars":
            raise SQLAlchemyError("disk I/O error")
        await original_replace(session, name, records)

    mocker.patch.object(repository, "_replace", side_effect=replace)
    response = await book(client, car["id"], customer["id"])

    assert response.status_code == 503
    assert response.json()["error_code"] == "ERR_STORAGE_001"
    assert (await client.get("/v1/reservations")).json() == []
    assert (await client.get(f"/v1/cars/{car['id']}")).json()["status"] == "FREE"


async def test_overlap_is_409_with_reason(client, fleet):
    car, customer = fleet
    first = (await book(client, car["id"], customer["id"])).json()

    response = await book(client, car["id"], customer["id"], start="2024-06-03T09:00", end="2024-06-04")

    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "ERR_RESERVATION_OVERLAP"
    assert body["details"]["reason"] == "overlap"
    assert body["details"]["conflicting_reservation_id"] == first["id"]


@pytest.mark.parametrize("payload, reason", [
    ({"start_at": "2024-06-01"}, "missing_fields"),
    ({"start_at": "yesterday", "end_at": "2024-06-03"}, "invalid_dates"),
    ({"start_at": "2024-06-05", "end_at": "2024-06-01"}, "invalid_interval"),
    ({"start_at": "2024-06-01", "end_at": "2024-06-03", "discount_percent": 120}, "invalid_discount"),
])
async def test_invalid_bookings_are_400(client, fleet, payload, reason):
    car, customer = fleet
    response = await client.post("/v1/reservations", json={
        "car_id": car["id"], "customer_id": customer["id"], **payload
    })
    assert response.status_code == 400
    assert response.json()["details"]["reason"] == reason


async def test_epoch_millisecond_instants_are_accepted(client, fleet):
    car, customer = fleet
    start = int(datetime(2024, 6, 1, 6, tzinfo=timezone.utc).timestamp() * 1000)
    end = int(datetime(2024, 6, 2, 6, tzinfo=timezone.utc).timestamp() * 1000)
    response = await book(client, car["id"], customer["id"], start=start, end=end)
    assert response.status_code == 201
    assert response.json()["days"] == 2


async def test_availability_check(client, fleet):
    car, customer = fleet
    reservation = (await book(client, car["id"], customer["id"])).json()

    response = await client.get("/v1/reservations/check", params={
        "car_id": car["id"], "start_at": "2024-06-02", "end_at": "2024-06-05"
    })
    assert response.json() == {"available": False, "overlap": True}

    response = await client.post("/v1/reservations/check", json={
        "car_id": car["id"], "start_at": "2024-06-02", "end_at": "2024-06-05", "exclude_id": reservation["id"]
    })
    assert response.json() == {"available": True, "overlap": False}


async def test_amend_reservation(client, fleet):
    car, customer = fleet
    reservation = (await book(client, car["id"], customer["id"])).json()

    response = await client.patch(f"/v1/reservations/{reservation['id']}", json={
        "end_at": "2024-06-04T09:00", "destination": "Quba"
    })
    assert response.status_code == 200
    assert response.json()["days"] == 4
    assert response.json()["total_price"] == 400
    assert response.json()["destination"] == "Quba"


async def test_amend_rejects_derived_fields(client, fleet):
    car, customer = fleet
    reservation = (await book(client, car["id"], customer["id"])).json()
    response = await client.patch(f"/v1/reservations/{reservation['id']}", json={"total_price": 1})
    assert response.status_code == 422


async def test_cancel_complete_flow(client, fleet):
    car, customer = fleet
    reservation = (await book(client, car["id"], customer["id"])).json()

    response = await client.post(f"/v1/reservations/{reservation['id']}/complete")
    assert response.json()["status"] == "COMPLETED"

    response = await client.post(f"/v1/reservations/{reservation['id']}/cancel")
    assert response.status_code == 409
    assert response.json()["details"]["reason"] == "invalid_transition"

    response = await client.patch(f"/v1/reservations/{reservation['id']}", json={"destination": "Sheki"})
    assert response.status_code == 409
    assert response.json()["details"]["reason"] == "reservation_closed"


async def test_delete_reservation(client, fleet):
    car, customer = fleet
    reservation = (await book(client, car["id"], customer["id"])).json()

    response = await client.delete(f"/v1/reservations/{reservation['id']}")
    assert response.status_code == 200
    assert response.json()["id"] == reservation["id"]
    assert (await client.get("/v1/reservations")).json() == []
    assert (await client.get(f"/v1/reservations/{reservation['id']}")).status_code == 404


# ============================================================================
# STATUS
# ============================================================================

async def test_live_status_and_refresh(client, clock, fleet):
    car, customer = fleet
    await book(client, car["id"], customer["id"])

    clock.set(datetime(2024, 6, 2, 8, 0, tzinfo=timezone.utc))

    response = await client.get(f"/v1/cars/{car['id']}/status")
    assert response.json() == {"car_id": car["id"], "status": "IN_USE"}

    # Cached value is stale until refreshed
    assert (await client.get(f"/v1/cars/{car['id']}")).json()["status"] == "RESERVED"

    response = await client.post("/v1/cars/status/refresh")
    assert response.json() == {"statuses": {car["id"]: "IN_USE"}, "count": 1}
    assert (await client.get(f"/v1/cars/{car['id']}")).json()["status"] == "IN_USE"


# ============================================================================
# REPORTS
# ============================================================================

async def test_monthly_revenue(client, fleet):
    car, customer = fleet
    await book(client, car["id"], customer["id"], start="2024-05-30", end="2024-06-02")
    await book(client, car["id"], customer["id"], start="2024-06-10", end="2024-06-10")
    canceled = (await book(client, car["id"], customer["id"], start="2024-06-20", end="2024-06-21")).json()
    await client.post(f"/v1/reservations/{canceled['id']}/cancel")

    june = (await client.get("/v1/revenue", params={"month": "2024-06"})).json()
    assert june["count"] == 2
    assert june["total"] == 400 + 100
    assert june["items"][0]["car"]["plate"] == "10-AB-123"
    assert june["items"][0]["customer"]["name"] == "Aysel Mammadova"

    may = (await client.get("/v1/revenue", params={"month": "2024-05"})).json()
    assert may["count"] == 1
    assert may["total"] == 400


async def test_revenue_defaults_to_current_month(client, fleet):
    car, customer = fleet
    await book(client, car["id"], customer["id"], start="2024-05-20", end="2024-05-21")

    response = await client.get("/v1/revenue", params={"month": "garbage"})
    assert response.json()["count"] == 1


@pytest.mark.parametrize("month", ["9999-12", "0001-01"])
async def test_revenue_with_unrepresentable_month_falls_back(client, fleet, month):
    car, customer = fleet
    await book(client, car["id"], customer["id"], start="2024-05-20", end="2024-05-21")

    response = await client.get("/v1/revenue", params={"month": month})
    assert response.status_code == 200
    assert response.json()["count"] == 1


async def test_search_by_plate(client, clock, fleet):
    car, customer = fleet
    current = (await book(client, car["id"], customer["id"], start="2024-05-14", end="2024-05-16")).json()
    upcoming = (await book(client, car["id"], customer["id"], start="2024-06-10", end="2024-06-12")).json()
    await book(client, car["id"], customer["id"], start="2024-07-01", end="2024-07-02")

    response = await client.get("/v1/search", params={"plate": "10ab123"})
    assert response.status_code == 200
    data = response.json()
    assert data["found"] is True
    assert data["car"]["id"] == car["id"]
    assert data["current_reservation"]["id"] == current["id"]
    assert data["current_reservation"]["customer_name"] == "Aysel Mammadova"
    assert data["next_reservation"]["id"] == upcoming["id"]


async def test_search_errors(client):
    response = await client.get("/v1/search", params={"plate": " - "})
    assert response.status_code == 400
    assert response.json()["details"]["reason"] == "plate_required"

    response = await client.get("/v1/search", params={"plate": "00-XX-000"})
    assert response.status_code == 404


# ============================================================================
# SERVICE
# ============================================================================

async def test_health_and_correlation_header(client):
    response = await client.get("/health", headers={"X-Correlation-ID": "abc-123"})
    assert response.status_code == 200
    assert response.json()["timezone"] == "Asia/Baku"
    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert "X-Process-Time" in response.headers


async def test_telegram_status_without_token(client):
    response = await client.get("/v1/notifications/telegram/status")
    assert response.status_code == 200
    assert response.json()["ok"] is False
