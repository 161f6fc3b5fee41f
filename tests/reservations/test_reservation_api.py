"""API tests for reservation, checkin, snooze, checkout and bad guest routes."""

import pytest

from innkeeper.reservations.domain import MAX_INTERVAL
from innkeeper.reservations.infrastructure import SQLAlchemyReservationRepository

RESERVATION = {
    "app": "svc",
    "component": "db",
    "owner": "ops",
    "notify": "#ops",
    "frequency": 5,
    "timeUnits": "minutes",
}


class TestReservationEndpoints:
    @pytest.mark.asyncio
    async def test_create_reservation(self, client):
        response = await client.post("/reservation", json=RESERVATION)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Reservation stored: svc/db"}

    @pytest.mark.asyncio
    async def test_snake_case_fields_accepted(self, client):
        payload = {**RESERVATION, "time_units": "hours", "alert_message": "db down"}
        del payload["timeUnits"]

        response = await client.post("/reservation", json=payload)

        assert response.status_code == 200
        listed = (await client.get("/reservation")).json()["result"][0]
        assert listed["timeUnits"] == "hours"
        assert listed["alertMessage"] == "db down"

    @pytest.mark.asyncio
    async def test_invalid_time_units(self, client):
        response = await client.post("/reservation", json={**RESERVATION, "timeUnits": "weeks"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Unable to store reservation, validation failure [Invalid time_units passed in]",
        }

    @pytest.mark.asyncio
    async def test_frequency_too_large(self, client):
        response = await client.post("/reservation", json={**RESERVATION, "frequency": 10**20})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": f"Unable to store reservation, validation failure [frequency must be at most {MAX_INTERVAL}]",
        }
        assert (await client.get("/reservation")).json()["result"] == []

    @pytest.mark.asyncio
    async def test_largest_frequency_is_stored(self, client):
        response = await client.post("/reservation", json={**RESERVATION, "frequency": MAX_INTERVAL, "timeUnits": "hours"})

        assert response.status_code == 200
        item = (await client.get("/reservation/svc/db")).json()["result"]
        assert item["frequency"] == MAX_INTERVAL

    @pytest.mark.asyncio
    async def test_malformed_body(self, client):
        response = await client.post(
            "/reservation",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Unable to accept reservation"}

    @pytest.mark.asyncio
    async def test_list_reports_sla_fields(self, client):
        await client.post("/reservation", json=RESERVATION)
        await client.post("/checkin", json={"app": "svc", "component": "db"})

        response = await client.get("/reservation")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        [item] = body["result"]
        assert item["app"] == "svc"
        assert item["numCheckins"] == 1
        assert item["failingSLA"] is False
        assert item["timeSinceLastCheckin"] in ("just now", "1 second ago")
        assert item["lastCheckinStr"].endswith("UTC")

    @pytest.mark.asyncio
    async def test_never_checked_in_is_failing(self, client):
        await client.post("/reservation", json=RESERVATION)

        [item] = (await client.get("/reservation")).json()["result"]

        assert item["failingSLA"] is True
        assert item["numCheckins"] == 0

    @pytest.mark.asyncio
    async def test_get_single_reservation(self, client):
        await client.post("/reservation", json=RESERVATION)

        response = await client.get("/reservation/svc/db")

        assert response.status_code == 200
        assert response.json()["result"]["component"] == "db"

    @pytest.mark.asyncio
    async def test_get_missing_reservation(self, client):
        response = await client.get("/reservation/ghost/x")

        assert response.status_code == 404
        assert response.json()["success"] is False


class TestCheckinEndpoint:
    @pytest.mark.asyncio
    async def test_checkin_unknown_pair(self, client):
        response = await client.post("/checkin", json={"app": "new", "component": "x"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Application checked in: new"}

        item = (await client.get("/reservation/new/x")).json()["result"]
        assert item["numCheckins"] == 1
        assert item["frequency"] == 0
        assert item["failingSLA"] is False

    @pytest.mark.asyncio
    async def test_checkin_without_component(self, client):
        response = await client.post("/checkin", json={"app": "svc"})

        assert response.status_code == 400
        assert response.json()["message"].startswith("Unable to store checkin, validation failure")


class TestSnoozeEndpoint:
    @pytest.mark.asyncio
    async def test_snooze_suppresses_failure(self, client):
        await client.post("/reservation", json=RESERVATION)

        response = await client.post(
            "/snooze",
            json={"app": "svc", "component": "db", "duration": 1, "timeUnits": "hours"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Application alerting paused: svc"}
        item = (await client.get("/reservation/svc/db")).json()["result"]
        assert item["failingSLA"] is False
        assert item["snoozedUntil"] is not None

    @pytest.mark.asyncio
    async def test_snooze_duration_too_large(self, client):
        response = await client.post(
            "/snooze",
            json={"app": "svc", "component": "db", "duration": 10**16, "timeUnits": "hours"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == (
            f"Unable to store snooze, validation failure [duration must be at most {MAX_INTERVAL}]"
        )

    @pytest.mark.asyncio
    async def test_longest_snooze_is_stored(self, client):
        await client.post("/reservation", json=RESERVATION)

        response = await client.post(
            "/snooze",
            json={"app": "svc", "component": "db", "duration": MAX_INTERVAL, "timeUnits": "hours"},
        )

        assert response.status_code == 200
        item = (await client.get("/reservation/svc/db")).json()["result"]
        assert item["snoozedUntil"] > MAX_INTERVAL * 3600

    @pytest.mark.asyncio
    async def test_snooze_zero_duration(self, client):
        response = await client.post(
            "/snooze",
            json={"app": "svc", "component": "db", "duration": 0, "timeUnits": "hours"},
        )

        assert response.status_code == 400


class TestCheckoutEndpoint:
    @pytest.mark.asyncio
    async def test_checkout(self, client):
        await client.post("/reservation", json=RESERVATION)

        response = await client.post("/checkout", json={"app": "svc", "component": "db"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Application Removed [svc/db]"}
        assert (await client.get("/reservation")).json()["result"] == []

    @pytest.mark.asyncio
    async def test_checkout_unknown_pair_succeeds(self, client):
        response = await client.post("/checkout", json={"app": "ghost", "component": "x"})

        assert response.status_code == 200


class TestBadGuestsEndpoint:
    @pytest.mark.asyncio
    async def test_bad_guests(self, client, db_session):
        repository = SQLAlchemyReservationRepository(db_session)
        for _ in range(3):
            await repository.record_alert("svc", "db", "down", 100)
        await repository.record_alert("svc", "cache", "down", 100)
        await repository.commit()

        response = await client.get("/badguests")

        assert response.status_code == 200
        assert response.json()["result"] == [
            {"app": "svc", "component": "db", "numFails": 3},
            {"app": "svc", "component": "cache", "numFails": 1},
        ]


class TestRoot:
    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "A-OK!"

    @pytest.mark.asyncio
    async def test_correlation_id_is_echoed(self, client):
        response = await client.get("/", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"

    @pytest.mark.asyncio
    async def test_correlation_id_is_generated(self, client):
        response = await client.get("/")

        assert response.headers["X-Correlation-ID"]


class TestOpenAPI:
    @pytest.mark.asyncio
    async def test_write_routes_document_operation_envelope(self, client):
        schema = (await client.get("/openapi.json")).json()

        assert set(schema["components"]["schemas"]["OperationResponse"]["properties"]) == {"success", "message"}
        checkin_ok = schema["paths"]["/checkin"]["post"]["responses"]["200"]
        assert checkin_ok["content"]["application/json"]["schema"] == {"$ref": "#/components/schemas/OperationResponse"}
