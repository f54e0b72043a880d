"""
HTTP tests for the booking API, run against an in-memory database.
"""
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from venue_booking.database import get_db
from venue_booking.main import app

NEXT_WEEK = (date.today() + timedelta(days=7)).isoformat()


@pytest.fixture
def client(db, venue_tables):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def booking_payload(**overrides):
    payload = {
        "customerName": "Ada Lovelace",
        "email": "ada@example.com",
        "bookingDate": NEXT_WEEK,
        "arrivalTime": "20:00",
        "partySize": 4,
    }
    payload.update(overrides)
    return payload


def qr_payload(reference, code, signature):
    return {
        "bookingRef": reference,
        "checkInCode": code,
        "partySize": 4,
        "bookingDate": NEXT_WEEK,
        "signature": signature,
        "staffMember": "door-1",
    }


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestBookingsApi:
    """Tests for /bookings and /door-staff."""

    def test_create_and_fetch(self, client):
        response = client.post("/bookings", json=booking_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["tableNumbers"] == [1]

        fetched = client.get(f"/bookings/{body['reference']}")
        assert fetched.status_code == 200
        assert fetched.json()["id"] == body["id"]

    def test_quota_rejection_is_403(self, client):
        client.post("/bookings", json=booking_payload(tableNumbers=[1, 2]))

        response = client.post("/bookings", json=booking_payload(tableNumbers=[3]))

        assert response.status_code == 403
        assert response.json()["detail"] == "Maximum tables reached"
        assert response.json()["remaining_tables"] == 0

    def test_malformed_payload_is_422(self, client):
        response = client.post("/bookings", json=booking_payload(email=None))

        assert response.status_code == 422

    def test_unknown_booking_is_404(self, client):
        assert client.get("/bookings/BRL-2026-12345").status_code == 404

    def test_confirm_then_cancel(self, client):
        reference = client.post("/bookings", json=booking_payload()).json()["reference"]

        confirmed = client.post(f"/bookings/{reference}/confirm", json={})
        assert confirmed.status_code == 200
        assert len(confirmed.json()["checkInCode"]) == 6

        cancelled = client.post(f"/bookings/{reference}/cancel", json={"reason": "Ill"})
        assert cancelled.status_code == 200
        body = cancelled.json()
        assert body["booking"]["status"] == "cancelled"
        assert body["cancellationRef"].startswith("CXL-")
        assert body["refund"]["eligible"] is True

        again = client.post(f"/bookings/{reference}/cancel", json={"reason": "Ill"})
        assert again.status_code == 409

    def test_check_in_for_another_night_is_400(self, client):
        reference = client.post("/bookings", json=booking_payload()).json()["reference"]
        code = client.post(f"/bookings/{reference}/confirm", json={}).json()["checkInCode"]

        response = client.post(
            "/door-staff/check-in", json={"code": code, "staffMember": "door-1"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Booking is not for today"

    def test_qr_with_bad_signature_is_400(self, client):
        reference = client.post("/bookings", json=booking_payload()).json()["reference"]
        code = client.post(f"/bookings/{reference}/confirm", json={}).json()["checkInCode"]

        response = client.post("/door-staff/qr-verify", json=qr_payload(reference, code, "0" * 16))

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid QR code signature"

    def test_qr_with_good_signature_reaches_check_in(self, client):
        reference = client.post("/bookings", json=booking_payload()).json()["reference"]
        confirmed = client.post(f"/bookings/{reference}/confirm", json={}).json()

        response = client.post(
            "/door-staff/qr-verify",
            json=qr_payload(reference, confirmed["checkInCode"], confirmed["qrSignature"]),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Booking is not for today"

    def test_search_without_matches(self, client):
        response = client.get("/door-staff/search", params={"query": "nobody"})

        assert response.status_code == 200
        assert response.json() == []

    def test_search_requires_a_query(self, client):
        assert client.get("/door-staff/search").status_code == 422


class TestLimitsApi:
    """Tests for /booking/limits."""

    def test_rules(self, client):
        body = client.get("/booking/limits").json()

        assert body["tierQuotas"]["standard"] == 2

    def test_unknown_customer(self, client):
        response = client.post(
            "/booking/limits/validate",
            json={"contact": {"email": "new@example.com"}, "bookingDate": NEXT_WEEK},
        )

        body = response.json()
        assert body["identified"] is False
        assert body["allowed"] is True
        assert body["remainingTables"] == 2

    def test_known_customer_at_quota(self, client):
        client.post("/bookings", json=booking_payload(tableNumbers=[1, 2]))

        response = client.post(
            "/booking/limits/validate",
            json={"contact": {"email": "ada@example.com"}, "bookingDate": NEXT_WEEK},
        )

        body = response.json()
        assert body["identified"] is True
        assert body["platforms"] == ["email"]
        assert body["allowed"] is False
        assert body["reason"] == "Maximum tables reached"

    def test_override_for_unknown_customer_is_404(self, client):
        response = client.post(
            "/booking/limits/override",
            json={
                "contact": {"email": "new@example.com"},
                "reason": "Birthday",
                "additionalTables": 1,
                "authorizedBy": "manager",
            },
        )

        assert response.status_code == 404


class TestCombinationsApi:
    """Tests for /booking/combinations."""

    def test_list(self, client):
        body = client.get("/booking/combinations").json()

        assert body["threshold"] == 7
        assert body["combinations"][0]["tables"] == [15, 16]

    def test_party_of_eight(self, client):
        response = client.post(
            "/booking/combinations/check", json={"partySize": 8, "bookingDate": NEXT_WEEK}
        )

        body = response.json()
        assert body["shouldCombine"] is True
        assert body["tables"] == [15, 16]
        assert body["totalCapacity"] == 14
        assert body["pricing"] == {"basePrice": 120.0, "combinationFee": 25.0, "totalPrice": 145.0}

    def test_party_of_six(self, client):
        response = client.post(
            "/booking/combinations/check", json={"partySize": 6, "bookingDate": NEXT_WEEK}
        )

        assert response.json()["shouldCombine"] is False

    def test_layout(self, client):
        response = client.get("/booking/combinations/layout", params={"date": NEXT_WEEK})

        assert response.json()["combinations"][0]["combination_status"] == "available"


class TestReferencesApi:
    def test_validate(self, client):
        year = date.today().year

        assert client.get(
            "/booking/references/validate", params={"ref": f"BRL-{year}-85000"}
        ).json()["is_vip"] is True
        assert client.get(
            "/booking/references/validate", params={"ref": "nonsense"}
        ).json()["valid"] is False
