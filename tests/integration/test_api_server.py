"""Integration tests for the booking HTTP API (Flask test client)."""
import pytest

from barbershop.api_server import create_app
from barbershop.booking import BookingService
from barbershop.store import LocalAppointmentStore, StoreError
from tests.utils.booking_dates import MONDAY, SATURDAY


class DownStore(LocalAppointmentStore):
    def list(self):
        raise StoreError("connection refused")


@pytest.fixture
def service(catalog, store, clock):
    return BookingService(catalog, store, clock=clock, allow_degraded_reads=False)


@pytest.fixture
def client(service):
    app = create_app(service)
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def book(client, payload):
    return client.post("/appointments", json=payload)


class TestCatalogEndpoints:

    def test_services_exclude_hidden(self, client):
        response = client.get("/services")
        data = response.get_json()

        assert response.status_code == 200
        assert data["success"] is True
        ids = [s["id"] for s in data["services"]]
        assert "c1" in ids
        assert not any(i.startswith("block-") for i in ids)
        assert data["services"][0]["durationMinutes"] == 30

    def test_professionals_for_service(self, client):
        data = client.get("/professionals?service_id=u1").get_json()
        assert [p["id"] for p in data["professionals"]] == ["barber4"]

    def test_all_professionals(self, client):
        data = client.get("/professionals").get_json()
        assert data["total"] == 4
        assert "serviceIds" in data["professionals"][0]


class TestAvailabilityEndpoint:

    def test_returns_slots(self, client):
        response = client.get(f"/availability?date={MONDAY}&professional_id=barber1&service_id=c1")
        data = response.get_json()

        assert response.status_code == 200
        assert data["total"] == 20
        assert data["slots"][0] == "08:00"

    def test_missing_parameters(self, client):
        response = client.get(f"/availability?date={MONDAY}")

        assert response.status_code == 400
        assert "professional_id" in response.get_json()["error"]

    def test_unknown_inputs_give_empty_list(self, client):
        data = client.get(f"/availability?date={MONDAY}&professional_id=ghost&service_id=c1").get_json()
        assert data["slots"] == []

    def test_store_down_is_503(self, catalog, clock):
        app = create_app(BookingService(catalog, DownStore(), clock=clock, allow_degraded_reads=False))
        response = app.test_client().get(
            f"/availability?date={MONDAY}&professional_id=barber1&service_id=c1"
        )

        assert response.status_code == 503
        assert response.get_json()["success"] is False


class TestBookingFlow:

    def test_create_returns_201_with_links(self, client, booking_payload):
        response = book(client, booking_payload("10:00"))
        data = response.get_json()

        assert response.status_code == 201
        appointment = data["appointment"]
        assert appointment["status"] == "confirmed"
        assert appointment["startTime"] == "10:00"
        assert appointment["serviceName"] == "Fade Cut"
        assert appointment["professionalName"] == "Luis"
        assert appointment["whatsappUrl"].startswith("https://wa.me/5579999990000?text=")
        assert "calendar.google.com" in appointment["calendarUrl"]
        assert response.headers["X-Request-ID"].startswith("req-")

    def test_booked_slot_leaves_availability(self, client, booking_payload):
        book(client, booking_payload("10:00"))

        slots = client.get(
            f"/availability?date={MONDAY}&professional_id=barber1&service_id=c1"
        ).get_json()["slots"]

        assert "10:00" not in slots

    def test_double_booking_is_409(self, client, booking_payload):
        assert book(client, booking_payload("10:00")).status_code == 201

        response = book(client, booking_payload("10:00", customerName="Jane"))

        assert response.status_code == 409
        assert response.get_json()["success"] is False
        assert "Slot unavailable" in response.get_json()["error"]

    @pytest.mark.parametrize("overrides", [
        {"date": None},
        {"professionalId": "ghost"},
        {"serviceId": "nope"},
        {"startTime": "99:99"},
        {"customerName": ""},
    ])
    def test_invalid_payload_is_400(self, client, booking_payload, overrides):
        payload = {k: v for k, v in booking_payload("10:00", **overrides).items() if v is not None}

        response = book(client, payload)

        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_empty_body_is_400(self, client):
        response = client.post("/appointments", data="", content_type="application/json")
        assert response.status_code == 400

    def test_cancel_then_rebook(self, client, booking_payload):
        appointment_id = book(client, booking_payload("10:00")).get_json()["appointment"]["id"]

        response = client.patch(f"/appointments/{appointment_id}/cancel")
        assert response.status_code == 200
        assert response.get_json()["appointment"]["status"] == "cancelled"

        # idempotent
        assert client.patch(f"/appointments/{appointment_id}/cancel").status_code == 200

        assert book(client, booking_payload("10:00", customerName="Jane")).status_code == 201

    def test_complete_and_invalid_transition(self, client, booking_payload):
        appointment_id = book(client, booking_payload("10:00")).get_json()["appointment"]["id"]

        response = client.patch(f"/appointments/{appointment_id}/complete")
        assert response.get_json()["appointment"]["status"] == "completed"

        response = client.patch(f"/appointments/{appointment_id}/cancel")
        assert response.status_code == 400

    def test_unknown_appointment_is_404(self, client):
        response = client.patch("/appointments/does-not-exist/cancel")

        assert response.status_code == 404
        assert response.get_json()["success"] is False


class TestAdminEndpoints:

    def test_block_slot(self, client):
        response = client.post("/blocks", json={
            "professionalId": "barber1",
            "date": MONDAY,
            "startTime": "12:00",
            "serviceId": "block-60",
            "note": "Lunch",
        })
        appointment = response.get_json()["appointment"]

        assert response.status_code == 201
        assert appointment["status"] == "blocked"
        assert appointment["customerNote"] == "Lunch"
        assert "whatsappUrl" not in appointment

        slots = client.get(
            f"/availability?date={MONDAY}&professional_id=barber1&service_id=c1"
        ).get_json()["slots"]
        assert "12:00" not in slots
        assert "12:30" not in slots

    def test_block_missing_fields(self, client):
        response = client.post("/blocks", json={"professionalId": "barber1"})
        assert response.status_code == 400

    def test_block_with_visible_service(self, client):
        response = client.post("/blocks", json={
            "professionalId": "barber1", "date": MONDAY, "startTime": "12:00", "serviceId": "c1",
        })
        assert response.status_code == 400

    def test_agenda(self, client, booking_payload):
        book(client, booking_payload("15:00", customerName="Later"))
        book(client, booking_payload("09:00", customerName="Earlier"))
        book(client, booking_payload("09:00", professionalId="barber3", customerName="Other"))

        data = client.get("/appointments?professional_id=barber1").get_json()
        assert [a["customerName"] for a in data["appointments"]] == ["Earlier", "Later"]

        data = client.get("/appointments?search=other").get_json()
        assert data["total"] == 1

        assert client.get("/appointments?when=someday").status_code == 400

    def test_clear_all(self, client, booking_payload):
        book(client, booking_payload("10:00"))

        assert client.delete("/appointments").status_code == 200
        assert client.get("/appointments").get_json()["total"] == 0

    def test_update_professional_hours(self, client):
        response = client.patch("/professionals/barber1/hours", json={"closeTime": "20:00"})
        assert response.status_code == 200
        assert response.get_json()["professional"]["closeTime"] == "20:00"

        weekday = client.get(
            f"/availability?date={MONDAY}&professional_id=barber1&service_id=c1"
        ).get_json()["slots"]
        saturday = client.get(
            f"/availability?date={SATURDAY}&professional_id=barber1&service_id=c1"
        ).get_json()["slots"]

        assert weekday[-1] == "19:30"
        assert saturday[-1] == "16:30"

    def test_update_hours_keeps_the_other_value(self, client):
        response = client.patch("/professionals/barber2/hours", json={"closeTime": "20:00"})

        professional = response.get_json()["professional"]
        assert professional["openTime"] == "09:00"
        assert professional["closeTime"] == "20:00"

    def test_update_hours_null_clears_override(self, client):
        response = client.patch("/professionals/barber2/hours", json={"openTime": None})

        assert response.status_code == 200
        assert response.get_json()["professional"]["openTime"] is None

    def test_update_hours_requires_a_field(self, client):
        response = client.patch("/professionals/barber2/hours", json={})

        assert response.status_code == 400
        assert client.get("/professionals").get_json()["professionals"][1]["openTime"] == "09:00"

    def test_update_hours_rejects_bad_time(self, client):
        response = client.patch("/professionals/barber1/hours", json={"closeTime": "late"})
        assert response.status_code == 400

    def test_update_hours_unknown_professional(self, client):
        response = client.patch("/professionals/ghost/hours", json={"closeTime": "19:00"})
        assert response.status_code == 400

    def test_reset_catalog(self, client):
        client.patch("/professionals/barber1/hours", json={"closeTime": "20:00"})

        response = client.post("/catalog/reset")

        assert response.status_code == 200
        assert response.get_json()["success"] is True
        slots = client.get(
            f"/availability?date={MONDAY}&professional_id=barber1&service_id=c1"
        ).get_json()["slots"]
        assert slots[-1] == "17:30"


class TestHealth:

    def test_healthy(self, client):
        data = client.get("/health").get_json()
        assert data["status"] == "healthy"

    def test_store_unreachable(self, catalog, clock):
        app = create_app(BookingService(catalog, DownStore(), clock=clock))
        response = app.test_client().get("/health")

        assert response.status_code == 503
        assert response.get_json()["store"] == "unreachable"
