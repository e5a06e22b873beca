"""Shared test fixtures."""
import itertools
from datetime import datetime, UTC

import pytest

from barbershop.booking import BookingService
from barbershop.catalog import Catalog
from barbershop.catalog_config import default_catalog_config
from barbershop.models import Appointment, AppointmentStatus
from barbershop.store import LocalAppointmentStore
from tests.utils.booking_dates import MONDAY, SAO_PAULO


class FakeClock:
    """Settable clock returning business-local time."""

    def __init__(self, now: datetime):
        self.now = now

    def set(self, *args):
        self.now = datetime(*args, tzinfo=SAO_PAULO)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    """Saturday 2024-06-01 07:00 in Sao Paulo: every test date is in the future."""
    return FakeClock(datetime(2024, 6, 1, 7, 0, tzinfo=SAO_PAULO))


@pytest.fixture
def catalog():
    """Fresh seed catalog (not persisted)."""
    return Catalog(default_catalog_config())


@pytest.fixture
def store():
    """In-memory local store."""
    return LocalAppointmentStore()


@pytest.fixture
def booking(catalog, store, clock):
    """Booking engine wired to the in-memory store and fake clock."""
    return BookingService(catalog, store, clock=clock, allow_degraded_reads=False)


@pytest.fixture
def make_appointment():
    """Build stored Appointment records directly (bypassing the orchestrator)."""
    counter = itertools.count(1)

    def _make(
        start_time: str,
        professional_id: str = "barber1",
        service_id: str = "c1",
        date: str = MONDAY,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
        duration_minutes: int = None,
        customer_name: str = "Test Customer",
        customer_phone: str = "79999990000",
    ) -> Appointment:
        return Appointment(
            id=f"apt-{next(counter)}",
            professional_id=professional_id,
            service_id=service_id,
            date=date,
            start_time=start_time,
            customer_name=customer_name,
            customer_phone=customer_phone,
            status=status,
            created_at=datetime.now(UTC),
            duration_minutes=duration_minutes,
        )

    return _make


@pytest.fixture
def booking_payload():
    """Valid camelCase booking payload factory."""
    def _create(start_time: str = "09:00", **overrides) -> dict:
        payload = {
            "professionalId": "barber1",
            "serviceId": "c1",
            "date": MONDAY,
            "startTime": start_time,
            "customerName": "John Doe",
            "customerPhone": "79 99999-0000",
        }
        payload.update(overrides)
        return payload
    return _create
