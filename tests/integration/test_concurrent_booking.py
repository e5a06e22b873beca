"""Concurrent booking: the same slot requested from many threads at once."""
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from barbershop.booking import BookingService, ConflictError
from barbershop.sql_store import SqlAppointmentStore
from barbershop.store import LocalAppointmentStore
from tests.utils.booking_dates import MONDAY

WORKERS = 10


def _race(service, payload_factory, start_times):
    """Fire one create per start time simultaneously; return (successes, conflicts)."""
    barrier = threading.Barrier(len(start_times))

    def attempt(index_and_start):
        index, start = index_and_start
        barrier.wait()
        try:
            return service.create_appointment(
                payload_factory(start, customerName=f"Customer {index}")
            )
        except ConflictError:
            return None

    with ThreadPoolExecutor(max_workers=len(start_times)) as pool:
        results = list(pool.map(attempt, enumerate(start_times)))

    successes = [r for r in results if r is not None]
    return successes, len(results) - len(successes)


@pytest.fixture(params=["local_file", "sql"])
def shared_store(request, tmp_path):
    if request.param == "local_file":
        return LocalAppointmentStore(str(tmp_path / "appointments.json"))
    return SqlAppointmentStore(f"sqlite:///{tmp_path / 'appointments.db'}", timeout=10)


def test_exactly_one_winner_for_same_slot(shared_store, catalog, clock, booking_payload):
    service = BookingService(catalog, shared_store, clock=clock)

    successes, conflicts = _race(service, booking_payload, ["10:00"] * WORKERS)

    assert len(successes) == 1
    assert conflicts == WORKERS - 1
    assert len(shared_store.list()) == 1


def test_overlapping_starts_leave_no_overlap(shared_store, catalog, clock, booking_payload):
    """10:00, 10:15 and 10:29 all collide with each other for a 30-minute cut."""
    service = BookingService(catalog, shared_store, clock=clock)

    successes, _ = _race(service, booking_payload, ["10:00", "10:15", "10:29"] * 3)

    assert len(successes) == 1
    assert len([a for a in shared_store.list() if a.occupies_slot]) == 1


def test_independent_slots_all_succeed(shared_store, catalog, clock, booking_payload):
    service = BookingService(catalog, shared_store, clock=clock)
    starts = ["08:00", "09:00", "10:00", "11:00", "12:00"]

    successes, conflicts = _race(service, booking_payload, starts)

    assert conflicts == 0
    assert sorted(a.start_time for a in successes) == starts
    slots = service.get_available_slots(MONDAY, "barber1", "c1")
    assert not set(starts) & set(slots)


def test_separate_engines_on_sql_store_still_one_winner(tmp_path, catalog, clock, booking_payload):
    """Two engines (no shared in-process lock) racing; the unique index decides."""
    url = f"sqlite:///{tmp_path / 'shared.db'}"
    engines = [
        BookingService(catalog, SqlAppointmentStore(url, timeout=10), clock=clock)
        for _ in range(WORKERS)
    ]
    barrier = threading.Barrier(WORKERS)

    def attempt(service):
        barrier.wait()
        try:
            return service.create_appointment(booking_payload("10:00"))
        except ConflictError:
            return None

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        results = list(pool.map(attempt, engines))

    assert len([r for r in results if r is not None]) == 1
    assert len(engines[0].store.list()) == 1
