"""Tests for candidate slot generation."""
from datetime import date, datetime, UTC

import pytest

from barbershop.availability import SlotGenerator
from barbershop.catalog_config import BusinessConfig, ProfessionalConfig
from tests.utils.booking_dates import MONDAY, SATURDAY, SUNDAY


@pytest.fixture
def generator(catalog, clock):
    return SlotGenerator(catalog, clock)


class TestGrid:
    """Walking working hours in slot-interval steps."""

    def test_full_day_grid_for_30_minute_service(self, generator):
        slots = generator.generate_slots(MONDAY, "barber1", "c1")

        assert slots[0] == "08:00"
        assert slots[-1] == "17:30"
        assert len(slots) == 20
        assert slots == sorted(slots)

    def test_slot_may_end_exactly_at_close(self, generator):
        """17:30 + 30 min = 18:00 = close, still valid."""
        slots = generator.generate_slots(MONDAY, "barber1", "c1")
        assert "17:30" in slots

    def test_longer_service_never_runs_past_close(self, generator):
        """50-minute combo: 17:00 ends 17:50, 17:30 would end 18:20."""
        slots = generator.generate_slots(MONDAY, "barber1", "cb2")

        assert slots[-1] == "17:00"
        assert "17:30" not in slots

    def test_professional_open_time_override(self, generator):
        """Marcio starts at 09:00."""
        slots = generator.generate_slots(MONDAY, "barber2", "c1")
        assert slots[0] == "09:00"
        assert "08:30" not in slots

    def test_slot_interval_comes_from_business_config(self, catalog, clock):
        catalog.update_business_config(slot_interval=15)
        slots = SlotGenerator(catalog, clock).generate_slots(MONDAY, "barber1", "c1")

        assert slots[:3] == ["08:00", "08:15", "08:30"]
        assert slots[-1] == "17:30"


class TestSaturdayEarlyClose:
    """Saturday close time wins over the professional's own close time."""

    def test_saturday_closes_at_17_even_with_later_professional_close(self, catalog, clock):
        catalog.update_professional_hours("barber1", open_time=None, close_time="20:00")
        generator = SlotGenerator(catalog, clock)

        slots = generator.generate_slots(SATURDAY, "barber1", "c1")

        assert slots[-1] == "16:30"
        assert all(s <= "16:30" for s in slots)

    def test_professional_close_applies_on_weekdays(self, catalog, clock):
        catalog.update_professional_hours("barber1", open_time=None, close_time="20:00")
        generator = SlotGenerator(catalog, clock)

        slots = generator.generate_slots(MONDAY, "barber1", "c1")
        assert slots[-1] == "19:30"

    def test_effective_hours(self):
        business = BusinessConfig(name="Shop")
        professional = ProfessionalConfig(id="p", name="P", open_time="09:00", close_time="20:00")

        assert SlotGenerator.effective_hours(business, professional, date(2024, 6, 10)) == (540, 1200)
        assert SlotGenerator.effective_hours(business, professional, date(2024, 6, 15)) == (540, 1020)
        assert SlotGenerator.effective_hours(business, None, date(2024, 6, 10)) == (480, 1080)


class TestPastSlots:
    """Today's slots must be strictly in the future (business timezone)."""

    def test_excludes_slots_at_or_before_now(self, generator, clock):
        clock.set(2024, 6, 10, 14, 5)

        slots = generator.generate_slots(MONDAY, "barber1", "c1")

        assert "14:00" not in slots
        assert slots[0] == "14:30"
        assert all(s > "14:05" for s in slots)

    def test_slot_equal_to_now_is_excluded(self, generator, clock):
        clock.set(2024, 6, 10, 14, 30)

        slots = generator.generate_slots(MONDAY, "barber1", "c1")
        assert slots[0] == "15:00"

    def test_uses_business_timezone_not_caller_timezone(self, catalog):
        """17:05 UTC is 14:05 in Sao Paulo."""
        generator = SlotGenerator(catalog, lambda: datetime(2024, 6, 10, 17, 5, tzinfo=UTC))

        slots = generator.generate_slots(MONDAY, "barber1", "c1")
        assert slots[0] == "14:30"

    def test_future_date_unaffected_by_time_of_day(self, generator, clock):
        clock.set(2024, 6, 9, 23, 50)

        slots = generator.generate_slots(MONDAY, "barber1", "c1")
        assert slots[0] == "08:00"

    def test_past_date_has_no_slots(self, generator, clock):
        clock.set(2024, 6, 11, 8, 0)
        assert generator.generate_slots(MONDAY, "barber1", "c1") == []

    def test_after_closing_today_has_no_slots(self, generator, clock):
        clock.set(2024, 6, 10, 18, 0)
        assert generator.generate_slots(MONDAY, "barber1", "c1") == []


class TestDegradesToEmpty:
    """Bad or unknown input yields an empty list, never an exception."""

    @pytest.mark.parametrize("date_str,professional_id,service_id", [
        ("not-a-date", "barber1", "c1"),
        ("2024-13-40", "barber1", "c1"),
        (MONDAY, "ghost", "c1"),
        (MONDAY, "barber1", "missing"),
        (MONDAY, "barber1", "block-60"),  # hidden services are not bookable slots
        (MONDAY, "barber4", "c1"),  # nails only
    ])
    def test_empty(self, generator, date_str, professional_id, service_id):
        assert generator.generate_slots(date_str, professional_id, service_id) == []

    def test_closed_weekday(self, generator):
        assert generator.generate_slots(SUNDAY, "barber1", "c1") == []

    def test_deleted_service_yields_no_slots(self, catalog, clock):
        catalog.delete_service("c1")
        assert SlotGenerator(catalog, clock).generate_slots(MONDAY, "barber1", "c1") == []
