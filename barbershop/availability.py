"""Candidate slot generation.

Builds the grid of start times a professional could take for a service on
a date, from working hours and slot granularity. Existing bookings are not
considered here; see barbershop.conflicts for that step.

Rules:
- Professional hours override business hours
- Saturdays close at the business' Saturday close time, even when the
  professional has a later close time of their own
- A slot may end exactly at closing time, never after
- For today (business timezone) only start times strictly after now
"""
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from barbershop.catalog import Catalog
from barbershop.catalog_config import BusinessConfig, ProfessionalConfig
from barbershop.logging_config import get_logger
from barbershop.timeutils import (
    format_minutes,
    parse_minutes,
    try_parse_date,
    weekday_sunday_first,
)

logger = get_logger(__name__)

SATURDAY = 6  # 0=Sunday .. 6=Saturday

Clock = Callable[[], datetime]


class SlotGenerator:
    """Produce chronological candidate start times (HH:MM)."""

    def __init__(self, catalog: Catalog, clock: Optional[Clock] = None):
        """
        Args:
            catalog: Source of hours, durations and professionals
            clock: Returns the current instant. Aware datetimes are
                   converted to the business timezone; naive ones are
                   taken as business-local. Defaults to the system clock.
        """
        self.catalog = catalog
        self._clock = clock

    def now(self) -> datetime:
        """Current business-local time."""
        tz = ZoneInfo(self.catalog.get_business_config().timezone)
        if self._clock is None:
            return datetime.now(tz)

        current = self._clock()
        if current.tzinfo is None:
            return current.replace(tzinfo=tz)
        return current.astimezone(tz)

    def today(self) -> date:
        return self.now().date()

    @staticmethod
    def effective_hours(
        business: BusinessConfig,
        professional: Optional[ProfessionalConfig],
        day: date
    ) -> Tuple[int, int]:
        """(open, close) in minutes since midnight for a professional and day."""
        open_time = (professional and professional.open_time) or business.open_time

        if weekday_sunday_first(day) == SATURDAY:
            close_time = business.saturday_close_time
        else:
            close_time = (professional and professional.close_time) or business.close_time

        return parse_minutes(open_time), parse_minutes(close_time)

    def generate_slots(self, date_str: str, professional_id: str, service_id: str) -> List[str]:
        """
        Candidate start times for a booking.

        Returns an empty list (never raises) for an unparseable date,
        unknown professional or service, a service the professional does
        not perform, a closed weekday or a past date.
        """
        day = try_parse_date(date_str)
        professional = self.catalog.find_professional(professional_id)
        service = self.catalog.find_visible_service(service_id)

        if day is None or professional is None or service is None:
            logger.debug(
                "slot_generation_skipped",
                date=date_str,
                professional_id=professional_id,
                service_id=service_id,
                reason="unknown_input"
            )
            return []

        if not professional.performs(service_id):
            return []

        business = self.catalog.get_business_config()
        if weekday_sunday_first(day) not in business.days_open:
            return []

        now = self.now()
        if day < now.date():
            return []

        open_minutes, close_minutes = self.effective_hours(business, professional, day)
        duration = service.duration_minutes

        slots = []
        current = open_minutes
        while current < close_minutes:
            if current + duration > close_minutes:
                break
            slots.append(current)
            current += business.slot_interval

        if day == now.date():
            now_minutes = now.hour * 60 + now.minute
            slots = [s for s in slots if s > now_minutes]

        return [format_minutes(s) for s in slots]
