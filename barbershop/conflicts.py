"""Conflict detection between appointment intervals.

Intervals are half-open [start, end) in minutes since midnight, so a
booking that ends at 10:30 does not collide with one starting at 10:30.
Everything here is pure: callers pass in the appointments and durations.
"""
from typing import Iterable, List, Mapping, NamedTuple, Optional

from barbershop import config
from barbershop.models import Appointment
from barbershop.timeutils import format_minutes, parse_minutes, try_parse_minutes


class ConflictError(Exception):
    """Requested interval overlaps a confirmed or blocked appointment."""

    def __init__(self, message: str, conflicting: Optional[Appointment] = None):
        super().__init__(message)
        self.conflicting = conflicting


class Interval(NamedTuple):
    start: int
    end: int

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"


def resolve_duration(
    appointment: Appointment,
    durations: Mapping[str, int],
    default: int = config.DEFAULT_DURATION_MINUTES
) -> int:
    """
    Occupied length of an existing appointment.

    Order: snapshot taken at booking time, then the current catalog
    (visible + hidden), then the default for deleted services.
    """
    if appointment.duration_minutes:
        return appointment.duration_minutes
    return durations.get(appointment.service_id, default)


def commitments_for(
    appointments: Iterable[Appointment],
    professional_id: str,
    date: str
) -> List[Appointment]:
    """Confirmed/blocked appointments for one professional on one date."""
    return [
        a for a in appointments
        if a.professional_id == professional_id
        and a.date == date
        and a.occupies_slot
    ]


def appointment_interval(appointment: Appointment, durations: Mapping[str, int]) -> Interval:
    start = parse_minutes(appointment.start_time)
    return Interval(start, start + resolve_duration(appointment, durations))


def find_conflict(
    candidate: Interval,
    commitments: Iterable[Appointment],
    durations: Mapping[str, int]
) -> Optional[Appointment]:
    """First commitment overlapping the candidate, or None."""
    for appointment in commitments:
        if candidate.overlaps(appointment_interval(appointment, durations)):
            return appointment
    return None


def filter_available(
    candidates: Iterable[str],
    professional_id: str,
    date: str,
    service_id: str,
    existing: Iterable[Appointment],
    durations: Mapping[str, int]
) -> List[str]:
    """
    Keep candidate start times whose interval is free.

    Args:
        candidates: Start times (HH:MM) from the slot generator
        professional_id: Professional being booked
        date: YYYY-MM-DD
        service_id: Requested service; its duration sizes each candidate
        existing: All known appointments (filtered here)
        durations: Service id -> minutes for visible + hidden services

    Returns:
        Candidates in their original order. An unknown service yields
        no slots.
    """
    duration = durations.get(service_id)
    if duration is None:
        return []

    commitments = commitments_for(existing, professional_id, date)
    busy = [appointment_interval(a, durations) for a in commitments]

    available = []
    for slot in candidates:
        start = try_parse_minutes(slot)
        if start is None:
            continue
        candidate = Interval(start, start + duration)
        if not any(candidate.overlaps(interval) for interval in busy):
            available.append(slot)
    return available
