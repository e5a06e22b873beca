"""Booking orchestration: the single writer of appointments.

Composes the slot generator, the conflict resolver and the store:

    get_available_slots  -> generator grid, minus current commitments
    create_appointment   -> validate, re-check overlap against the store,
                            persist (confirmed, or blocked for hidden services)
    cancel / complete    -> status state machine

Writes for one (professional, date) are serialized in-process with a
KeyedLock. Across processes only the SQL store's unique index closes the
check-then-act window; the local and remote stores accept that race.
"""
import uuid
from datetime import datetime, UTC
from typing import Callable, List, Optional, Union

import pydantic

from barbershop import config
from barbershop.availability import SlotGenerator
from barbershop.catalog import Catalog
from barbershop.conflicts import (
    ConflictError,
    Interval,
    commitments_for,
    filter_available,
    find_conflict,
    appointment_interval,
)
from barbershop.locks import KeyedLock
from barbershop.logging_config import get_logger
from barbershop.models import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    InvalidTransitionError,
    ValidationError,
)
from barbershop.store import AppointmentNotFoundError, AppointmentStore, StoreError
from barbershop.timeutils import parse_minutes

logger = get_logger(__name__)

__all__ = [
    "AGENDA_FILTERS",
    "AppointmentNotFoundError",
    "BookingService",
    "ConflictError",
    "InvalidTransitionError",
    "StoreError",
    "ValidationError",
]

# Fields that must be present and non-empty, checked before anything else
REQUIRED_FIELDS = {
    "date": ("date",),
    "start_time": ("startTime", "start_time", "time"),
    "professional_id": ("professionalId", "professional_id", "barberId"),
}

AGENDA_FILTERS = ("all", "today", "upcoming")


def _format_validation_error(exc: pydantic.ValidationError) -> str:
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()))
        problems.append(f"{field}: {error.get('msg')}")
    return "; ".join(problems)


class BookingService:
    """Scheduling engine entry points used by the HTTP and admin layers."""

    def __init__(
        self,
        catalog: Catalog,
        store: AppointmentStore,
        clock: Optional[Callable[[], datetime]] = None,
        allow_degraded_reads: Optional[bool] = None,
        locks: Optional[KeyedLock] = None
    ):
        """
        Args:
            catalog: Services, blocks, professionals and business calendar
            store: Appointment persistence (any backend)
            clock: Current time source, forwarded to the slot generator
            allow_degraded_reads: Let availability treat the date as free
                when the store is down (default: config.ALLOW_DEGRADED_READS)
            locks: Per-(professional, date) write serialization
        """
        self.catalog = catalog
        self.store = store
        self.generator = SlotGenerator(catalog, clock)
        self.locks = locks or KeyedLock()
        if allow_degraded_reads is None:
            allow_degraded_reads = config.ALLOW_DEGRADED_READS
        self.allow_degraded_reads = allow_degraded_reads

    # --- Reads ---

    def get_available_slots(self, date: str, professional_id: str, service_id: str) -> List[str]:
        """
        Bookable start times (HH:MM) for a professional, service and date.

        Raises:
            StoreError: Store unavailable and degraded reads are disabled
        """
        candidates = self.generator.generate_slots(date, professional_id, service_id)
        if not candidates:
            return []

        try:
            existing = self.store.list()
        except StoreError as e:
            if not self.allow_degraded_reads:
                raise
            logger.warning(
                "store_unavailable_degraded_read",
                date=date,
                professional_id=professional_id,
                error=str(e)
            )
            existing = []

        return filter_available(
            candidates,
            professional_id,
            date,
            service_id,
            existing,
            self.catalog.durations()
        )

    def agenda(
        self,
        professional_id: Optional[str] = None,
        when: str = "all",
        search: str = ""
    ) -> List[Appointment]:
        """
        Appointments for the admin agenda, sorted by date and time.

        Args:
            professional_id: Only this professional's appointments
            when: all | today | upcoming (business timezone)
            search: Case-insensitive match on customer name or phone
        """
        if when not in AGENDA_FILTERS:
            raise ValidationError(f"Unknown agenda filter '{when}'. Use one of {AGENDA_FILTERS}")

        today = self.generator.today().isoformat()
        needle = (search or "").strip().lower()

        selected = []
        for appointment in self.store.list():
            if professional_id and appointment.professional_id != professional_id:
                continue
            if when == "today" and appointment.date != today:
                continue
            if when == "upcoming" and appointment.date < today:
                continue
            if needle and needle not in appointment.customer_name.lower() \
                    and needle not in appointment.customer_phone:
                continue
            selected.append(appointment)

        # Stable sort: insertion order breaks ties
        return sorted(selected, key=lambda a: (a.date, a.start_time))

    # --- Writes ---

    def create_appointment(self, payload: Union[AppointmentRequest, dict]) -> Appointment:
        """
        Validate and persist a new appointment.

        Raises:
            ValidationError: Missing/malformed fields, unknown professional
                or service
            ConflictError: Overlaps a confirmed or blocked appointment
            StoreError: Store unavailable
        """
        request = self._parse_request(payload)

        if self.catalog.find_professional(request.professional_id) is None:
            raise ValidationError(f"Professional '{request.professional_id}' not found")

        service = self.catalog.find_service(request.service_id)
        if service is None:
            raise ValidationError(f"Service '{request.service_id}' not found")

        is_block = self.catalog.is_hidden(request.service_id)
        if not is_block:
            if not request.customer_name:
                raise ValidationError("Missing required field: customerName")
            if not request.customer_phone:
                raise ValidationError("Missing required field: customerPhone")

        start = parse_minutes(request.start_time)
        candidate = Interval(start, start + service.duration_minutes)

        with self.locks.hold((request.professional_id, request.date)):
            commitments = commitments_for(
                self.store.list(), request.professional_id, request.date
            )
            durations = self.catalog.durations()
            clash = find_conflict(candidate, commitments, durations)
            if clash is not None:
                logger.info(
                    "booking_conflict",
                    professional_id=request.professional_id,
                    date=request.date,
                    requested=str(candidate),
                    existing_id=clash.id
                )
                raise ConflictError(
                    f"Slot unavailable: {request.date} {candidate} overlaps an existing "
                    f"booking ({appointment_interval(clash, durations)})",
                    conflicting=clash
                )

            appointment = Appointment(
                **request.model_dump(),
                id=uuid.uuid4().hex,
                status=AppointmentStatus.BLOCKED if is_block else AppointmentStatus.CONFIRMED,
                created_at=datetime.now(UTC),
                duration_minutes=service.duration_minutes,
            )
            self.store.insert(appointment)

        logger.info(
            "appointment_created",
            appointment_id=appointment.id,
            professional_id=appointment.professional_id,
            service_id=appointment.service_id,
            date=appointment.date,
            start_time=appointment.start_time,
            status=appointment.status.value
        )
        return appointment

    def block_slot(
        self,
        professional_id: str,
        date: str,
        start_time: str,
        block_service_id: str,
        note: Optional[str] = None
    ) -> Appointment:
        """Block time for a professional using a hidden service."""
        if not self.catalog.is_hidden(block_service_id):
            raise ValidationError(f"'{block_service_id}' is not a block service")

        return self.create_appointment(AppointmentRequest(
            professional_id=professional_id,
            service_id=block_service_id,
            date=date,
            start_time=start_time,
            customer_name="Blocked",
            customer_note=note,
        ))

    def cancel_appointment(self, appointment_id: str) -> Appointment:
        """Cancel (idempotent). Frees the slot."""
        return self._set_status(appointment_id, AppointmentStatus.CANCELLED)

    def complete_appointment(self, appointment_id: str) -> Appointment:
        """Mark a confirmed appointment as done (idempotent)."""
        return self._set_status(appointment_id, AppointmentStatus.COMPLETED)

    def clear_all(self) -> None:
        """Wipe every appointment."""
        with self.locks.hold_all():
            self.store.clear_all()
        logger.warning("appointments_cleared")

    def _set_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment:
        appointment = self.store.get(appointment_id)
        with self.locks.hold((appointment.professional_id, appointment.date)):
            return self.store.update_status(appointment_id, status)

    @staticmethod
    def _parse_request(payload: Union[AppointmentRequest, dict]) -> AppointmentRequest:
        if isinstance(payload, AppointmentRequest):
            return payload
        if not isinstance(payload, dict):
            raise ValidationError("Appointment payload must be an object")

        for field, keys in REQUIRED_FIELDS.items():
            if not any(payload.get(key) for key in keys):
                raise ValidationError(f"Missing required field: {keys[0]}")

        try:
            return AppointmentRequest.model_validate(payload)
        except pydantic.ValidationError as e:
            raise ValidationError(_format_validation_error(e)) from e
