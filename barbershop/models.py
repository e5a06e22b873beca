"""Appointment records and their status state machine.

Best Practices:
- Enums for discrete states
- Explicit transition table, checked in one place
- Wire format (camelCase JSON, YYYY-MM-DD, HH:MM) owned by the models
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Set
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from barbershop.timeutils import is_valid_date, is_valid_time


class ValidationError(ValueError):
    """Malformed or incomplete booking input."""
    pass


class InvalidTransitionError(ValidationError):
    """Requested status change is not allowed by the state machine."""
    pass


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states."""
    CONFIRMED = "confirmed"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that occupy their time range
OCCUPYING_STATUSES = frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.BLOCKED})

VALID_TRANSITIONS: Dict[AppointmentStatus, Set[AppointmentStatus]] = {
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.BLOCKED: {AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}


def check_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    """
    Validate a status change.

    Returns:
        True if the record must be updated, False if it already has
        the requested status (idempotent no-op).

    Raises:
        InvalidTransitionError: If the state machine forbids the change
    """
    current = AppointmentStatus(current)
    new = AppointmentStatus(new)

    if current == new:
        return False
    if new not in VALID_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot change appointment from '{current.value}' to '{new.value}'"
        )
    return True


def _check_date(value: str) -> str:
    if not is_valid_date(value):
        raise ValueError(f"Invalid date '{value}'. Use YYYY-MM-DD")
    return value


def _check_time(value: str) -> str:
    if not is_valid_time(value):
        raise ValueError(f"Invalid time '{value}'. Use HH:MM (e.g., 14:30)")
    return value


class AppointmentRequest(BaseModel):
    """Payload for a new appointment (everything except id/status/createdAt)."""
    # Rows written by the first version of the app use barberId and time
    professional_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("professionalId", "professional_id", "barberId"),
        serialization_alias="professionalId"
    )
    service_id: str = Field(..., min_length=1)
    date: str = Field(..., description="YYYY-MM-DD")
    start_time: str = Field(
        ...,
        description="HH:MM, 24-hour",
        validation_alias=AliasChoices("startTime", "start_time", "time"),
        serialization_alias="startTime"
    )
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: Optional[str] = None
    customer_note: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "professionalId": "barber1",
                "serviceId": "c1",
                "date": "2024-06-10",
                "startTime": "10:00",
                "customerName": "John Doe",
                "customerPhone": "79 99999-0000"
            }
        }
    )

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _check_date(v)

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v):
        return _check_time(v)


class Appointment(AppointmentRequest):
    """A stored appointment."""
    id: str = Field(..., min_length=1)
    status: AppointmentStatus
    created_at: datetime
    # Snapshot of the service duration at booking time; absent on legacy rows
    duration_minutes: Optional[int] = Field(None, gt=0)

    @property
    def occupies_slot(self) -> bool:
        return self.status in OCCUPYING_STATUSES

    def to_wire(self) -> dict:
        """camelCase JSON-ready dict."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_wire(cls, data: dict) -> "Appointment":
        return cls.model_validate(data)
