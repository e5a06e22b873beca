"""Barbershop appointment scheduling engine."""
from barbershop.booking import BookingService, ConflictError, ValidationError
from barbershop.store import AppointmentStore, StoreError

__all__ = [
    "AppointmentStore",
    "BookingService",
    "ConflictError",
    "StoreError",
    "ValidationError",
]
