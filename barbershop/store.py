"""Appointment persistence.

The scheduling engine depends only on the AppointmentStore interface. The
concrete backend is chosen once at startup (build_store):

- local:  JSON file on this machine (LocalAppointmentStore)
- remote: shared PostgREST/Supabase table (barbershop.remote_store)
- sql:    SQLAlchemy database with a unique-slot index (barbershop.sql_store)

Stores hold no scheduling rules. The one guard they do enforce is the
status state machine, so a cancelled or completed record can never be
put back into an occupying status.
"""
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from barbershop.logging_config import get_logger
from barbershop.models import Appointment, AppointmentStatus, check_transition

logger = get_logger(__name__)


class StoreError(Exception):
    """Underlying persistence is unavailable or returned garbage."""
    pass


class AppointmentNotFoundError(LookupError):
    """No appointment with the given id."""
    pass


class AppointmentStore(ABC):
    """Durable, insertion-ordered collection of appointments."""

    @abstractmethod
    def list(self) -> List[Appointment]:
        """All appointments in insertion order."""

    @abstractmethod
    def insert(self, appointment: Appointment) -> None:
        """Persist a new appointment."""

    @abstractmethod
    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment:
        """
        Change an appointment's status.

        Idempotent: setting the current status again is a no-op.

        Raises:
            AppointmentNotFoundError: Unknown id
            InvalidTransitionError: Forbidden by the state machine
        """

    @abstractmethod
    def clear_all(self) -> None:
        """Delete every appointment."""

    def get(self, appointment_id: str) -> Appointment:
        for appointment in self.list():
            if appointment.id == appointment_id:
                return appointment
        raise AppointmentNotFoundError(f"Appointment '{appointment_id}' not found")

    def ping(self) -> None:
        """Raise StoreError if the store cannot be read."""
        self.list()


class LocalAppointmentStore(AppointmentStore):
    """
    JSON-file store for a single machine.

    Pattern: whole-file rewrite through a temp file + os.replace, so a
    crash never leaves a truncated file. A corrupt file is reported as
    StoreError rather than treated as empty.

    path=None keeps everything in memory (tests, demos).
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.RLock()
        self._memory: List[dict] = []

        if path:
            folder = os.path.dirname(os.path.abspath(path))
            os.makedirs(folder, exist_ok=True)

    def _read(self) -> List[dict]:
        if not self.path:
            return [dict(item) for item in self._memory]
        if not os.path.exists(self.path):
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read appointment file {self.path}: {e}") from e

        return raw.get("appointments", [])

    def _write(self, items: List[dict]) -> None:
        if not self.path:
            self._memory = [dict(item) for item in items]
            return

        folder = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".appointments.", suffix=".tmp", dir=folder)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"appointments": items}, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StoreError(f"Cannot write appointment file {self.path}: {e}") from e

    def list(self) -> List[Appointment]:
        with self._lock:
            items = self._read()
        try:
            return [Appointment.from_wire(item) for item in items]
        except ValueError as e:
            raise StoreError(f"Malformed appointment record: {e}") from e

    def insert(self, appointment: Appointment) -> None:
        with self._lock:
            items = self._read()
            if any(item.get("id") == appointment.id for item in items):
                raise ValueError(f"Duplicate appointment id '{appointment.id}'")
            items.append(appointment.to_wire())
            self._write(items)

    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment:
        status = AppointmentStatus(status)
        with self._lock:
            items = self._read()
            for item in items:
                if item.get("id") != appointment_id:
                    continue
                current = Appointment.from_wire(item)
                if check_transition(current.status, status):
                    item["status"] = status.value
                    self._write(items)
                    logger.info(
                        "appointment_status_changed",
                        appointment_id=appointment_id,
                        old=current.status.value,
                        new=status.value
                    )
                return Appointment.from_wire(item)

        raise AppointmentNotFoundError(f"Appointment '{appointment_id}' not found")

    def clear_all(self) -> None:
        with self._lock:
            self._write([])


def build_store(backend: Optional[str] = None) -> AppointmentStore:
    """
    Create the configured store. Called once at startup.

    Args:
        backend: local | remote | sql (default: config.STORE_BACKEND)
    """
    from barbershop import config

    backend = (backend or config.STORE_BACKEND).lower()
    logger.info("store_selected", backend=backend)

    if backend == "local":
        return LocalAppointmentStore(config.STORE_PATH)
    if backend == "remote":
        from barbershop.remote_store import RemoteAppointmentStore
        return RemoteAppointmentStore(
            base_url=config.SUPABASE_URL,
            api_key=config.SUPABASE_KEY,
            table=config.APPOINTMENTS_TABLE,
            timeout=config.STORE_TIMEOUT_SECONDS,
        )
    if backend == "sql":
        from barbershop.sql_store import SqlAppointmentStore
        return SqlAppointmentStore(config.DATABASE_URL, timeout=config.STORE_TIMEOUT_SECONDS)

    raise ValueError(f"Unknown STORE_BACKEND '{backend}'. Use local, remote or sql")
