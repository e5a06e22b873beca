"""Remote appointment store on a PostgREST (Supabase) table.

Rows use the camelCase wire format. Every call goes through the shared
HTTP session (timeouts + retries) and a circuit breaker; transport
failures surface as StoreError.

If the table has a unique index on (professionalId, date, startTime) for
confirmed/blocked rows, a losing concurrent insert comes back as HTTP 409
and is reported as ConflictError.
"""
from typing import List, Optional

import requests

from barbershop.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from barbershop.conflicts import ConflictError
from barbershop.http_client import call_with_protection, create_http_session
from barbershop.logging_config import get_logger
from barbershop.models import Appointment, AppointmentStatus, check_transition
from barbershop.store import AppointmentNotFoundError, AppointmentStore, StoreError

logger = get_logger(__name__)


def _is_server_failure(exc: Exception) -> bool:
    """4xx responses mean the store is up; only the rest trips the circuit."""
    if isinstance(exc, requests.exceptions.HTTPError) and exc.response is not None:
        return exc.response.status_code >= 500
    return True


class RemoteAppointmentStore(AppointmentStore):
    """AppointmentStore backed by a PostgREST endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "appointments",
        timeout: float = 15,
        session: Optional[requests.Session] = None,
        breaker: Optional[CircuitBreaker] = None
    ):
        if not base_url:
            raise ValueError("SUPABASE_URL is required for the remote store")

        self.url = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self.session = session or create_http_session(
            timeout=timeout,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=5,
            timeout=60,
            name="remote_store",
            is_failure=_is_server_failure
        )

    def _call(self, method: str, **kwargs) -> requests.Response:
        try:
            return call_with_protection(self.breaker, self.session, method, self.url, **kwargs)
        except CircuitBreakerOpen as e:
            raise StoreError(str(e)) from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 409:
                raise ConflictError("Slot unavailable: it was just taken by another booking") from e
            raise StoreError(f"Remote store rejected {method} ({status})") from e
        except requests.exceptions.RequestException as e:
            raise StoreError(f"Remote store unreachable: {e}") from e

    def _parse(self, response: requests.Response) -> List[Appointment]:
        try:
            return [Appointment.from_wire(row) for row in response.json()]
        except ValueError as e:
            raise StoreError(f"Malformed response from remote store: {e}") from e

    def list(self) -> List[Appointment]:
        response = self._call("GET", params={"select": "*", "order": "createdAt.asc"})
        return self._parse(response)

    def get(self, appointment_id: str) -> Appointment:
        response = self._call("GET", params={"select": "*", "id": f"eq.{appointment_id}"})
        rows = self._parse(response)
        if not rows:
            raise AppointmentNotFoundError(f"Appointment '{appointment_id}' not found")
        return rows[0]

    def insert(self, appointment: Appointment) -> None:
        self._call(
            "POST",
            json=appointment.to_wire(),
            headers={"Prefer": "return=minimal"}
        )

    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment:
        status = AppointmentStatus(status)
        current = self.get(appointment_id)
        if not check_transition(current.status, status):
            return current

        # Conditional on the status we validated against
        response = self._call(
            "PATCH",
            params={"id": f"eq.{appointment_id}", "status": f"eq.{current.status.value}"},
            json={"status": status.value},
            headers={"Prefer": "return=representation"}
        )
        rows = self._parse(response)
        if rows:
            logger.info(
                "appointment_status_changed",
                appointment_id=appointment_id,
                old=current.status.value,
                new=status.value
            )
            return rows[0]

        # Someone else changed it between our read and write
        latest = self.get(appointment_id)
        if latest.status == status:
            return latest
        raise StoreError(
            f"Appointment '{appointment_id}' changed concurrently (now '{latest.status.value}')"
        )

    def clear_all(self) -> None:
        # PostgREST refuses unfiltered deletes
        self._call("DELETE", params={"id": "neq.0"})
