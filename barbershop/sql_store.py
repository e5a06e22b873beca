"""SQLAlchemy appointment store.

Adds the storage-level backstop for the check-then-act race: a partial
unique index on (professional_id, date, start_time) over confirmed and
blocked rows. Two concurrent bookings for the same start time cannot both
commit; the loser gets ConflictError.
"""
from datetime import datetime, UTC
from typing import List

from sqlalchemy import Column, DateTime, Index, Integer, String, create_engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from barbershop.conflicts import ConflictError
from barbershop.logging_config import get_logger
from barbershop.models import Appointment, AppointmentStatus, check_transition
from barbershop.store import AppointmentNotFoundError, AppointmentStore, StoreError

logger = get_logger(__name__)

Base = declarative_base()

_OCCUPYING = text("status IN ('confirmed', 'blocked')")


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class AppointmentRow(Base):
    """Appointments table."""
    __tablename__ = "appointments"

    # Surrogate key keeps insertion order
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), nullable=False, unique=True, index=True)
    professional_id = Column(String(100), nullable=False)
    service_id = Column(String(100), nullable=False)
    date = Column(String(10), nullable=False)
    start_time = Column(String(5), nullable=False)
    customer_name = Column(String(200), nullable=False, default="")
    customer_phone = Column(String(50), nullable=False, default="")
    customer_email = Column(String(200), nullable=True)
    customer_note = Column(String(1000), nullable=True)
    status = Column(String(20), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index(
            "uq_appointments_active_slot",
            "professional_id", "date", "start_time",
            unique=True,
            sqlite_where=_OCCUPYING,
            postgresql_where=_OCCUPYING,
        ),
    )

    def __repr__(self):
        return f"<AppointmentRow(id={self.id}, {self.date} {self.start_time}, {self.status})>"

    def to_domain(self) -> Appointment:
        return Appointment(
            id=self.id,
            professional_id=self.professional_id,
            service_id=self.service_id,
            date=self.date,
            start_time=self.start_time,
            customer_name=self.customer_name,
            customer_phone=self.customer_phone,
            customer_email=self.customer_email,
            customer_note=self.customer_note,
            status=AppointmentStatus(self.status),
            duration_minutes=self.duration_minutes,
            created_at=self.created_at,
        )

    @classmethod
    def from_domain(cls, appointment: Appointment) -> "AppointmentRow":
        return cls(
            id=appointment.id,
            professional_id=appointment.professional_id,
            service_id=appointment.service_id,
            date=appointment.date,
            start_time=appointment.start_time,
            customer_name=appointment.customer_name,
            customer_phone=appointment.customer_phone,
            customer_email=appointment.customer_email,
            customer_note=appointment.customer_note,
            status=appointment.status.value,
            duration_minutes=appointment.duration_minutes,
            created_at=appointment.created_at,
        )


class SqlAppointmentStore(AppointmentStore):
    """
    AppointmentStore on any SQLAlchemy database.

    Pattern: Thin wrapper around SQLAlchemy, one short session per call.
    """

    def __init__(self, database_url: str, timeout: float = 15):
        """
        Args:
            database_url: SQLAlchemy connection string
            timeout: Seconds to wait for a connection / database lock
        """
        if database_url.startswith("sqlite"):
            engine_kwargs = {"connect_args": {"timeout": timeout, "check_same_thread": False}}
        else:
            engine_kwargs = {"pool_timeout": timeout}

        self.engine = create_engine(database_url, pool_pre_ping=True, **engine_kwargs)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def list(self) -> List[Appointment]:
        try:
            with self.SessionLocal() as db:
                rows = db.query(AppointmentRow).order_by(AppointmentRow.seq).all()
                return [row.to_domain() for row in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"Database unavailable: {e}") from e

    def get(self, appointment_id: str) -> Appointment:
        try:
            with self.SessionLocal() as db:
                row = db.query(AppointmentRow).filter(AppointmentRow.id == appointment_id).first()
                if row is None:
                    raise AppointmentNotFoundError(f"Appointment '{appointment_id}' not found")
                return row.to_domain()
        except SQLAlchemyError as e:
            raise StoreError(f"Database unavailable: {e}") from e

    def insert(self, appointment: Appointment) -> None:
        try:
            with self.SessionLocal() as db:
                db.add(AppointmentRow.from_domain(appointment))
                db.commit()
        except IntegrityError as e:
            logger.warning(
                "unique_slot_violation",
                professional_id=appointment.professional_id,
                date=appointment.date,
                start_time=appointment.start_time
            )
            raise ConflictError("Slot unavailable: it was just taken by another booking") from e
        except SQLAlchemyError as e:
            raise StoreError(f"Database unavailable: {e}") from e

    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment:
        status = AppointmentStatus(status)
        try:
            with self.SessionLocal() as db:
                row = (
                    db.query(AppointmentRow)
                    .filter(AppointmentRow.id == appointment_id)
                    .with_for_update()
                    .first()
                )
                if row is None:
                    raise AppointmentNotFoundError(f"Appointment '{appointment_id}' not found")

                old = row.status
                if check_transition(AppointmentStatus(old), status):
                    row.status = status.value
                    db.commit()
                    logger.info(
                        "appointment_status_changed",
                        appointment_id=appointment_id,
                        old=old,
                        new=status.value
                    )
                return row.to_domain()
        except SQLAlchemyError as e:
            raise StoreError(f"Database unavailable: {e}") from e

    def clear_all(self) -> None:
        try:
            with self.SessionLocal() as db:
                db.query(AppointmentRow).delete()
                db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Database unavailable: {e}") from e
