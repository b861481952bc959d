"""Appointment model definitions."""

import enum
from datetime import datetime, time

from sqlalchemy import Column, Date, DateTime, Index, Integer, String, text

from clinic_backend.database import Base


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class ConsultationType(str, enum.Enum):
    IN_PERSON = "in_person"
    ONLINE = "online"


TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
)

_NOT_CANCELLED = text("status != 'cancelled'")


class Appointment(Base):
    """Represents a booked appointment between a patient and a provider."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_id = Column(String, nullable=False)
    provider_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.PENDING.value)
    consultation_type = Column(String, nullable=False, default=ConsultationType.IN_PERSON.value)
    reason = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    cancel_reason = Column(String, nullable=True)
    cancelled_by = Column(String, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    confirmed_by = Column(String, nullable=True)
    confirmed_at = Column(DateTime, nullable=True)
    reschedule_count = Column(Integer, nullable=False, default=0)
    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index(
            "uq_appointments_provider_slot",
            "provider_id",
            "date",
            "start_time",
            unique=True,
            sqlite_where=_NOT_CANCELLED,
            postgresql_where=_NOT_CANCELLED,
        ),
        Index(
            "uq_appointments_patient_slot",
            "patient_id",
            "date",
            "start_time",
            unique=True,
            sqlite_where=_NOT_CANCELLED,
            postgresql_where=_NOT_CANCELLED,
        ),
        Index("idx_appointments_provider_date", "provider_id", "date"),
        Index("idx_appointments_patient_date", "patient_id", "date"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def status_enum(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.status_enum in TERMINAL_STATUSES

    def scheduled_at(self) -> datetime:
        hours, minutes = (int(part) for part in self.start_time.split(":"))
        return datetime.combine(self.date, time(hours, minutes))
