from datetime import date
from typing import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.scheduling.ports import ConcurrentModification, StorageConflict


class SqlAppointmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        return appointment

    def get(self, appointment_id: int) -> Appointment | None:
        return self.db.get(Appointment, appointment_id)

    def list_booked(self, provider_id: str, day: date) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.provider_id == provider_id,
            Appointment.date == day,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        ).all()

    def find_provider_booking(
        self, provider_id: str, day: date, start_time: str, exclude_id: int | None = None
    ) -> Appointment | None:
        query = self.db.query(Appointment).filter(
            Appointment.provider_id == provider_id,
            Appointment.date == day,
            Appointment.start_time == start_time,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.first()

    def find_patient_booking(
        self, patient_id: str, day: date, start_time: str, exclude_id: int | None = None
    ) -> Appointment | None:
        query = self.db.query(Appointment).filter(
            Appointment.patient_id == patient_id,
            Appointment.date == day,
            Appointment.start_time == start_time,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.first()

    def search(
        self,
        *,
        provider_id: str | None = None,
        patient_id: str | None = None,
        statuses: Iterable[str] | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        newest_first: bool = False,
    ) -> list[Appointment]:
        query = self.db.query(Appointment)
        if provider_id:
            query = query.filter(Appointment.provider_id == provider_id)
        if patient_id:
            query = query.filter(Appointment.patient_id == patient_id)
        if statuses:
            query = query.filter(Appointment.status.in_(list(statuses)))
        if date_from:
            query = query.filter(Appointment.date >= date_from)
        if date_to:
            query = query.filter(Appointment.date <= date_to)

        if newest_first:
            query = query.order_by(Appointment.date.desc(), Appointment.start_time.desc())
        else:
            query = query.order_by(Appointment.date.asc(), Appointment.start_time.asc())
        return query.all()

    def commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise StorageConflict(str(exc.orig)) from exc
        except StaleDataError as exc:
            self.db.rollback()
            raise ConcurrentModification(str(exc)) from exc

    def rollback(self) -> None:
        self.db.rollback()
