"""Public entry point for the scheduling core.

``SchedulingService`` validates caller input, then hands off to the
availability store, slot generator, conflict guard and lifecycle. It does not
decide who may call what; callers pass an already-resolved actor.
"""

from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.orm import Session

from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.models.availability import AvailabilityTemplate
from clinic_backend.repositories.appointment_repository import SqlAppointmentRepository
from clinic_backend.repositories.availability_repository import SqlAvailabilityRepository
from clinic_backend.scheduling.availability_store import AvailabilityStore
from clinic_backend.scheduling.conflict_guard import BookingConflictGuard
from clinic_backend.scheduling.errors import ValidationError
from clinic_backend.scheduling.events import LifecycleEventPublisher, event_publisher
from clinic_backend.scheduling.lifecycle import AppointmentLifecycle, Clock
from clinic_backend.scheduling.locks import SlotLockRegistry, slot_locks
from clinic_backend.scheduling.ports import AppointmentRepository, AvailabilityRepository
from clinic_backend.scheduling.slot_generator import SlotGenerator
from clinic_backend.scheduling.validators import (
    normalize_reason,
    parse_date,
    require_identifier,
    validate_consultation_type,
    validate_time,
)

UPCOMING_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)
PAST_STATUSES = (
    AppointmentStatus.COMPLETED.value,
    AppointmentStatus.CANCELLED.value,
    AppointmentStatus.NO_SHOW.value,
)


@dataclass
class AppointmentFilter:
    provider_id: str | None = None
    patient_id: str | None = None
    status: str | None = None
    date_from: date | str | None = None
    date_to: date | str | None = None


class SchedulingService:
    def __init__(
        self,
        templates: AvailabilityRepository,
        appointments: AppointmentRepository,
        clock: Clock = datetime.now,
        locks: SlotLockRegistry = slot_locks,
        publisher: LifecycleEventPublisher = event_publisher,
    ):
        self.clock = clock
        self.templates = templates
        self.appointments = appointments
        self.availability = AvailabilityStore(templates)
        self.slots = SlotGenerator(templates, appointments)
        self.guard = BookingConflictGuard(self.slots, appointments, locks=locks)
        self.lifecycle = AppointmentLifecycle(appointments, self.guard, clock=clock, publisher=publisher)

    def rollback(self) -> None:
        self.templates.rollback()
        self.appointments.rollback()

    # Availability

    def create_availability_template(
        self,
        provider_id: str,
        day_of_week: str,
        time_ranges,
        slot_duration_minutes: int | None = None,
        effective_from=None,
        effective_until=None,
    ) -> AvailabilityTemplate:
        return self.availability.create(
            provider_id,
            day_of_week,
            time_ranges,
            slot_duration_minutes,
            effective_from=effective_from,
            effective_until=effective_until,
        )

    def list_availability(self, provider_id: str) -> list[AvailabilityTemplate]:
        return self.availability.list_by_provider(provider_id)

    def update_availability_template(self, template_id: int, patch: dict) -> AvailabilityTemplate:
        return self.availability.update(template_id, patch)

    def delete_availability_template(self, template_id: int) -> None:
        self.availability.remove(template_id)

    def get_available_slots(self, provider_id: str, day) -> list[str]:
        return self.slots.compute_available_slots(
            require_identifier(provider_id, 'provider_id'),
            parse_date(day),
        )

    # Appointments

    def create_appointment(
        self,
        patient_id: str,
        provider_id: str,
        day,
        start_time: str,
        consultation_type: str | None = None,
        reason: str | None = None,
    ) -> Appointment:
        patient_id = require_identifier(patient_id, 'patient_id')
        provider_id = require_identifier(provider_id, 'provider_id')
        appointment_day = parse_date(day)
        start_time = validate_time(start_time, 'start_time')
        consultation_type = validate_consultation_type(consultation_type)
        reason = normalize_reason(reason)

        if appointment_day < self.clock().date():
            raise ValidationError('Cannot create appointment in the past.')

        return self.lifecycle.book(patient_id, provider_id, appointment_day, start_time, consultation_type, reason)

    def get_appointment(self, appointment_id: int) -> Appointment:
        return self.lifecycle.get(appointment_id)

    def update_appointment(self, appointment_id: int, patch: dict) -> Appointment:
        return self.lifecycle.update(appointment_id, patch)

    def confirm_appointment(self, appointment_id: int, actor_id: str, notes: str | None = None) -> Appointment:
        return self.lifecycle.confirm(appointment_id, actor_id, notes)

    def complete_appointment(self, appointment_id: int, notes: str | None = None) -> Appointment:
        return self.lifecycle.complete(appointment_id, notes)

    def cancel_appointment(self, appointment_id: int, actor_id: str, actor_role, reason: str) -> Appointment:
        return self.lifecycle.cancel(appointment_id, actor_id, actor_role, reason)

    def reschedule_appointment(self, appointment_id: int, new_date=None, new_start_time: str | None = None) -> Appointment:
        return self.lifecycle.reschedule(appointment_id, new_date, new_start_time)

    def list_appointments(self, appointment_filter: AppointmentFilter | None = None) -> list[Appointment]:
        appointment_filter = appointment_filter or AppointmentFilter()
        statuses = None
        if appointment_filter.status:
            status_value = appointment_filter.status.strip().lower()
            if status_value not in {item.value for item in AppointmentStatus}:
                raise ValidationError('Invalid appointment status.')
            statuses = [status_value]

        date_from = parse_date(appointment_filter.date_from, 'date_from') if appointment_filter.date_from else None
        date_to = parse_date(appointment_filter.date_to, 'date_to') if appointment_filter.date_to else None

        return list(
            self.appointments.search(
                provider_id=appointment_filter.provider_id,
                patient_id=appointment_filter.patient_id,
                statuses=statuses,
                date_from=date_from,
                date_to=date_to,
            )
        )

    def get_upcoming(self, patient_id: str) -> list[Appointment]:
        now = self.clock()
        candidates = self.appointments.search(
            patient_id=require_identifier(patient_id, 'patient_id'),
            statuses=UPCOMING_STATUSES,
            date_from=now.date(),
        )
        return [appointment for appointment in candidates if appointment.scheduled_at() >= now]

    def get_past(self, patient_id: str) -> list[Appointment]:
        return list(
            self.appointments.search(
                patient_id=require_identifier(patient_id, 'patient_id'),
                statuses=PAST_STATUSES,
                newest_first=True,
            )
        )


def build_scheduling_service(db: Session, clock: Clock = datetime.now) -> SchedulingService:
    return SchedulingService(
        SqlAvailabilityRepository(db),
        SqlAppointmentRepository(db),
        clock=clock,
    )
