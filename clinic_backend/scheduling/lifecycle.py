"""Appointment state machine.

    pending -> confirmed -> completed
    pending | confirmed -> cancelled

completed, cancelled and no_show are terminal. no_show is part of the status
vocabulary but nothing here moves an appointment into it.
"""

import enum
import logging
from datetime import date, datetime, timedelta
from typing import Callable

from clinic_backend.core import config
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.scheduling import events
from clinic_backend.scheduling.conflict_guard import BookingConflictGuard
from clinic_backend.scheduling.errors import CancellationTooLate, InvalidTransition, NotFound, ValidationError
from clinic_backend.scheduling.events import LifecycleEvent, LifecycleEventPublisher, event_publisher
from clinic_backend.scheduling.ports import AppointmentRepository, ConcurrentModification
from clinic_backend.scheduling.validators import (
    normalize_notes,
    normalize_reason,
    parse_date,
    require_identifier,
    validate_consultation_type,
    validate_time,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ActorRole(str, enum.Enum):
    PATIENT = 'patient'
    DOCTOR = 'doctor'
    RECEPTIONIST = 'receptionist'
    ADMIN = 'admin'


INITIAL_STATUS = AppointmentStatus.PENDING
CANCELLABLE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})
COMPLETABLE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})
EDITABLE_FIELDS = {'reason', 'notes', 'consultation_type', 'date', 'start_time'}
CHANGED_ELSEWHERE = 'Appointment was changed by another request. Please reload and try again.'


def _role_value(role) -> str:
    return str(getattr(role, 'value', role) or '').strip().lower()


class AppointmentLifecycle:
    def __init__(
        self,
        appointments: AppointmentRepository,
        guard: BookingConflictGuard,
        clock: Clock = datetime.now,
        publisher: LifecycleEventPublisher = event_publisher,
        notice_hours: int = config.CANCELLATION_NOTICE_HOURS,
    ):
        self.appointments = appointments
        self.guard = guard
        self.clock = clock
        self.publisher = publisher
        self.notice_window = timedelta(hours=notice_hours)

    def get(self, appointment_id: int) -> Appointment:
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise NotFound('Appointment not found.')
        return appointment

    def book(
        self,
        patient_id: str,
        provider_id: str,
        day: date,
        start_time: str,
        consultation_type: str,
        reason: str | None = None,
    ) -> Appointment:
        appointment = self.guard.reserve(
            provider_id,
            patient_id,
            day,
            start_time,
            consultation_type=consultation_type,
            reason=reason,
            status=INITIAL_STATUS,
        )
        logger.info(
            'Booked appointment %s: patient %s with provider %s on %s at %s',
            appointment.id, patient_id, provider_id, day, start_time,
        )
        self._publish(events.APPOINTMENT_CREATED, appointment, actor_id=patient_id)
        return appointment

    def confirm(self, appointment_id: int, actor_id: str, notes: str | None = None) -> Appointment:
        actor_id = require_identifier(actor_id, 'actor_id')
        notes = normalize_notes(notes)
        appointment = self.get(appointment_id)

        if appointment.status_enum is not AppointmentStatus.PENDING:
            raise InvalidTransition('Only pending appointments can be confirmed.')

        appointment.status = AppointmentStatus.CONFIRMED.value
        appointment.confirmed_by = actor_id
        appointment.confirmed_at = self.clock()
        if notes:
            appointment.notes = notes
        self._commit_change()

        logger.info('Appointment %s confirmed by %s', appointment.id, actor_id)
        self._publish(events.APPOINTMENT_CONFIRMED, appointment, actor_id=actor_id)
        return appointment

    def complete(self, appointment_id: int, notes: str | None = None) -> Appointment:
        notes = normalize_notes(notes)
        appointment = self.get(appointment_id)

        if appointment.status_enum not in COMPLETABLE_STATUSES:
            raise InvalidTransition(f'Cannot complete a {appointment.status} appointment.')

        appointment.status = AppointmentStatus.COMPLETED.value
        if notes:
            appointment.notes = notes
        self._commit_change()

        logger.info('Appointment %s completed', appointment.id)
        self._publish(events.APPOINTMENT_COMPLETED, appointment)
        return appointment

    def cancel(self, appointment_id: int, actor_id: str, actor_role, reason: str) -> Appointment:
        actor_id = require_identifier(actor_id, 'actor_id')
        reason = normalize_reason(reason)
        if not reason:
            raise ValidationError('A cancellation reason is required.')
        appointment = self.get(appointment_id)

        if appointment.status_enum not in CANCELLABLE_STATUSES:
            raise InvalidTransition(f'Appointment is already {appointment.status}.')

        now = self.clock()
        if _role_value(actor_role) == ActorRole.PATIENT.value:
            if appointment.scheduled_at() - now < self.notice_window:
                raise CancellationTooLate(
                    f'Appointments can only be cancelled at least '
                    f'{int(self.notice_window.total_seconds() // 3600)} hours in advance.'
                )

        appointment.status = AppointmentStatus.CANCELLED.value
        appointment.cancel_reason = reason
        appointment.cancelled_by = actor_id
        appointment.cancelled_at = now
        self._commit_change()

        logger.info('Appointment %s cancelled by %s (%s)', appointment.id, actor_id, _role_value(actor_role))
        self._publish(events.APPOINTMENT_CANCELLED, appointment, actor_id=actor_id)
        return appointment

    def reschedule(self, appointment_id: int, new_date=None, new_start_time: str | None = None) -> Appointment:
        appointment = self.get(appointment_id)
        if appointment.is_terminal:
            raise InvalidTransition(f'Cannot reschedule a {appointment.status} appointment.')

        target_day = parse_date(new_date, 'date') if new_date is not None else appointment.date
        target_start = validate_time(new_start_time, 'start_time') if new_start_time is not None else appointment.start_time

        if target_day == appointment.date and target_start == appointment.start_time:
            return appointment

        if target_day < self.clock().date():
            raise ValidationError('Cannot move an appointment into the past.')

        previous = (appointment.date, appointment.start_time)
        appointment = self.guard.reserve_for_reschedule(
            appointment.id,
            appointment.provider_id,
            appointment.patient_id,
            target_day,
            target_start,
        )

        logger.info(
            'Appointment %s rescheduled from %s %s to %s %s',
            appointment.id, previous[0], previous[1], target_day, target_start,
        )
        self._publish(events.APPOINTMENT_RESCHEDULED, appointment)
        return appointment

    def update(self, appointment_id: int, patch: dict) -> Appointment:
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f'Cannot update fields: {", ".join(sorted(unknown))}.')

        appointment = self.get(appointment_id)
        if appointment.is_terminal:
            raise InvalidTransition(f'Cannot modify a {appointment.status} appointment.')

        changes = {}
        if 'reason' in patch:
            changes['reason'] = normalize_reason(patch['reason'])
        if 'notes' in patch:
            changes['notes'] = normalize_notes(patch['notes'])
        if patch.get('consultation_type') is not None:
            changes['consultation_type'] = validate_consultation_type(patch['consultation_type'])

        if patch.get('date') is not None or patch.get('start_time') is not None:
            appointment = self.reschedule(appointment_id, patch.get('date'), patch.get('start_time'))

        if changes:
            for field, value in changes.items():
                setattr(appointment, field, value)
            self._commit_change()
            logger.info('Appointment %s updated (%s)', appointment.id, ', '.join(sorted(changes)))

        return appointment

    def _commit_change(self) -> None:
        try:
            self.appointments.commit()
        except ConcurrentModification as exc:
            raise InvalidTransition(CHANGED_ELSEWHERE) from exc

    def _publish(self, name: str, appointment: Appointment, actor_id: str | None = None) -> None:
        self.publisher.publish(
            LifecycleEvent(
                name=name,
                appointment_id=appointment.id,
                provider_id=appointment.provider_id,
                patient_id=appointment.patient_id,
                status=appointment.status,
                actor_id=actor_id,
                occurred_at=self.clock(),
            )
        )
