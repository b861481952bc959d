"""Write-time enforcement of the no-double-booking rule.

Every reserve re-computes the open slots and checks both calendar cells
(provider, date, start) and (patient, date, start) while holding the
per-(provider, date) lock, then commits. The partial unique indexes on the
appointments table catch writers in other processes; a commit that loses
against them is rolled back and the checks run again so the caller gets the
typed error that matches the new state.

Rescheduling writes through the row version, so a move based on a stale read
(the appointment was cancelled meanwhile, say) fails instead of moving it.
"""

import logging
from datetime import date

from clinic_backend.core import config
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.models.availability import AvailabilityTemplate
from clinic_backend.scheduling.errors import (
    DoctorConflict,
    InvalidTransition,
    NoAvailabilityConfigured,
    NotFound,
    PatientConflict,
    SlotUnavailable,
)
from clinic_backend.scheduling.locks import SlotLockRegistry, slot_locks
from clinic_backend.scheduling.ports import AppointmentRepository, ConcurrentModification, StorageConflict
from clinic_backend.scheduling.slot_generator import SlotGenerator
from clinic_backend.scheduling.validators import add_minutes

logger = logging.getLogger(__name__)


class BookingConflictGuard:
    def __init__(
        self,
        slots: SlotGenerator,
        appointments: AppointmentRepository,
        locks: SlotLockRegistry = slot_locks,
        retry_attempts: int = config.RESERVE_RETRY_ATTEMPTS,
    ):
        self.slots = slots
        self.appointments = appointments
        self.locks = locks
        self.retry_attempts = max(0, retry_attempts)

    def check(
        self,
        provider_id: str,
        patient_id: str,
        day: date,
        start_time: str,
        exclude_id: int | None = None,
    ) -> AvailabilityTemplate:
        template = self.slots.template_for(provider_id, day)
        if template is None:
            raise NoAvailabilityConfigured(
                'The provider has no availability configured for this day. Please choose another date.'
            )

        if start_time not in self.slots.compute_available_slots(provider_id, day):
            raise SlotUnavailable('The selected time is not available. Please choose one of the available times.')

        if self.appointments.find_provider_booking(provider_id, day, start_time, exclude_id=exclude_id):
            raise DoctorConflict('Provider is not available at this time. Please choose another slot.')

        if self.appointments.find_patient_booking(patient_id, day, start_time, exclude_id=exclude_id):
            raise PatientConflict('The patient already has an appointment at this time.')

        return template

    def reserve(
        self,
        provider_id: str,
        patient_id: str,
        day: date,
        start_time: str,
        *,
        consultation_type: str,
        reason: str | None = None,
        status: AppointmentStatus = AppointmentStatus.PENDING,
    ) -> Appointment:
        attempts = 1 + self.retry_attempts

        for attempt in range(1, attempts + 1):
            with self.locks.hold(provider_id, day):
                template = self.check(provider_id, patient_id, day, start_time)
                appointment = Appointment(
                    patient_id=patient_id,
                    provider_id=provider_id,
                    date=day,
                    start_time=start_time,
                    end_time=add_minutes(start_time, template.slot_duration_minutes),
                    status=status.value,
                    consultation_type=consultation_type,
                    reason=reason,
                    reschedule_count=0,
                )
                self.appointments.add(appointment)
                try:
                    self.appointments.commit()
                except StorageConflict:
                    logger.warning(
                        'Lost booking race for provider %s on %s at %s (attempt %s of %s)',
                        provider_id, day, start_time, attempt, attempts,
                    )
                    continue

            return appointment

        raise SlotUnavailable('The selected time was just booked. Please choose another slot.')

    def reserve_for_reschedule(
        self,
        appointment_id: int,
        provider_id: str,
        patient_id: str,
        new_day: date,
        new_start_time: str,
    ) -> Appointment:
        attempts = 1 + self.retry_attempts

        for attempt in range(1, attempts + 1):
            with self.locks.hold(provider_id, new_day):
                appointment = self.appointments.get(appointment_id)
                if appointment is None:
                    raise NotFound('Appointment not found.')
                if appointment.is_terminal:
                    raise InvalidTransition(f'Cannot reschedule a {appointment.status} appointment.')

                template = self.check(provider_id, patient_id, new_day, new_start_time, exclude_id=appointment_id)
                appointment.date = new_day
                appointment.start_time = new_start_time
                appointment.end_time = add_minutes(new_start_time, template.slot_duration_minutes)
                appointment.reschedule_count = (appointment.reschedule_count or 0) + 1
                try:
                    self.appointments.commit()
                except StorageConflict:
                    logger.warning(
                        'Lost reschedule race for appointment %s to %s %s (attempt %s of %s)',
                        appointment_id, new_day, new_start_time, attempt, attempts,
                    )
                    continue
                except ConcurrentModification as exc:
                    raise InvalidTransition(
                        'Appointment was changed by another request. Please reload and try again.'
                    ) from exc

            return appointment

        raise SlotUnavailable('The selected time was just booked. Please choose another slot.')
