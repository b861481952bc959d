from datetime import date, datetime

import pytest

from clinic_backend.scheduling.errors import NotFound, ValidationError
from clinic_backend.scheduling.lifecycle import ActorRole
from clinic_backend.scheduling.service import AppointmentFilter

from conftest import MONDAY, NEXT_MONDAY, PATIENT, PROVIDER


def test_create_appointment_rejects_past_date(service, monday_template, clock) -> None:
    clock.now = datetime(2026, 1, 6, 8, 0)

    with pytest.raises(ValidationError) as exception_info:
        service.create_appointment(PATIENT, PROVIDER, MONDAY, '09:00', 'in_person')

    assert exception_info.value.detail == 'Cannot create appointment in the past.'


def test_create_appointment_defaults_consultation_type(service, monday_template) -> None:
    appointment = service.create_appointment(PATIENT, PROVIDER, '2026-01-05', '09:00')

    assert appointment.consultation_type == 'in_person'
    assert appointment.date == MONDAY


@pytest.mark.parametrize(
    ('patient_id', 'provider_id', 'start_time', 'consultation_type'),
    [
        ('  ', PROVIDER, '09:00', 'in_person'),
        (PATIENT, '', '09:00', 'in_person'),
        (PATIENT, PROVIDER, '9am', 'in_person'),
        (PATIENT, PROVIDER, '09:00', 'phone'),
    ],
)
def test_create_appointment_validates_input(
    service, monday_template, patient_id, provider_id, start_time, consultation_type
) -> None:
    with pytest.raises(ValidationError):
        service.create_appointment(patient_id, provider_id, MONDAY, start_time, consultation_type)

    assert service.list_appointments() == []


def test_get_appointment_missing_raises_not_found(service) -> None:
    with pytest.raises(NotFound):
        service.get_appointment(12345)


def test_list_appointments_is_ordered_by_date_and_time(service, monday_template) -> None:
    service.create_appointment('patient-3', PROVIDER, NEXT_MONDAY, '08:00', 'in_person')
    service.create_appointment('patient-2', PROVIDER, MONDAY, '11:00', 'in_person')
    service.create_appointment(PATIENT, PROVIDER, MONDAY, '09:00', 'in_person')

    listed = [(item.date, item.start_time) for item in service.list_appointments()]

    assert listed == [(MONDAY, '09:00'), (MONDAY, '11:00'), (NEXT_MONDAY, '08:00')]


def test_list_appointments_filters(service, monday_template) -> None:
    service.create_availability_template('doctor-2', 'monday', [{'start': '08:00', 'end': '13:00'}], 30)
    first = service.create_appointment(PATIENT, PROVIDER, MONDAY, '09:00', 'in_person')
    service.create_appointment(PATIENT, 'doctor-2', NEXT_MONDAY, '10:00', 'online')
    service.create_appointment('patient-2', PROVIDER, NEXT_MONDAY, '09:00', 'in_person')
    service.confirm_appointment(first.id, PROVIDER)

    by_provider = service.list_appointments(AppointmentFilter(provider_id='doctor-2'))
    by_patient = service.list_appointments(AppointmentFilter(patient_id='patient-2'))
    by_status = service.list_appointments(AppointmentFilter(status='Confirmed'))
    by_range = service.list_appointments(AppointmentFilter(date_from='2026-01-06', date_to=date(2026, 1, 12)))

    assert [item.provider_id for item in by_provider] == ['doctor-2']
    assert [item.patient_id for item in by_patient] == ['patient-2']
    assert [item.id for item in by_status] == [first.id]
    assert [item.date for item in by_range] == [NEXT_MONDAY, NEXT_MONDAY]


def test_list_appointments_rejects_unknown_status(service) -> None:
    with pytest.raises(ValidationError):
        service.list_appointments(AppointmentFilter(status='archived'))


def test_upcoming_lists_open_appointments_from_now(service, monday_template, clock) -> None:
    early = service.create_appointment(PATIENT, PROVIDER, MONDAY, '08:00', 'in_person')
    later = service.create_appointment(PATIENT, PROVIDER, MONDAY, '12:00', 'in_person')
    next_week = service.create_appointment(PATIENT, PROVIDER, NEXT_MONDAY, '09:00', 'in_person')
    cancelled = service.create_appointment(PATIENT, PROVIDER, NEXT_MONDAY, '10:00', 'in_person')
    service.cancel_appointment(cancelled.id, PROVIDER, ActorRole.DOCTOR, 'Doctor away')
    service.create_appointment('patient-2', PROVIDER, MONDAY, '09:00', 'in_person')

    clock.now = datetime(2026, 1, 5, 10, 0)
    upcoming = service.get_upcoming(PATIENT)

    assert [item.id for item in upcoming] == [later.id, next_week.id]
    assert early.id not in [item.id for item in upcoming]


def test_past_lists_finished_appointments_newest_first(service, monday_template) -> None:
    completed = service.create_appointment(PATIENT, PROVIDER, MONDAY, '08:00', 'in_person')
    cancelled = service.create_appointment(PATIENT, PROVIDER, NEXT_MONDAY, '08:00', 'in_person')
    service.create_appointment(PATIENT, PROVIDER, MONDAY, '12:00', 'in_person')
    service.complete_appointment(completed.id)
    service.cancel_appointment(cancelled.id, PATIENT, ActorRole.PATIENT, 'Travelling')

    past = service.get_past(PATIENT)

    assert [item.id for item in past] == [cancelled.id, completed.id]


def test_rollback_discards_pending_changes(service, monday_template, db_session) -> None:
    appointment = service.create_appointment(PATIENT, PROVIDER, MONDAY, '09:00', 'in_person')
    appointment.reason = 'not saved'

    service.rollback()

    assert service.get_appointment(appointment.id).reason is None
