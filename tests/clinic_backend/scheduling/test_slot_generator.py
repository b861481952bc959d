from datetime import date

from clinic_backend.scheduling.slot_generator import generate_slot_starts
from clinic_backend.scheduling.validators import time_to_minutes

from conftest import MONDAY, NEXT_MONDAY, PATIENT, PROVIDER, WEDNESDAY

MONDAY_SLOTS = ['08:00', '08:30', '09:00', '09:30', '10:00', '10:30', '11:00', '11:30', '12:00', '12:30']


def test_generate_slot_starts_drops_trailing_partial_interval() -> None:
    assert generate_slot_starts('09:00', '10:40', 30) == ['09:00', '09:30', '10:00']


def test_generate_slot_starts_returns_nothing_when_range_is_shorter_than_duration() -> None:
    assert generate_slot_starts('09:00', '09:20', 30) == []


def test_monday_template_yields_ten_half_hour_slots(service, monday_template) -> None:
    assert service.get_available_slots(PROVIDER, MONDAY) == MONDAY_SLOTS


def test_slots_accept_wire_format_dates(service, monday_template) -> None:
    assert service.get_available_slots(PROVIDER, '2026-01-05') == MONDAY_SLOTS


def test_day_without_template_returns_empty_list(service, monday_template) -> None:
    assert service.get_available_slots(PROVIDER, WEDNESDAY) == []


def test_unknown_provider_returns_empty_list(service, monday_template) -> None:
    assert service.get_available_slots('doctor-unknown', MONDAY) == []


def test_booked_slot_is_omitted_and_others_remain(service, monday_template) -> None:
    service.create_appointment(PATIENT, PROVIDER, MONDAY, '09:00', 'in_person')

    slots = service.get_available_slots(PROVIDER, MONDAY)

    assert '09:00' not in slots
    assert slots == [slot for slot in MONDAY_SLOTS if slot != '09:00']
    assert len(slots) == 9


def test_booking_only_affects_its_own_date(service, monday_template) -> None:
    service.create_appointment(PATIENT, PROVIDER, MONDAY, '09:00', 'in_person')

    assert service.get_available_slots(PROVIDER, NEXT_MONDAY) == MONDAY_SLOTS


def test_every_slot_fits_inside_a_template_range(service) -> None:
    ranges = [{'start': '07:10', 'end': '09:00'}, {'start': '13:05', 'end': '17:50'}]
    service.create_availability_template(PROVIDER, 'monday', ranges, 45)

    slots = service.get_available_slots(PROVIDER, MONDAY)

    assert slots
    for slot in slots:
        start = time_to_minutes(slot)
        assert any(
            time_to_minutes(item['start']) <= start and start + 45 <= time_to_minutes(item['end'])
            for item in ranges
        )


def test_slots_from_multiple_ranges_are_sorted(service) -> None:
    service.create_availability_template(
        PROVIDER,
        'monday',
        [{'start': '14:00', 'end': '15:00'}, {'start': '08:00', 'end': '09:00'}],
        30,
    )

    assert service.get_available_slots(PROVIDER, MONDAY) == ['08:00', '08:30', '14:00', '14:30']


def test_template_outside_validity_window_yields_no_slots(service) -> None:
    service.create_availability_template(
        PROVIDER,
        'monday',
        [{'start': '08:00', 'end': '09:00'}],
        30,
        effective_from=date(2026, 1, 10),
    )

    assert service.get_available_slots(PROVIDER, MONDAY) == []
    assert service.get_available_slots(PROVIDER, NEXT_MONDAY) == ['08:00', '08:30']


def test_inactive_template_yields_no_slots(service, monday_template) -> None:
    service.update_availability_template(monday_template.id, {'is_active': False})

    assert service.get_available_slots(PROVIDER, MONDAY) == []


def test_slot_computation_is_repeatable(service, monday_template) -> None:
    first = service.get_available_slots(PROVIDER, MONDAY)
    second = service.get_available_slots(PROVIDER, MONDAY)

    assert first == second
    assert service.list_appointments() == []
