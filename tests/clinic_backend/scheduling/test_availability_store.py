from datetime import date

import pytest

from clinic_backend.scheduling.errors import DuplicateTemplate, NotFound, ValidationError

from conftest import PROVIDER


def test_create_template_stores_sorted_ranges(service) -> None:
    template = service.create_availability_template(
        PROVIDER,
        'Tuesday',
        [{'start': '14:00', 'end': '17:00'}, {'start': '09:00', 'end': '12:00'}],
        45,
    )

    assert template.id is not None
    assert template.day_of_week == 'tuesday'
    assert template.slot_duration_minutes == 45
    assert template.is_active is True
    assert template.time_ranges == [
        {'start': '09:00', 'end': '12:00'},
        {'start': '14:00', 'end': '17:00'},
    ]


def test_create_template_defaults_slot_duration(service) -> None:
    template = service.create_availability_template(PROVIDER, 'friday', [{'start': '09:00', 'end': '10:00'}])

    assert template.slot_duration_minutes == 30


def test_create_template_rejects_overlapping_ranges(service) -> None:
    with pytest.raises(ValidationError):
        service.create_availability_template(
            PROVIDER,
            'monday',
            [{'start': '08:00', 'end': '12:00'}, {'start': '10:00', 'end': '14:00'}],
            30,
        )

    assert service.list_availability(PROVIDER) == []


def test_create_template_rejects_second_active_template_for_same_day(service, monday_template) -> None:
    with pytest.raises(DuplicateTemplate):
        service.create_availability_template(PROVIDER, 'monday', [{'start': '15:00', 'end': '18:00'}], 30)


def test_other_provider_can_use_the_same_day(service, monday_template) -> None:
    template = service.create_availability_template('doctor-2', 'monday', [{'start': '15:00', 'end': '18:00'}], 30)

    assert template.provider_id == 'doctor-2'


def test_create_template_rejects_inverted_validity_window(service) -> None:
    with pytest.raises(ValidationError):
        service.create_availability_template(
            PROVIDER,
            'monday',
            [{'start': '08:00', 'end': '12:00'}],
            30,
            effective_from='2026-03-01',
            effective_until='2026-02-01',
        )


def test_update_template_revalidates_ranges(service, monday_template) -> None:
    with pytest.raises(ValidationError):
        service.update_availability_template(
            monday_template.id,
            {'time_ranges': [{'start': '10:00', 'end': '09:00'}]},
        )

    assert service.list_availability(PROVIDER)[0].time_ranges == [{'start': '08:00', 'end': '13:00'}]


def test_update_template_changes_ranges_and_duration(service, monday_template) -> None:
    updated = service.update_availability_template(
        monday_template.id,
        {'time_ranges': [{'start': '09:00', 'end': '11:00'}], 'slot_duration_minutes': 60},
    )

    assert updated.time_ranges == [{'start': '09:00', 'end': '11:00'}]
    assert updated.slot_duration_minutes == 60


def test_update_template_rejects_unknown_fields(service, monday_template) -> None:
    with pytest.raises(ValidationError):
        service.update_availability_template(monday_template.id, {'provider_id': 'someone-else'})


def test_update_missing_template_raises_not_found(service) -> None:
    with pytest.raises(NotFound):
        service.update_availability_template(999, {'slot_duration_minutes': 60})


def test_reactivating_template_conflicts_with_active_one(service, monday_template) -> None:
    service.update_availability_template(monday_template.id, {'is_active': False})
    replacement = service.create_availability_template(PROVIDER, 'monday', [{'start': '14:00', 'end': '16:00'}], 30)

    with pytest.raises(DuplicateTemplate):
        service.update_availability_template(monday_template.id, {'is_active': True})

    assert [template.id for template in service.list_availability(PROVIDER)] == [replacement.id]


def test_update_template_sets_validity_window(service, monday_template) -> None:
    updated = service.update_availability_template(
        monday_template.id,
        {'effective_from': '2026-01-01', 'effective_until': date(2026, 6, 30)},
    )

    assert updated.effective_from == date(2026, 1, 1)
    assert updated.effective_until == date(2026, 6, 30)


def test_delete_template_removes_it(service, monday_template) -> None:
    service.delete_availability_template(monday_template.id)

    assert service.list_availability(PROVIDER) == []
    with pytest.raises(NotFound):
        service.delete_availability_template(monday_template.id)


def test_list_availability_orders_by_day_of_week(service) -> None:
    for day in ('sunday', 'wednesday', 'monday'):
        service.create_availability_template(PROVIDER, day, [{'start': '09:00', 'end': '10:00'}], 30)
    service.create_availability_template('doctor-2', 'tuesday', [{'start': '09:00', 'end': '10:00'}], 30)

    days = [template.day_of_week for template in service.list_availability(PROVIDER)]

    assert days == ['monday', 'wednesday', 'sunday']
