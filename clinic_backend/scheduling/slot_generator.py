"""Bookable slot computation.

Slots are derived on every call from the provider's weekly template and the
appointments currently booked for that date. Nothing is cached or written, so
the result is advisory; booking re-runs the computation before it commits.
"""

from datetime import date

from clinic_backend.models.availability import AvailabilityTemplate
from clinic_backend.scheduling.ports import AppointmentRepository, AvailabilityRepository
from clinic_backend.scheduling.validators import day_of_week_for, minutes_to_time, time_to_minutes


def generate_slot_starts(range_start: str, range_end: str, duration_minutes: int) -> list[str]:
    """Start times of every full ``duration_minutes`` interval inside the range.

    A trailing interval shorter than the duration is dropped.
    """
    slots: list[str] = []
    current = time_to_minutes(range_start)
    end = time_to_minutes(range_end)

    while current + duration_minutes <= end:
        slots.append(minutes_to_time(current))
        current += duration_minutes

    return slots


class SlotGenerator:
    def __init__(self, templates: AvailabilityRepository, appointments: AppointmentRepository):
        self.templates = templates
        self.appointments = appointments

    def template_for(self, provider_id: str, day: date) -> AvailabilityTemplate | None:
        template = self.templates.find_active(provider_id, day_of_week_for(day))
        if template is None or not template.is_effective_on(day):
            return None
        return template

    def compute_available_slots(self, provider_id: str, day: date) -> list[str]:
        template = self.template_for(provider_id, day)
        if template is None:
            return []

        booked_starts = {appointment.start_time for appointment in self.appointments.list_booked(provider_id, day)}

        available: list[str] = []
        for time_range in template.time_ranges:
            for slot in generate_slot_starts(time_range['start'], time_range['end'], template.slot_duration_minutes):
                if slot not in booked_starts:
                    available.append(slot)

        return sorted(available)
