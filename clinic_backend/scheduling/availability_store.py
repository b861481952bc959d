import logging
from datetime import date

from clinic_backend.models.availability import AvailabilityTemplate
from clinic_backend.scheduling.errors import DuplicateTemplate, NotFound, ValidationError
from clinic_backend.scheduling.ports import AvailabilityRepository, StorageConflict
from clinic_backend.scheduling.validators import (
    parse_date,
    require_identifier,
    validate_day_of_week,
    validate_slot_duration,
    validate_time_ranges,
    validate_validity_window,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {'time_ranges', 'slot_duration_minutes', 'is_active', 'effective_from', 'effective_until'}


def _optional_date(value, field: str) -> date | None:
    if value is None:
        return None
    return parse_date(value, field)


class AvailabilityStore:
    """Owns provider weekly availability templates."""

    def __init__(self, templates: AvailabilityRepository):
        self.templates = templates

    def create(
        self,
        provider_id: str,
        day_of_week: str,
        time_ranges,
        slot_duration_minutes: int | None = None,
        effective_from=None,
        effective_until=None,
    ) -> AvailabilityTemplate:
        provider_id = require_identifier(provider_id, 'provider_id')
        day = validate_day_of_week(day_of_week)
        ranges = validate_time_ranges(time_ranges)
        duration = validate_slot_duration(slot_duration_minutes)
        valid_from = _optional_date(effective_from, 'effective_from')
        valid_until = _optional_date(effective_until, 'effective_until')
        validate_validity_window(valid_from, valid_until)

        if self.templates.find_active(provider_id, day):
            raise DuplicateTemplate(
                f'Availability already exists for {day}. Please update or delete the existing one.'
            )

        template = AvailabilityTemplate(
            provider_id=provider_id,
            day_of_week=day,
            time_ranges=ranges,
            slot_duration_minutes=duration,
            is_active=True,
            effective_from=valid_from,
            effective_until=valid_until,
        )
        self.templates.add(template)
        self._commit(day)
        logger.info('Created availability template %s for provider %s on %s', template.id, provider_id, day)
        return template

    def get(self, template_id: int) -> AvailabilityTemplate:
        template = self.templates.get(template_id)
        if template is None:
            raise NotFound('Availability not found.')
        return template

    def update(self, template_id: int, patch: dict) -> AvailabilityTemplate:
        template = self.get(template_id)

        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f'Cannot update fields: {", ".join(sorted(unknown))}.')

        changes = {}
        if patch.get('time_ranges') is not None:
            changes['time_ranges'] = validate_time_ranges(patch['time_ranges'])
        if patch.get('slot_duration_minutes') is not None:
            changes['slot_duration_minutes'] = validate_slot_duration(patch['slot_duration_minutes'])
        if 'effective_from' in patch:
            changes['effective_from'] = _optional_date(patch['effective_from'], 'effective_from')
        if 'effective_until' in patch:
            changes['effective_until'] = _optional_date(patch['effective_until'], 'effective_until')
        validate_validity_window(
            changes.get('effective_from', template.effective_from),
            changes.get('effective_until', template.effective_until),
        )

        if patch.get('is_active') is not None:
            activate = bool(patch['is_active'])
            if activate and not template.is_active:
                existing = self.templates.find_active(template.provider_id, template.day_of_week)
                if existing is not None and existing.id != template.id:
                    raise DuplicateTemplate(
                        f'Another active availability exists for {template.day_of_week}.'
                    )
            changes['is_active'] = activate

        for field, value in changes.items():
            setattr(template, field, value)
        self._commit(template.day_of_week)
        logger.info('Updated availability template %s (%s)', template.id, ', '.join(sorted(changes)) or 'no changes')
        return template

    def remove(self, template_id: int) -> None:
        template = self.get(template_id)
        self.templates.delete(template)
        self.templates.commit()
        logger.info('Removed availability template %s', template_id)

    def list_by_provider(self, provider_id: str) -> list[AvailabilityTemplate]:
        return list(self.templates.list_active(require_identifier(provider_id, 'provider_id')))

    def find_active(self, provider_id: str, day_of_week: str) -> AvailabilityTemplate | None:
        return self.templates.find_active(provider_id, day_of_week)

    def _commit(self, day: str) -> None:
        try:
            self.templates.commit()
        except StorageConflict as exc:
            raise DuplicateTemplate(f'Availability already exists for {day}.') from exc
