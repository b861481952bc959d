"""Validation and conversion helpers applied before entities are built.

Times travel as ``HH:MM`` 24-hour strings and dates as ``YYYY-MM-DD`` plain
calendar dates. Nothing here applies a timezone.
"""

import re
from datetime import date, datetime

from clinic_backend.core import config
from clinic_backend.models.appointment import ConsultationType
from clinic_backend.scheduling.errors import ValidationError

TIME_PATTERN = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')

DAYS_OF_WEEK = (
    'monday',
    'tuesday',
    'wednesday',
    'thursday',
    'friday',
    'saturday',
    'sunday',
)


def is_valid_time(value: str) -> bool:
    return isinstance(value, str) and bool(TIME_PATTERN.match(value))


def validate_time(value: str, field: str = 'time') -> str:
    if not is_valid_time(value):
        raise ValidationError(f'{field} must be in HH:MM format (24-hour).')
    return value


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total_minutes: int) -> str:
    hours, minutes = divmod(total_minutes % (24 * 60), 60)
    return f'{hours:02d}:{minutes:02d}'


def add_minutes(value: str, minutes: int) -> str:
    return minutes_to_time(time_to_minutes(value) + minutes)


def parse_date(value: date | str, field: str = 'date') -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), '%Y-%m-%d').date()
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f'{field} must be a YYYY-MM-DD calendar date.') from exc


def day_of_week_for(day: date) -> str:
    # date.weekday() has no timezone, so the same digits always give the same day.
    return DAYS_OF_WEEK[day.weekday()]


def validate_day_of_week(value: str) -> str:
    normalized = (value or '').strip().lower()
    if normalized not in DAYS_OF_WEEK:
        raise ValidationError(f'day_of_week must be one of: {", ".join(DAYS_OF_WEEK)}.')
    return normalized


def validate_slot_duration(value: int | None) -> int:
    if value is None:
        return config.DEFAULT_SLOT_DURATION_MINUTES
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError('slot_duration_minutes must be an integer.')
    if not config.MIN_SLOT_DURATION_MINUTES <= value <= config.MAX_SLOT_DURATION_MINUTES:
        raise ValidationError(
            f'slot_duration_minutes must be between {config.MIN_SLOT_DURATION_MINUTES} '
            f'and {config.MAX_SLOT_DURATION_MINUTES}.'
        )
    return value


def ranges_overlap(first: dict, second: dict) -> bool:
    return first['start'] < second['end'] and second['start'] < first['end']


def validate_time_ranges(ranges) -> list[dict]:
    """Check format, ordering and pairwise overlap; return ranges sorted by start."""
    if not ranges:
        raise ValidationError('At least one time range is required.')

    normalized = []
    for time_range in ranges:
        start = time_range.get('start') if isinstance(time_range, dict) else None
        end = time_range.get('end') if isinstance(time_range, dict) else None
        if not is_valid_time(start) or not is_valid_time(end):
            raise ValidationError('Invalid time format.')
        if start >= end:
            raise ValidationError('Range start must be before range end.')
        normalized.append({'start': start, 'end': end})

    for index, current in enumerate(normalized):
        for other in normalized[index + 1:]:
            if ranges_overlap(current, other):
                raise ValidationError(
                    f'Time ranges overlap: {current["start"]}-{current["end"]} '
                    f'and {other["start"]}-{other["end"]}.'
                )

    return sorted(normalized, key=lambda item: item['start'])


def validate_validity_window(effective_from: date | None, effective_until: date | None) -> None:
    if effective_from and effective_until and effective_from > effective_until:
        raise ValidationError('effective_from must be on or before effective_until.')


def validate_consultation_type(value: str | None) -> str:
    if value is None:
        return ConsultationType.IN_PERSON.value
    normalized = str(getattr(value, 'value', value)).strip().lower()
    allowed = {item.value for item in ConsultationType}
    if normalized not in allowed:
        raise ValidationError('Invalid consultation type.')
    return normalized


def normalize_text(value: str | None, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    if len(normalized) > max_length:
        raise ValidationError(f'{field} must be {max_length} characters or fewer.')
    return normalized


def normalize_reason(value: str | None) -> str | None:
    return normalize_text(value, 'reason', config.MAX_REASON_LENGTH)


def normalize_notes(value: str | None) -> str | None:
    return normalize_text(value, 'notes', config.MAX_NOTES_LENGTH)


def require_identifier(value: str | None, field: str) -> str:
    normalized = str(value).strip() if value is not None else ''
    if not normalized:
        raise ValidationError(f'{field} is required.')
    return normalized
