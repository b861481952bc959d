"""Typed failures raised by the scheduling core.

Every error carries the HTTP status the API layer should answer with and a
short machine-readable ``code`` so clients can branch without parsing text.
"""

from fastapi import status


class SchedulingError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'scheduling_error'

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(SchedulingError):
    code = 'validation_error'


class NotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'


class SlotUnavailable(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'slot_unavailable'


class NoAvailabilityConfigured(SlotUnavailable):
    code = 'no_availability_configured'


class DoctorConflict(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'doctor_conflict'


class PatientConflict(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'patient_conflict'


class CancellationTooLate(SchedulingError):
    code = 'cancellation_too_late'


class InvalidTransition(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'invalid_transition'


class DuplicateTemplate(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = 'duplicate_template'
