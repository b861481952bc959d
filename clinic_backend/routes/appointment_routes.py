import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator

from clinic_backend.auth.dependencies import Actor, get_current_actor, require_roles
from clinic_backend.routes.common import get_scheduling_service, translate_errors
from clinic_backend.scheduling.lifecycle import ActorRole
from clinic_backend.scheduling.service import AppointmentFilter, SchedulingService

router = APIRouter(tags=['appointments'])

STAFF_ROLES = (ActorRole.DOCTOR, ActorRole.RECEPTIONIST, ActorRole.ADMIN)


def _strip_optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip()


class CreateAppointmentRequest(BaseModel):
    provider_id: str
    date: dt.date
    start_time: str
    consultation_type: str | None = None
    reason: str | None = None
    patient_id: str | None = None

    @field_validator('provider_id', 'start_time')
    @classmethod
    def strip_required(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Value is required.')
        return normalized

    @field_validator('consultation_type')
    @classmethod
    def normalize_type(cls, value: str | None) -> str | None:
        return value.strip().lower() if value else None


class UpdateAppointmentRequest(BaseModel):
    date: dt.date | None = None
    start_time: str | None = None
    consultation_type: str | None = None
    reason: str | None = None
    notes: str | None = None

    @field_validator('start_time', 'consultation_type')
    @classmethod
    def strip_value(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class ConfirmAppointmentRequest(BaseModel):
    notes: str | None = None


class CompleteAppointmentRequest(BaseModel):
    notes: str | None = None


class CancelAppointmentRequest(BaseModel):
    cancel_reason: str

    @field_validator('cancel_reason')
    @classmethod
    def validate_reason(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('A cancellation reason is required.')
        return normalized


class RescheduleAppointmentRequest(BaseModel):
    date: dt.date | None = None
    start_time: str | None = None

    @field_validator('start_time')
    @classmethod
    def strip_start(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class AppointmentResponse(BaseModel):
    id: int
    patient_id: str
    provider_id: str
    date: dt.date
    start_time: str
    end_time: str
    status: str
    consultation_type: str
    reason: str | None = None
    notes: str | None = None
    cancel_reason: str | None = None
    cancelled_by: str | None = None
    cancelled_at: dt.datetime | None = None
    confirmed_by: str | None = None
    confirmed_at: dt.datetime | None = None
    reschedule_count: int = 0
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    class Config:
        from_attributes = True


def _to_response(appointment) -> AppointmentResponse:
    return AppointmentResponse.model_validate(appointment)


def ensure_patient_owns(appointment, actor: Actor) -> None:
    # Patients may only see or change their own bookings; staff act on any.
    if actor.is_patient and appointment.patient_id != actor.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='You can only access your own appointments.',
        )


def resolve_patient_id(requested: str | None, actor: Actor) -> str:
    if actor.is_patient:
        return actor.id
    if not requested or not requested.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='patient_id is required when booking on behalf of a patient.',
        )
    return requested.strip()


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    patient_id = resolve_patient_id(data.patient_id, actor)
    with translate_errors(service):
        appointment = service.create_appointment(
            patient_id,
            data.provider_id,
            data.date,
            data.start_time,
            data.consultation_type,
            data.reason,
        )
        return _to_response(appointment)


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    provider_id: str | None = Query(default=None),
    patient_id: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias='status'),
    date_from: str | None = Query(default=None),
    date_to: str | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    # Patients only see their own bookings, doctors only their own calendar.
    if actor.is_patient:
        patient_id = actor.id
    elif actor.is_provider:
        provider_id = actor.id

    appointment_filter = AppointmentFilter(
        provider_id=provider_id,
        patient_id=patient_id,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
    )
    with translate_errors(service):
        return [_to_response(appointment) for appointment in service.list_appointments(appointment_filter)]


@router.get('/upcoming', response_model=list[AppointmentResponse])
def list_upcoming_appointments(
    patient_id: str | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    target_patient = resolve_patient_id(patient_id, actor)
    with translate_errors(service):
        return [_to_response(appointment) for appointment in service.get_upcoming(target_patient)]


@router.get('/past', response_model=list[AppointmentResponse])
def list_past_appointments(
    patient_id: str | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    target_patient = resolve_patient_id(patient_id, actor)
    with translate_errors(service):
        return [_to_response(appointment) for appointment in service.get_past(target_patient)]


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors(service):
        appointment = service.get_appointment(appointment_id)
        ensure_patient_owns(appointment, actor)
        return _to_response(appointment)


@router.patch('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: UpdateAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    patch = data.model_dump(exclude_unset=True)
    with translate_errors(service):
        ensure_patient_owns(service.get_appointment(appointment_id), actor)
        return _to_response(service.update_appointment(appointment_id, patch))


@router.post('/{appointment_id}/confirm', response_model=AppointmentResponse)
def confirm_appointment(
    appointment_id: int,
    data: ConfirmAppointmentRequest,
    actor: Actor = Depends(require_roles(*STAFF_ROLES)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors(service):
        return _to_response(service.confirm_appointment(appointment_id, actor.id, data.notes))


@router.post('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    data: CompleteAppointmentRequest,
    actor: Actor = Depends(require_roles(*STAFF_ROLES)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    del actor
    with translate_errors(service):
        return _to_response(service.complete_appointment(appointment_id, data.notes))


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors(service):
        ensure_patient_owns(service.get_appointment(appointment_id), actor)
        return _to_response(
            service.cancel_appointment(appointment_id, actor.id, actor.role, data.cancel_reason)
        )


@router.post('/{appointment_id}/reschedule', response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors(service):
        ensure_patient_owns(service.get_appointment(appointment_id), actor)
        return _to_response(service.reschedule_appointment(appointment_id, data.date, data.start_time))
