from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator

from clinic_backend.auth.dependencies import Actor, get_current_actor, require_roles
from clinic_backend.routes.common import get_scheduling_service, translate_errors
from clinic_backend.scheduling.lifecycle import ActorRole
from clinic_backend.scheduling.service import SchedulingService

router = APIRouter(tags=['availability'])

TEMPLATE_MANAGERS = (ActorRole.DOCTOR, ActorRole.ADMIN)


class TimeRange(BaseModel):
    start: str
    end: str

    @field_validator('start', 'end')
    @classmethod
    def strip_time(cls, value: str) -> str:
        return value.strip()


class CreateTemplateRequest(BaseModel):
    provider_id: str | None = None
    day_of_week: str
    time_ranges: list[TimeRange]
    slot_duration_minutes: int | None = None
    effective_from: date | None = None
    effective_until: date | None = None

    @field_validator('day_of_week')
    @classmethod
    def normalize_day(cls, value: str) -> str:
        return value.strip().lower()


class UpdateTemplateRequest(BaseModel):
    time_ranges: list[TimeRange] | None = None
    slot_duration_minutes: int | None = None
    is_active: bool | None = None
    effective_from: date | None = None
    effective_until: date | None = None


class TemplateResponse(BaseModel):
    id: int
    provider_id: str
    day_of_week: str
    time_ranges: list[TimeRange]
    slot_duration_minutes: int
    is_active: bool
    effective_from: date | None = None
    effective_until: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


def resolve_provider_id(requested: str | None, actor: Actor) -> str:
    # Doctors manage their own calendar; admins must name the provider.
    if actor.is_provider:
        return actor.id
    if not requested or not requested.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='provider_id is required.',
        )
    return requested.strip()


@router.post('/templates', response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
def create_template(
    data: CreateTemplateRequest,
    actor: Actor = Depends(require_roles(*TEMPLATE_MANAGERS)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    provider_id = resolve_provider_id(data.provider_id, actor)
    with translate_errors(service):
        template = service.create_availability_template(
            provider_id,
            data.day_of_week,
            [time_range.model_dump() for time_range in data.time_ranges],
            data.slot_duration_minutes,
            effective_from=data.effective_from,
            effective_until=data.effective_until,
        )
        return TemplateResponse.model_validate(template)


@router.get('/templates', response_model=list[TemplateResponse])
def list_templates(
    provider_id: str = Query(...),
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    del actor
    with translate_errors(service):
        return [TemplateResponse.model_validate(template) for template in service.list_availability(provider_id)]


@router.patch('/templates/{template_id}', response_model=TemplateResponse)
def update_template(
    template_id: int,
    data: UpdateTemplateRequest,
    actor: Actor = Depends(require_roles(*TEMPLATE_MANAGERS)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    del actor
    patch = data.model_dump(exclude_unset=True)
    with translate_errors(service):
        template = service.update_availability_template(template_id, patch)
        return TemplateResponse.model_validate(template)


@router.delete('/templates/{template_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: int,
    actor: Actor = Depends(require_roles(*TEMPLATE_MANAGERS)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    del actor
    with translate_errors(service):
        service.delete_availability_template(template_id)


@router.get('/slots', response_model=list[str])
def list_available_slots(
    provider_id: str = Query(...),
    date: str = Query(..., description='YYYY-MM-DD'),
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors(service):
        return service.get_available_slots(provider_id, date)
