from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import AwareDatetime, BaseModel, Field, field_serializer, model_validator

from trainer_booking.core import config
from trainer_booking.core.deadline import Deadline
from trainer_booking.core.errors import ValidationError
from trainer_booking.scheduling.appointment import Appointment
from trainer_booking.services.appointment_service import AppointmentService

router = APIRouter(tags=['appointments'])

RFC3339_UTC_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


def format_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(RFC3339_UTC_FORMAT)


class CreateAppointmentRequest(BaseModel):
    trainer_id: int = Field(gt=0)
    user_id: int = Field(gt=0)
    start_time: AwareDatetime
    end_time: AwareDatetime

    @model_validator(mode='after')
    def validate_time_order(self) -> 'CreateAppointmentRequest':
        if self.end_time <= self.start_time:
            raise ValueError('end_time must be after start_time.')
        return self

    def to_appointment(self) -> Appointment:
        return Appointment(
            trainer_id=self.trainer_id,
            user_id=self.user_id,
            start_time=self.start_time,
            end_time=self.end_time,
        )


class AppointmentResponse(BaseModel):
    id: int
    trainer_id: int
    user_id: int
    start_time: datetime
    end_time: datetime

    class Config:
        from_attributes = True

    @field_serializer('start_time', 'end_time')
    def serialize_time(self, value: datetime) -> str:
        return format_utc(value)


class AvailabilityResponse(BaseModel):
    start_time: datetime
    end_time: datetime

    class Config:
        from_attributes = True

    @field_serializer('start_time', 'end_time')
    def serialize_time(self, value: datetime) -> str:
        return format_utc(value)


def get_appointment_service(request: Request) -> AppointmentService:
    return request.app.state.appointment_service


def get_deadline() -> Deadline:
    return Deadline(config.REQUEST_TIMEOUT_SECONDS)


def validate_availability_window(
    trainer_id: int,
    starts_at: datetime | None,
    ends_at: datetime | None,
) -> tuple[datetime, datetime]:
    if trainer_id <= 0:
        raise ValidationError('trainer_id must be greater than 0')

    if starts_at is None:
        raise ValidationError('starts_at is required and must be a valid timestamp')

    if ends_at is None:
        raise ValidationError('ends_at is required and must be a valid timestamp')

    starts_at = starts_at.astimezone(timezone.utc)
    ends_at = ends_at.astimezone(timezone.utc)

    if ends_at <= starts_at:
        raise ValidationError('ends_at must be after starts_at')

    return starts_at, ends_at


@router.get('/appointments/trainers/{trainer_id}', response_model=list[AppointmentResponse])
def list_appointments(
    trainer_id: int,
    service: AppointmentService = Depends(get_appointment_service),
    deadline: Deadline = Depends(get_deadline),
):
    appointments = service.list_appointments(trainer_id, deadline=deadline)
    return [AppointmentResponse.model_validate(appointment) for appointment in appointments]


@router.post('/appointments', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    service: AppointmentService = Depends(get_appointment_service),
    deadline: Deadline = Depends(get_deadline),
):
    created = service.create_appointment(data.to_appointment(), deadline=deadline)
    return AppointmentResponse.model_validate(created)


@router.get('/appointments/trainers/{trainer_id}/availability', response_model=list[AvailabilityResponse])
def get_availability(
    trainer_id: int,
    starts_at: AwareDatetime | None = Query(default=None),
    ends_at: AwareDatetime | None = Query(default=None),
    service: AppointmentService = Depends(get_appointment_service),
    deadline: Deadline = Depends(get_deadline),
):
    window_start, window_end = validate_availability_window(trainer_id, starts_at, ends_at)

    slots = service.get_availability(trainer_id, window_start, window_end, deadline=deadline)
    return [AvailabilityResponse.model_validate(slot) for slot in slots]


@router.delete('/appointments/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
    deadline: Deadline = Depends(get_deadline),
):
    service.delete_appointment(appointment_id, deadline=deadline)
