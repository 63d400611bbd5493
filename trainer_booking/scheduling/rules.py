"""
Validation rules for appointments.

A rule takes an ``Appointment`` and raises ``ValidationError`` when the
appointment breaks it. Callers assemble the list that fits their context;
an empty list accepts everything.
"""

from datetime import datetime, timedelta

import pytz

from trainer_booking.core.errors import ValidationError
from trainer_booking.scheduling.appointment import Appointment, ValidationRule

BUSINESS_TIMEZONE = pytz.timezone('America/Los_Angeles')
BUSINESS_OPEN_HOUR = 8
BUSINESS_CLOSE_HOUR = 17
APPOINTMENT_DURATION = timedelta(minutes=30)


def must_be_thirty_minutes(appointment: Appointment) -> None:
    duration = appointment.end_time - appointment.start_time
    if duration != APPOINTMENT_DURATION:
        raise ValidationError(f'appointment must be exactly 30 minutes, got {duration}')


def _business_window(local_start: datetime) -> tuple[datetime, datetime]:
    day = local_start.date()
    opens = BUSINESS_TIMEZONE.localize(datetime(day.year, day.month, day.day, BUSINESS_OPEN_HOUR))
    closes = BUSINESS_TIMEZONE.localize(datetime(day.year, day.month, day.day, BUSINESS_CLOSE_HOUR))
    return opens, closes


def must_be_during_business_hours(appointment: Appointment) -> None:
    start_local = appointment.start_time.astimezone(BUSINESS_TIMEZONE)
    end_local = appointment.end_time.astimezone(BUSINESS_TIMEZONE)
    business_start, business_end = _business_window(start_local)

    if start_local < business_start or start_local > business_end:
        raise ValidationError('appointment must start between 8am and 5pm Pacific')

    if end_local < business_start or end_local > business_end:
        raise ValidationError('appointment must end between 8am and 5pm Pacific')


DEFAULT_VALIDATION_RULES: list[ValidationRule] = [
    must_be_thirty_minutes,
    must_be_during_business_hours,
]
