import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable

from trainer_booking.core.deadline import Deadline
from trainer_booking.repositories.base import AppointmentRepository
from trainer_booking.scheduling.appointment import Appointment, TimeSlot
from trainer_booking.scheduling.rules import (
    APPOINTMENT_DURATION,
    BUSINESS_CLOSE_HOUR,
    BUSINESS_OPEN_HOUR,
    BUSINESS_TIMEZONE,
)

logger = logging.getLogger(__name__)

SLOT_INCREMENT_MINUTES = 30


def is_on_slot_boundary(value: datetime) -> bool:
    return value.minute % SLOT_INCREMENT_MINUTES == 0 and value.second == 0 and value.microsecond == 0


def round_up_to_next_slot(value: datetime) -> datetime:
    """Round a time up to the next :00 or :30 mark, in UTC."""
    value = value.astimezone(timezone.utc)
    if is_on_slot_boundary(value):
        return value

    hour_start = value.replace(minute=0, second=0, microsecond=0)
    if value.minute < SLOT_INCREMENT_MINUTES:
        return hour_start + timedelta(minutes=SLOT_INCREMENT_MINUTES)
    return hour_start + timedelta(hours=1)


def is_business_hour_slot(slot_start: datetime) -> bool:
    local_hour = slot_start.astimezone(BUSINESS_TIMEZONE).hour
    return BUSINESS_OPEN_HOUR <= local_hour < BUSINESS_CLOSE_HOUR


def overlaps_booking(slot_start: datetime, slot_end: datetime, booking: Appointment) -> bool:
    return slot_start < booking.end_time and slot_end > booking.start_time


def calculate_available_slots(
    bookings: Iterable[Appointment],
    window_start: datetime,
    window_end: datetime,
) -> list[TimeSlot]:
    window_start = window_start.astimezone(timezone.utc)
    window_end = window_end.astimezone(timezone.utc)
    bookings = list(bookings)

    current_start = round_up_to_next_slot(window_start)
    logger.debug(
        'Slot calculation original_start=%s rounded_start=%s',
        window_start.isoformat(),
        current_start.isoformat(),
    )

    available: list[TimeSlot] = []
    while current_start + APPOINTMENT_DURATION <= window_end:
        current_end = current_start + APPOINTMENT_DURATION

        if is_business_hour_slot(current_start) and not any(
            overlaps_booking(current_start, current_end, booking) for booking in bookings
        ):
            available.append(TimeSlot(start_time=current_start, end_time=current_end))

        current_start = current_end

    return available


def get_available_slots(
    repository: AppointmentRepository,
    trainer_id: int,
    window_start: datetime,
    window_end: datetime,
    deadline: Deadline | None = None,
) -> list[TimeSlot]:
    window_start = window_start.astimezone(timezone.utc)
    window_end = window_end.astimezone(timezone.utc)

    booked = repository.get_trainer_bookings(trainer_id, window_start, window_end, deadline=deadline)
    return calculate_available_slots(booked, window_start, window_end)
