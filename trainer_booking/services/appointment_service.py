import logging
from datetime import datetime
from typing import Sequence

from trainer_booking.core.deadline import Deadline
from trainer_booking.core.errors import ConflictError
from trainer_booking.repositories.base import AppointmentRepository
from trainer_booking.scheduling.appointment import Appointment, TimeSlot, ValidationRule
from trainer_booking.scheduling.availability import get_available_slots
from trainer_booking.scheduling.rules import DEFAULT_VALIDATION_RULES

logger = logging.getLogger(__name__)


class AppointmentService:
    """Books trainer appointments and answers availability queries."""

    def __init__(
        self,
        repository: AppointmentRepository,
        rules: Sequence[ValidationRule] | None = None,
    ) -> None:
        self.repository = repository
        self.rules = list(DEFAULT_VALIDATION_RULES if rules is None else rules)

    def list_appointments(self, trainer_id: int, deadline: Deadline | None = None) -> list[Appointment]:
        return self.repository.list(trainer_id, deadline=deadline)

    def create_appointment(self, appointment: Appointment, deadline: Deadline | None = None) -> Appointment:
        appointment.validate(self.rules)

        with self.repository.booking_lock(appointment.trainer_id, appointment.user_id, deadline=deadline):
            trainer_bookings = self.repository.get_trainer_bookings(
                appointment.trainer_id,
                appointment.start_time,
                appointment.end_time,
                deadline=deadline,
            )
            if trainer_bookings:
                raise ConflictError(
                    f'trainer {appointment.trainer_id} is not available between '
                    f'{appointment.start_time.isoformat()} and {appointment.end_time.isoformat()}'
                )

            client_bookings = self.repository.get_client_bookings(
                appointment.user_id,
                appointment.start_time,
                appointment.end_time,
                deadline=deadline,
            )
            if client_bookings:
                raise ConflictError(
                    f'user {appointment.user_id} is not available between '
                    f'{appointment.start_time.isoformat()} and {appointment.end_time.isoformat()}'
                )

            created = self.repository.create(appointment, deadline=deadline)

        logger.info(
            'Booked appointment %s for trainer %s and user %s at %s',
            created.id,
            created.trainer_id,
            created.user_id,
            created.start_time.isoformat(),
        )
        return created

    def delete_appointment(self, appointment_id: int, deadline: Deadline | None = None) -> None:
        self.repository.delete(appointment_id, deadline=deadline)
        logger.info('Deleted appointment %s', appointment_id)

    def get_availability(
        self,
        trainer_id: int,
        window_start: datetime,
        window_end: datetime,
        deadline: Deadline | None = None,
    ) -> list[TimeSlot]:
        return get_available_slots(self.repository, trainer_id, window_start, window_end, deadline=deadline)
