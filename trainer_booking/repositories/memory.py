from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Iterator

from trainer_booking.core.deadline import Deadline
from trainer_booking.core.errors import NotFoundError
from trainer_booking.repositories.locks import KeyedLocks, ReadWriteLock, booking_keys
from trainer_booking.scheduling.appointment import Appointment

logger = logging.getLogger(__name__)


def _in_range(appointment: Appointment, start: datetime, end: datetime) -> bool:
    return appointment.end_time >= start and appointment.start_time <= end


class MemoryAppointmentRepository:
    """Keeps appointments in creation order behind a reader/writer lock."""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._booking_locks = KeyedLocks()
        self._appointments: list[Appointment] = []
        self._last_id = 0

    def create(self, appointment: Appointment, deadline: Deadline | None = None) -> Appointment:
        if deadline is not None:
            deadline.check('create appointment')

        with self._lock.write(deadline):
            self._last_id += 1
            created = replace(appointment, id=self._last_id)
            self._appointments.append(created)

        logger.debug('Created appointment %s for trainer %s', created.id, created.trainer_id)
        return created

    def list(self, trainer_id: int, deadline: Deadline | None = None) -> list[Appointment]:
        if deadline is not None:
            deadline.check('list appointments')

        with self._lock.read(deadline):
            return [appointment for appointment in self._appointments if appointment.trainer_id == trainer_id]

    def delete(self, appointment_id: int, deadline: Deadline | None = None) -> None:
        if deadline is not None:
            deadline.check('delete appointment')

        with self._lock.write(deadline):
            for index, appointment in enumerate(self._appointments):
                if appointment.id == appointment_id:
                    del self._appointments[index]
                    return

        raise NotFoundError(f'appointment with ID {appointment_id} not found')

    def get_trainer_bookings(
        self,
        trainer_id: int,
        start: datetime,
        end: datetime,
        deadline: Deadline | None = None,
    ) -> list[Appointment]:
        if deadline is not None:
            deadline.check('get trainer bookings')

        with self._lock.read(deadline):
            return [
                appointment
                for appointment in self._appointments
                if appointment.trainer_id == trainer_id and _in_range(appointment, start, end)
            ]

    def get_client_bookings(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
        deadline: Deadline | None = None,
    ) -> list[Appointment]:
        if deadline is not None:
            deadline.check('get client bookings')

        with self._lock.read(deadline):
            return [
                appointment
                for appointment in self._appointments
                if appointment.user_id == user_id and _in_range(appointment, start, end)
            ]

    @contextmanager
    def booking_lock(self, trainer_id: int, user_id: int, deadline: Deadline | None = None) -> Iterator[None]:
        with self._booking_locks.hold(booking_keys(trainer_id, user_id), deadline):
            yield

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._appointments)

    def close(self) -> None:
        return None
