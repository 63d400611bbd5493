from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol

from trainer_booking.core.deadline import Deadline
from trainer_booking.scheduling.appointment import Appointment


class AppointmentRepository(Protocol):
    """
    Storage for appointments.

    Booking range queries are inclusive on both ends: an appointment matches
    when ``end_time >= start`` and ``start_time <= end``.
    """

    def create(self, appointment: Appointment, deadline: Deadline | None = None) -> Appointment:
        ...

    def list(self, trainer_id: int, deadline: Deadline | None = None) -> list[Appointment]:
        ...

    def delete(self, appointment_id: int, deadline: Deadline | None = None) -> None:
        ...

    def get_trainer_bookings(
        self,
        trainer_id: int,
        start: datetime,
        end: datetime,
        deadline: Deadline | None = None,
    ) -> list[Appointment]:
        ...

    def get_client_bookings(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
        deadline: Deadline | None = None,
    ) -> list[Appointment]:
        ...

    def booking_lock(
        self,
        trainer_id: int,
        user_id: int,
        deadline: Deadline | None = None,
    ) -> AbstractContextManager[None]:
        """Serialize conflict checks and inserts for one trainer and one user."""
        ...

    def close(self) -> None:
        ...
