from datetime import datetime, timezone

import pytest

from trainer_booking.core.deadline import Deadline
from trainer_booking.core.errors import NotFoundError, OperationCancelledError
from trainer_booking.repositories.memory import MemoryAppointmentRepository
from trainer_booking.scheduling.appointment import Appointment


def _utc(hour: int, minute: int = 0) -> datetime:
    return datetime(2023, 10, 10, hour, minute, tzinfo=timezone.utc)


def _appointment(start: datetime, end: datetime, trainer_id: int = 1, user_id: int = 2) -> Appointment:
    return Appointment(trainer_id=trainer_id, user_id=user_id, start_time=start, end_time=end)


def test_create_assigns_increasing_ids() -> None:
    repository = MemoryAppointmentRepository()

    first = repository.create(_appointment(_utc(16, 0), _utc(16, 30)))
    second = repository.create(_appointment(_utc(17, 0), _utc(17, 30)))

    assert (first.id, second.id) == (1, 2)


def test_ids_are_not_reused_after_delete() -> None:
    repository = MemoryAppointmentRepository()
    first = repository.create(_appointment(_utc(16, 0), _utc(16, 30)))

    repository.delete(first.id)
    second = repository.create(_appointment(_utc(16, 0), _utc(16, 30)))

    assert second.id == 2


def test_list_filters_by_trainer() -> None:
    repository = MemoryAppointmentRepository()
    mine = repository.create(_appointment(_utc(16, 0), _utc(16, 30), trainer_id=1))
    repository.create(_appointment(_utc(16, 0), _utc(16, 30), trainer_id=2))

    assert repository.list(1) == [mine]


def test_trainer_bookings_range_is_inclusive_at_both_ends() -> None:
    repository = MemoryAppointmentRepository()
    before = repository.create(_appointment(_utc(15, 30), _utc(16, 0)))
    after = repository.create(_appointment(_utc(16, 30), _utc(17, 0)))
    repository.create(_appointment(_utc(18, 0), _utc(18, 30)))

    assert repository.get_trainer_bookings(1, _utc(16, 0), _utc(16, 30)) == [before, after]


def test_client_bookings_are_keyed_by_user() -> None:
    repository = MemoryAppointmentRepository()
    booked = repository.create(_appointment(_utc(16, 0), _utc(16, 30), trainer_id=1, user_id=5))
    repository.create(_appointment(_utc(16, 0), _utc(16, 30), trainer_id=2, user_id=6))

    assert repository.get_client_bookings(5, _utc(16, 0), _utc(16, 30)) == [booked]
    assert repository.get_client_bookings(7, _utc(16, 0), _utc(16, 30)) == []


def test_delete_missing_appointment_raises_not_found() -> None:
    repository = MemoryAppointmentRepository()
    repository.create(_appointment(_utc(16, 0), _utc(16, 30)))

    with pytest.raises(NotFoundError):
        repository.delete(5)

    assert len(repository) == 1


def test_expired_deadline_aborts_create() -> None:
    repository = MemoryAppointmentRepository()

    with pytest.raises(OperationCancelledError):
        repository.create(_appointment(_utc(16, 0), _utc(16, 30)), deadline=Deadline(timeout=0))

    assert len(repository) == 0


def test_reads_wait_for_writer_until_deadline() -> None:
    repository = MemoryAppointmentRepository()

    with repository._lock.write():
        with pytest.raises(OperationCancelledError):
            repository.list(1, deadline=Deadline(timeout=0.05))

    assert repository.list(1) == []


def test_close_is_idempotent() -> None:
    repository = MemoryAppointmentRepository()

    repository.close()
    repository.close()
