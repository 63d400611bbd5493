import threading
from dataclasses import replace
from datetime import datetime

import pytest
import pytz

from trainer_booking.core.deadline import Deadline
from trainer_booking.core.errors import ConflictError, NotFoundError, OperationCancelledError, ValidationError
from trainer_booking.repositories.memory import MemoryAppointmentRepository
from trainer_booking.scheduling.appointment import Appointment
from trainer_booking.services.appointment_service import AppointmentService

PACIFIC = pytz.timezone('America/Los_Angeles')


def _pacific(hour: int, minute: int = 0) -> datetime:
    return PACIFIC.localize(datetime(2023, 10, 10, hour, minute))


def _appointment(start: datetime, end: datetime, trainer_id: int = 1, user_id: int = 2) -> Appointment:
    return Appointment(trainer_id=trainer_id, user_id=user_id, start_time=start, end_time=end)


@pytest.fixture
def repository() -> MemoryAppointmentRepository:
    return MemoryAppointmentRepository()


@pytest.fixture
def service(repository: MemoryAppointmentRepository) -> AppointmentService:
    return AppointmentService(repository)


def test_create_appointment_assigns_id_and_lists_it(service: AppointmentService) -> None:
    appointment = _appointment(_pacific(9, 0), _pacific(9, 30))

    created = service.create_appointment(appointment)

    assert created.id == 1
    assert created == replace(appointment, id=1)
    assert service.list_appointments(1) == [created]


def test_list_appointments_is_empty_for_unknown_trainer(service: AppointmentService) -> None:
    assert service.list_appointments(42) == []


def test_list_appointments_is_repeatable_and_in_creation_order(service: AppointmentService) -> None:
    later = service.create_appointment(_appointment(_pacific(11, 0), _pacific(11, 30), user_id=3))
    earlier = service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30), user_id=4))
    service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30), trainer_id=2, user_id=5))

    first = service.list_appointments(1)
    second = service.list_appointments(1)

    assert first == [later, earlier]
    assert first == second


def test_create_appointment_rejects_wrong_duration(service: AppointmentService, repository) -> None:
    with pytest.raises(ValidationError):
        service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 35)))

    assert len(repository) == 0


def test_create_appointment_rejects_time_before_business_hours(service: AppointmentService) -> None:
    with pytest.raises(ValidationError) as exception_info:
        service.create_appointment(_appointment(_pacific(7, 30), _pacific(8, 0)))

    assert exception_info.value.message == 'appointment must start between 8am and 5pm Pacific'


def test_create_appointment_rejects_overlapping_trainer_booking(service: AppointmentService, repository) -> None:
    service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30), user_id=2))

    with pytest.raises(ConflictError) as exception_info:
        service.create_appointment(_appointment(_pacific(9, 15), _pacific(9, 45), user_id=3))

    assert exception_info.value.message.startswith('trainer 1 is not available between')
    assert len(repository) == 1


def test_create_appointment_treats_touching_bookings_as_conflicts(service: AppointmentService) -> None:
    service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30), user_id=2))

    with pytest.raises(ConflictError):
        service.create_appointment(_appointment(_pacific(9, 30), _pacific(10, 0), user_id=3))


def test_create_appointment_rejects_overlapping_user_booking(service: AppointmentService) -> None:
    service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30), trainer_id=1, user_id=7))

    with pytest.raises(ConflictError) as exception_info:
        service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30), trainer_id=2, user_id=7))

    assert exception_info.value.message.startswith('user 7 is not available between')


def test_create_appointment_allows_other_trainer_same_time(service: AppointmentService) -> None:
    service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30), trainer_id=1, user_id=2))

    created = service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30), trainer_id=2, user_id=3))

    assert created.id == 2


def test_create_appointment_uses_custom_rules() -> None:
    service = AppointmentService(MemoryAppointmentRepository(), rules=[])

    created = service.create_appointment(_appointment(_pacific(6, 0), _pacific(7, 15)))

    assert created.id == 1


def test_delete_appointment_removes_it(service: AppointmentService) -> None:
    created = service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30)))

    service.delete_appointment(created.id)

    assert service.list_appointments(1) == []


def test_delete_missing_appointment_raises_not_found(service: AppointmentService, repository) -> None:
    service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30)))

    with pytest.raises(NotFoundError):
        service.delete_appointment(999)

    assert len(repository) == 1


def test_get_availability_excludes_booked_slot(service: AppointmentService) -> None:
    service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30)))

    slots = service.get_availability(1, _pacific(8, 0), _pacific(10, 0))

    assert [slot.start_time for slot in slots] == [_pacific(8, 0), _pacific(8, 30), _pacific(9, 30)]


def test_concurrent_creates_for_same_window_book_once(service: AppointmentService, repository) -> None:
    barrier = threading.Barrier(8)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def book(user_id: int) -> None:
        barrier.wait()
        try:
            service.create_appointment(_appointment(_pacific(10, 0), _pacific(10, 30), user_id=user_id))
            result = 'created'
        except ConflictError:
            result = 'conflict'
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=book, args=(user_id,)) for user_id in range(1, 9)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ['conflict'] * 7 + ['created']
    assert len(repository.list(1)) == 1


def test_cancelled_deadline_aborts_list(service: AppointmentService) -> None:
    deadline = Deadline()
    deadline.cancel()

    with pytest.raises(OperationCancelledError):
        service.list_appointments(1, deadline=deadline)


def test_create_gives_up_when_booking_lock_is_held(service: AppointmentService, repository) -> None:
    with repository.booking_lock(1, 2):
        with pytest.raises(OperationCancelledError):
            service.create_appointment(_appointment(_pacific(9, 0), _pacific(9, 30)), deadline=Deadline(timeout=0.05))

    assert len(repository) == 0
