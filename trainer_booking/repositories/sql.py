from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from trainer_booking.core.deadline import Deadline, lock_timeout
from trainer_booking.core.errors import InternalError, NotFoundError, OperationCancelledError
from trainer_booking.database import Base, create_database_engine, create_session_factory
from trainer_booking.models.appointment import AppointmentRecord
from trainer_booking.repositories.locks import KeyedLocks, booking_keys
from trainer_booking.scheduling.appointment import Appointment

logger = logging.getLogger(__name__)

ADVISORY_NAMESPACES = {'trainer': 1, 'user': 2}
LOCK_NOT_AVAILABLE = '55P03'


def advisory_lock_keys(trainer_id: int, user_id: int) -> list[tuple[int, int]]:
    return sorted((ADVISORY_NAMESPACES[kind], key_id) for kind, key_id in booking_keys(trainer_id, user_id))


def to_domain(record: AppointmentRecord) -> Appointment:
    return Appointment(
        id=record.id,
        trainer_id=record.trainer_id,
        user_id=record.user_id,
        start_time=record.start_time,
        end_time=record.end_time,
    )


class SqlAppointmentRepository:
    """Appointment storage on any SQLAlchemy database (SQLite, PostgreSQL)."""

    def __init__(self, database_url: str) -> None:
        self._engine = create_database_engine(database_url)
        self._session_factory = create_session_factory(self._engine)
        self._booking_locks = KeyedLocks()
        self._closed = False

        try:
            Base.metadata.create_all(bind=self._engine, tables=[AppointmentRecord.__table__])
        except SQLAlchemyError as exc:
            raise InternalError('Database initialization failed', exc) from exc

        logger.info('Connected to %s database', self._engine.dialect.name)

    @contextmanager
    def _session(self, operation: str, deadline: Deadline | None) -> Iterator[Session]:
        if deadline is not None:
            deadline.check(operation)

        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            raise InternalError(f'{operation} failed', exc) from exc
        finally:
            db.close()

    def create(self, appointment: Appointment, deadline: Deadline | None = None) -> Appointment:
        with self._session('create appointment', deadline) as db:
            record = AppointmentRecord(
                trainer_id=appointment.trainer_id,
                user_id=appointment.user_id,
                start_time=appointment.start_time,
                end_time=appointment.end_time,
            )
            db.add(record)
            db.flush()

            if deadline is not None and deadline.cancelled:
                db.rollback()
                deadline.check('create appointment')

            db.commit()
            db.refresh(record)

            created = to_domain(record)
            logger.debug('Created appointment %s for trainer %s', created.id, created.trainer_id)
            return created

    def list(self, trainer_id: int, deadline: Deadline | None = None) -> list[Appointment]:
        with self._session('list appointments', deadline) as db:
            records = db.query(AppointmentRecord).filter(
                AppointmentRecord.trainer_id == trainer_id,
            ).order_by(AppointmentRecord.id.asc()).all()

            return [to_domain(record) for record in records]

    def delete(self, appointment_id: int, deadline: Deadline | None = None) -> None:
        with self._session('delete appointment', deadline) as db:
            deleted = db.query(AppointmentRecord).filter(
                AppointmentRecord.id == appointment_id,
            ).delete()

            if not deleted:
                db.rollback()
                raise NotFoundError(f'appointment {appointment_id} not found')

            db.commit()
            logger.debug('Deleted appointment %s', appointment_id)

    def get_trainer_bookings(
        self,
        trainer_id: int,
        start: datetime,
        end: datetime,
        deadline: Deadline | None = None,
    ) -> list[Appointment]:
        with self._session('get trainer bookings', deadline) as db:
            records = db.query(AppointmentRecord).filter(
                AppointmentRecord.trainer_id == trainer_id,
                AppointmentRecord.end_time >= start,
                AppointmentRecord.start_time <= end,
            ).order_by(AppointmentRecord.start_time.asc()).all()

            return [to_domain(record) for record in records]

    def get_client_bookings(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
        deadline: Deadline | None = None,
    ) -> list[Appointment]:
        with self._session('get client bookings', deadline) as db:
            records = db.query(AppointmentRecord).filter(
                AppointmentRecord.user_id == user_id,
                AppointmentRecord.end_time >= start,
                AppointmentRecord.start_time <= end,
            ).order_by(AppointmentRecord.start_time.asc()).all()

            return [to_domain(record) for record in records]

    @contextmanager
    def booking_lock(self, trainer_id: int, user_id: int, deadline: Deadline | None = None) -> Iterator[None]:
        with self._booking_locks.hold(booking_keys(trainer_id, user_id), deadline):
            if self._engine.dialect.name != 'postgresql':
                yield
                return

            with self._advisory_locks(trainer_id, user_id, deadline):
                yield

    @contextmanager
    def _advisory_locks(self, trainer_id: int, user_id: int, deadline: Deadline | None) -> Iterator[None]:
        # Transaction-scoped locks shared by every worker process on the same database.
        if deadline is not None:
            deadline.check('acquire booking lock')

        connection = None
        try:
            connection = self._engine.connect()
            timeout = lock_timeout(deadline)
            if timeout >= 0:
                connection.execute(
                    text("SELECT set_config('lock_timeout', :value, true)"),
                    {'value': f'{max(1, int(timeout * 1000))}ms'},
                )
            for namespace, key_id in advisory_lock_keys(trainer_id, user_id):
                connection.execute(
                    text('SELECT pg_advisory_xact_lock(:namespace, :key_id)'),
                    {'namespace': namespace, 'key_id': key_id},
                )
        except SQLAlchemyError as exc:
            if connection is not None:
                connection.close()
            if isinstance(exc, OperationalError) and getattr(exc.orig, 'pgcode', None) == LOCK_NOT_AVAILABLE:
                raise OperationCancelledError('waiting for booking lock cancelled', exc) from exc
            raise InternalError('acquire booking lock failed', exc) from exc

        try:
            yield
        finally:
            connection.rollback()
            connection.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._engine.dispose()
