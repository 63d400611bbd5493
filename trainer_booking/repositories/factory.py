import logging

from trainer_booking.core import config
from trainer_booking.repositories.base import AppointmentRepository
from trainer_booking.repositories.memory import MemoryAppointmentRepository
from trainer_booking.repositories.sql import SqlAppointmentRepository

logger = logging.getLogger(__name__)


def new_repository(storage_type: str | None = None, database_url: str | None = None) -> AppointmentRepository:
    storage_type = (storage_type or config.STORAGE_TYPE).strip().lower()

    if storage_type == 'memory':
        logger.info('Using in-memory appointment storage')
        return MemoryAppointmentRepository()

    if storage_type in {'sqlite3', 'postgres'}:
        url = database_url or config.get_database_url(storage_type)
        if not url:
            raise RuntimeError(f'No database configured for storage type {storage_type}.')
        return SqlAppointmentRepository(url)

    raise RuntimeError(f'Unsupported storage type: {storage_type}')
