"""Domain types for trainer appointments and free slots."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable


@dataclass(frozen=True)
class Appointment:
    """A meeting between a trainer and a user. ``id`` is 0 until persisted."""

    trainer_id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    id: int = 0

    def validate(self, rules: Iterable['ValidationRule']) -> None:
        for rule in rules:
            rule(self)


ValidationRule = Callable[[Appointment], None]


@dataclass(frozen=True)
class TimeSlot:
    start_time: datetime
    end_time: datetime
    available: bool = True
