"""Appointment table definition."""

from sqlalchemy import Column, Index, Integer

from trainer_booking.database import Base, UTCDateTime


class AppointmentRecord(Base):
    """Represents a persisted trainer appointment."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index('idx_appointments_trainer_time_range', 'trainer_id', 'start_time', 'end_time'),
        Index('idx_appointments_user_time_range', 'user_id', 'start_time', 'end_time'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    trainer_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=False)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
