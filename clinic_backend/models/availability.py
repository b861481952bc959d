"""Availability template model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Index, Integer, String, text

from clinic_backend.database import Base


class AvailabilityTemplate(Base):
    """A provider's recurring availability for one day of the week."""
    __tablename__ = "availability_templates"

    id = Column(Integer, primary_key=True)
    provider_id = Column(String, nullable=False, index=True)
    day_of_week = Column(String, nullable=False)  # monday..sunday
    time_ranges = Column(JSON, nullable=False, default=list)  # [{"start": "08:00", "end": "13:00"}]
    slot_duration_minutes = Column(Integer, nullable=False, default=30)
    is_active = Column(Boolean, nullable=False, default=True)
    effective_from = Column(Date, nullable=True)
    effective_until = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index(
            "uq_availability_templates_active_day",
            "provider_id",
            "day_of_week",
            unique=True,
            sqlite_where=text("is_active"),
            postgresql_where=text("is_active"),
        ),
    )

    def is_effective_on(self, day) -> bool:
        if self.effective_from and day < self.effective_from:
            return False
        if self.effective_until and day > self.effective_until:
            return False
        return True
