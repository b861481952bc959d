import os
from datetime import date, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from clinic_backend.database import Base  # noqa: E402
from clinic_backend.models.appointment import Appointment  # noqa: E402
from clinic_backend.models.availability import AvailabilityTemplate  # noqa: E402
from clinic_backend.repositories.appointment_repository import SqlAppointmentRepository  # noqa: E402
from clinic_backend.repositories.availability_repository import SqlAvailabilityRepository  # noqa: E402
from clinic_backend.scheduling.events import LifecycleEventPublisher  # noqa: E402
from clinic_backend.scheduling.locks import SlotLockRegistry  # noqa: E402
from clinic_backend.scheduling.service import SchedulingService  # noqa: E402

# 2026-01-05 is a Monday, 2026-01-07 a Wednesday.
MONDAY = date(2026, 1, 5)
NEXT_MONDAY = date(2026, 1, 12)
WEDNESDAY = date(2026, 1, 7)
NOW = datetime(2026, 1, 1, 8, 0)

PROVIDER = 'doctor-1'
PATIENT = 'patient-1'


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def recorded_events() -> list:
    return []


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=[AvailabilityTemplate.__table__, Appointment.__table__])

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=[Appointment.__table__, AvailabilityTemplate.__table__])
        engine.dispose()


def make_service(db, clock, recorded_events=None, locks=None) -> SchedulingService:
    publisher = LifecycleEventPublisher(subscribers=[recorded_events.append] if recorded_events is not None else [])
    return SchedulingService(
        SqlAvailabilityRepository(db),
        SqlAppointmentRepository(db),
        clock=clock,
        locks=locks or SlotLockRegistry(),
        publisher=publisher,
    )


@pytest.fixture
def service(db_session, clock, recorded_events) -> SchedulingService:
    return make_service(db_session, clock, recorded_events)


@pytest.fixture
def monday_template(service):
    return service.create_availability_template(
        PROVIDER,
        'monday',
        [{'start': '08:00', 'end': '13:00'}],
        30,
    )
