from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from clinic_backend.core import config


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, echo=config.SQL_ECHO, connect_args=connect_args)


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_availability_schema_checked = False
_appointment_schema_checked = False

ACTIVE_TEMPLATE_INDEX = (
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_availability_templates_active_day "
    "ON availability_templates(provider_id, day_of_week) WHERE is_active"
)
PROVIDER_SLOT_INDEX = (
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_provider_slot "
    "ON appointments(provider_id, date, start_time) WHERE status != 'cancelled'"
)
PATIENT_SLOT_INDEX = (
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_patient_slot "
    "ON appointments(patient_id, date, start_time) WHERE status != 'cancelled'"
)


def ensure_availability_schema(bind: Engine | None = None) -> None:
    global _availability_schema_checked

    if _availability_schema_checked:
        return

    target = bind or engine
    with _schema_lock:
        if _availability_schema_checked:
            return

        inspector = inspect(target)

        if 'availability_templates' not in inspector.get_table_names():
            _availability_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('availability_templates')}
        migration_steps = [
            ('effective_from', 'ALTER TABLE availability_templates ADD COLUMN effective_from DATE'),
            ('effective_until', 'ALTER TABLE availability_templates ADD COLUMN effective_until DATE'),
        ]

        with target.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(text(ACTIVE_TEMPLATE_INDEX))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS idx_availability_templates_provider '
                    'ON availability_templates(provider_id, is_active)'
                )
            )

        _availability_schema_checked = True


def ensure_appointment_schema(bind: Engine | None = None) -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    target = bind or engine
    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(target)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('notes', 'ALTER TABLE appointments ADD COLUMN notes VARCHAR'),
            ('reschedule_count', 'ALTER TABLE appointments ADD COLUMN reschedule_count INTEGER DEFAULT 0'),
            ('version_id', 'ALTER TABLE appointments ADD COLUMN version_id INTEGER NOT NULL DEFAULT 1'),
        ]

        with target.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(text(PROVIDER_SLOT_INDEX))
            connection.execute(text(PATIENT_SLOT_INDEX))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_provider_date ON appointments(provider_id, date)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_patient_date ON appointments(patient_id, date)')
            )

        _appointment_schema_checked = True
