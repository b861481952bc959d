import logging
from contextlib import contextmanager

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.database import SessionLocal, ensure_appointment_schema, ensure_availability_schema
from clinic_backend.scheduling.errors import SchedulingError
from clinic_backend.scheduling.service import SchedulingService, build_scheduling_service

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    ensure_database_ready()
    return build_scheduling_service(db)


@contextmanager
def translate_errors(service: SchedulingService):
    """Turn scheduling and storage failures into HTTP errors, undoing any partial write."""
    try:
        yield
    except SchedulingError as exc:
        service.rollback()
        raise HTTPException(
            status_code=exc.status_code,
            detail=exc.detail,
            headers={'X-Error-Code': exc.code},
        ) from exc
    except SQLAlchemyError as exc:
        service.rollback()
        logger.exception('Database error while handling scheduling request')
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc
