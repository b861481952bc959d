from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_backend.models.availability import AvailabilityTemplate
from clinic_backend.scheduling.ports import StorageConflict
from clinic_backend.scheduling.validators import DAYS_OF_WEEK


class SqlAvailabilityRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, template: AvailabilityTemplate) -> AvailabilityTemplate:
        self.db.add(template)
        return template

    def get(self, template_id: int) -> AvailabilityTemplate | None:
        return self.db.get(AvailabilityTemplate, template_id)

    def find_active(self, provider_id: str, day_of_week: str) -> AvailabilityTemplate | None:
        return self.db.query(AvailabilityTemplate).filter(
            AvailabilityTemplate.provider_id == provider_id,
            AvailabilityTemplate.day_of_week == day_of_week,
            AvailabilityTemplate.is_active.is_(True),
        ).first()

    def list_active(self, provider_id: str) -> list[AvailabilityTemplate]:
        templates = self.db.query(AvailabilityTemplate).filter(
            AvailabilityTemplate.provider_id == provider_id,
            AvailabilityTemplate.is_active.is_(True),
        ).all()
        return sorted(templates, key=lambda template: DAYS_OF_WEEK.index(template.day_of_week))

    def delete(self, template: AvailabilityTemplate) -> None:
        self.db.delete(template)

    def commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise StorageConflict(str(exc.orig)) from exc

    def rollback(self) -> None:
        self.db.rollback()
