"""Persistence interfaces the scheduling core depends on."""

from datetime import date
from typing import Iterable, Protocol, Sequence, runtime_checkable

from clinic_backend.models.appointment import Appointment
from clinic_backend.models.availability import AvailabilityTemplate


class StorageConflict(Exception):
    """A write lost against a storage-level uniqueness rule."""


class ConcurrentModification(Exception):
    """A row changed in storage after it was read for this write."""


@runtime_checkable
class AvailabilityRepository(Protocol):
    def add(self, template: AvailabilityTemplate) -> AvailabilityTemplate: ...

    def get(self, template_id: int) -> AvailabilityTemplate | None: ...

    def find_active(self, provider_id: str, day_of_week: str) -> AvailabilityTemplate | None: ...

    def list_active(self, provider_id: str) -> Sequence[AvailabilityTemplate]: ...

    def delete(self, template: AvailabilityTemplate) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@runtime_checkable
class AppointmentRepository(Protocol):
    def add(self, appointment: Appointment) -> Appointment: ...

    def get(self, appointment_id: int) -> Appointment | None: ...

    def list_booked(self, provider_id: str, day: date) -> Sequence[Appointment]: ...

    def find_provider_booking(
        self, provider_id: str, day: date, start_time: str, exclude_id: int | None = None
    ) -> Appointment | None: ...

    def find_patient_booking(
        self, patient_id: str, day: date, start_time: str, exclude_id: int | None = None
    ) -> Appointment | None: ...

    def search(
        self,
        *,
        provider_id: str | None = None,
        patient_id: str | None = None,
        statuses: Iterable[str] | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        newest_first: bool = False,
    ) -> Sequence[Appointment]: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
