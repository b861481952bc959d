"""Lifecycle events emitted after an appointment change is committed.

Subscribers run synchronously in the publishing thread. Notification delivery
lives outside this package; it registers a subscriber here.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

logger = logging.getLogger(__name__)

APPOINTMENT_CREATED = 'appointment.created'
APPOINTMENT_CONFIRMED = 'appointment.confirmed'
APPOINTMENT_COMPLETED = 'appointment.completed'
APPOINTMENT_CANCELLED = 'appointment.cancelled'
APPOINTMENT_RESCHEDULED = 'appointment.rescheduled'


@dataclass(frozen=True)
class LifecycleEvent:
    name: str
    appointment_id: int
    provider_id: str
    patient_id: str
    status: str
    actor_id: str | None = None
    occurred_at: datetime = field(default_factory=datetime.now)


Subscriber = Callable[[LifecycleEvent], None]


def log_event(event: LifecycleEvent) -> None:
    logger.info(
        'event=%s appointment_id=%s provider_id=%s patient_id=%s status=%s actor=%s',
        event.name,
        event.appointment_id,
        event.provider_id,
        event.patient_id,
        event.status,
        event.actor_id or '-',
    )


class LifecycleEventPublisher:
    def __init__(self, subscribers: list[Subscriber] | None = None):
        self._subscribers: list[Subscriber] = list(subscribers) if subscribers is not None else [log_event]

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def publish(self, event: LifecycleEvent) -> None:
        # The change is already committed; a failing subscriber must not report it as failed.
        for subscriber in self._subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.exception('Lifecycle subscriber failed for %s on appointment %s', event.name, event.appointment_id)


event_publisher = LifecycleEventPublisher()
