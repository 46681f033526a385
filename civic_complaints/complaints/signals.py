import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

complaint_event = Signal()


@dataclass(frozen=True)
class DomainEvent:
    type: str
    complaint_id: int
    actor_id: int
    timestamp: datetime


def emit(event: DomainEvent):
    """Deliver ``event`` once the surrounding transaction commits."""
    transaction.on_commit(lambda: _deliver(event))


def _deliver(event: DomainEvent):
    for receiver, response in complaint_event.send_robust(sender=DomainEvent, event=event):
        if isinstance(response, Exception):
            logger.error(
                "Receiver %r failed for %s on complaint %s: %s",
                receiver,
                event.type,
                event.complaint_id,
                response,
            )
