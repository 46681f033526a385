"""
Archive, restore and hard delete.

Archiving is a soft delete orthogonal to ``status``: an archived complaint
keeps its status, drops out of default listings and the public feed, and
accepts no lifecycle events until it is restored. Hard deletion removes the
row for good; the ``AuditRecord`` describing it is written first, in the same
transaction, because nothing can be attached to the complaint afterwards.
"""

import logging

from django.db import transaction

from .exceptions import InvalidTransition, Unauthorized
from .lifecycle import load_complaint
from .models import AuditRecord, Complaint, Event
from .signals import DomainEvent, emit

logger = logging.getLogger(__name__)


def _require_admin(actor, event, complaint_id):
    if not actor.is_admin:
        raise Unauthorized(
            f"only admins may perform '{event}' on complaints",
            complaint_id=complaint_id,
            event=event,
        )


def _snapshot(complaint: Complaint) -> dict:
    return {
        "reference_id": complaint.reference_id,
        "title": complaint.title,
        "category": complaint.category,
        "priority": complaint.priority,
        "status": complaint.status,
        "citizen_id": complaint.citizen_id,
        "assigned_field_staff_id": complaint.assigned_field_staff_id,
    }


def _audit(complaint, actor, action, reason=""):
    return AuditRecord.objects.create(
        entity_type="complaint",
        entity_id=complaint.pk,
        action=action,
        performed_by_id=actor.id,
        reason=reason,
        details=_snapshot(complaint),
    )


def archive(complaint_id, actor, reason="") -> Complaint:
    _require_admin(actor, Event.ARCHIVE, complaint_id)
    reason = (reason or "").strip()
    with transaction.atomic():
        complaint = load_complaint(complaint_id, for_update=True)
        if complaint.archived:
            raise InvalidTransition(
                "the complaint is already archived",
                complaint_id=complaint.pk,
                event=Event.ARCHIVE,
                status=complaint.status,
            )
        now = complaint.touch()
        complaint.archived = True
        complaint.archived_at = now
        complaint.archived_by_id = actor.id
        complaint.archive_reason = reason
        complaint.save()
        _audit(complaint, actor, Event.ARCHIVE, reason)
        emit(DomainEvent(Event.ARCHIVE, complaint.pk, actor.id, now))
    logger.info("Complaint %s archived by %s", complaint.reference_id, actor.id)
    return complaint


def restore(complaint_id, actor) -> Complaint:
    _require_admin(actor, Event.RESTORE, complaint_id)
    with transaction.atomic():
        complaint = load_complaint(complaint_id, for_update=True)
        if not complaint.archived:
            raise InvalidTransition(
                "the complaint is not archived",
                complaint_id=complaint.pk,
                event=Event.RESTORE,
                status=complaint.status,
            )
        now = complaint.touch()
        complaint.archived = False
        complaint.archived_at = None
        complaint.archived_by = None
        complaint.archive_reason = ""
        complaint.save()
        _audit(complaint, actor, Event.RESTORE)
        emit(DomainEvent(Event.RESTORE, complaint.pk, actor.id, now))
    logger.info("Complaint %s restored by %s", complaint.reference_id, actor.id)
    return complaint


def hard_delete(complaint_id, actor, reason="") -> AuditRecord:
    _require_admin(actor, Event.HARD_DELETE, complaint_id)
    reason = (reason or "").strip()
    with transaction.atomic():
        complaint = load_complaint(complaint_id, for_update=True)
        record = _audit(complaint, actor, Event.HARD_DELETE, reason)
        pk, reference_id = complaint.pk, complaint.reference_id
        complaint.delete()
        emit(DomainEvent(Event.HARD_DELETE, pk, actor.id, record.created_at))
    logger.warning("Complaint %s permanently deleted by %s", reference_id, actor.id)
    return record


def audit_trail(complaint_id):
    return AuditRecord.objects.filter(entity_type="complaint", entity_id=complaint_id)
