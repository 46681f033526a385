"""
Complaint lifecycle.

Moves complaints between statuses on behalf of an explicit actor:

    pending ──assign_to_staff──▶ assigned ──start_work──▶ in_progress
       │                                                   │  ▲   ↺ update_progress
       └─reject_complaint─▶ rejected          complete_work│  │reject_work
                                                           ▼  │
                                       resolved ◀──approve_work── work_completed

``add_note`` is legal on every non-terminal status and ``close`` on every
status but ``closed``. Archiving, restoring and hard deletion live in
``complaints.archive``.

Each attempt is checked in a fixed order and the first failure wins:
actor role, actor identity (assigned field staff), current status, payload.
A successful transition is a single database transaction: the complaint row
is locked, mutated, a timeline note is appended, and a domain event is queued
for delivery after commit.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from django.db import transaction
from django.utils import timezone

from . import assignment
from .directory import default_directory
from .exceptions import (
    AlreadyTerminal,
    ComplaintError,
    ConcurrentModification,
    InvalidTransition,
    NotFound,
    Unauthorized,
    ValidationFailed,
)
from .models import AuditRecord, Complaint, ComplaintNote, Event, UserProfile
from .payloads import LIFECYCLE_PAYLOADS, Actor, SubmitComplaint
from .signals import DomainEvent, emit

logger = logging.getLogger(__name__)

Status = Complaint.Status
Role = UserProfile.Role


@dataclass(frozen=True)
class Rule:
    sources: frozenset
    target: str | None
    roles: frozenset
    # Field-staff actors must be the complaint's assignee.
    assignee_only: bool = False


ALL_STATUSES = frozenset(Status)
NON_TERMINAL = ALL_STATUSES - Complaint.TERMINAL_STATUSES
ADMIN_ONLY = frozenset({Role.ADMIN})
STAFF_ONLY = frozenset({Role.FIELD_STAFF})

TRANSITIONS = {
    Event.ASSIGN_TO_STAFF: Rule(frozenset({Status.PENDING}), Status.ASSIGNED, ADMIN_ONLY),
    Event.REJECT_COMPLAINT: Rule(frozenset({Status.PENDING}), Status.REJECTED, ADMIN_ONLY),
    Event.START_WORK: Rule(frozenset({Status.ASSIGNED}), Status.IN_PROGRESS, STAFF_ONLY, True),
    Event.UPDATE_PROGRESS: Rule(frozenset({Status.IN_PROGRESS}), None, STAFF_ONLY, True),
    Event.COMPLETE_WORK: Rule(frozenset({Status.IN_PROGRESS}), Status.WORK_COMPLETED, STAFF_ONLY, True),
    Event.APPROVE_WORK: Rule(frozenset({Status.WORK_COMPLETED}), Status.RESOLVED, ADMIN_ONLY),
    Event.REJECT_WORK: Rule(frozenset({Status.WORK_COMPLETED}), Status.IN_PROGRESS, ADMIN_ONLY),
    Event.ADD_NOTE: Rule(NON_TERMINAL, None, frozenset({Role.ADMIN, Role.FIELD_STAFF}), True),
    Event.CLOSE: Rule(ALL_STATUSES - {Status.CLOSED}, Status.CLOSED, ADMIN_ONLY),
}


@dataclass
class TransitionResult:
    complaint: Complaint
    event: str
    previous_status: str
    new_status: str
    warnings: list = field(default_factory=list)


def _label(event) -> str:
    return Event(event).label.lower()


def _role_label(role) -> str:
    return Role(role).label if role in Role.values else str(role)


def load_complaint(complaint_id, *, for_update=False) -> Complaint:
    queryset = Complaint.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=complaint_id)
    except (Complaint.DoesNotExist, ValueError, TypeError):
        pass
    # A hard delete leaves only its audit record behind.
    if str(complaint_id).isdigit() and AuditRecord.objects.filter(
        entity_type="complaint",
        entity_id=complaint_id,
        action=Event.HARD_DELETE,
    ).exists():
        raise AlreadyTerminal("the complaint was permanently deleted", complaint_id=complaint_id)
    raise NotFound(f"complaint {complaint_id} does not exist", complaint_id=complaint_id)


def _rule_for(payload) -> Rule:
    if type(payload) not in LIFECYCLE_PAYLOADS:
        raise InvalidTransition(f"{type(payload).__name__} is not a lifecycle event")
    return TRANSITIONS[payload.event]


def _check_actor(complaint, actor, event, rule):
    context = {"complaint_id": complaint.pk, "event": event, "status": complaint.status}
    if actor.role not in rule.roles:
        raise Unauthorized(
            f"{_role_label(actor.role)} accounts may not perform '{_label(event)}'",
            **context,
        )
    if rule.assignee_only and actor.is_field_staff and complaint.assigned_field_staff_id != actor.id:
        raise Unauthorized(
            f"only the field-staff member assigned to this complaint may perform '{_label(event)}'",
            **context,
        )


def _check_status(complaint, event, rule):
    context = {"complaint_id": complaint.pk, "event": event, "status": complaint.status}
    if complaint.archived:
        raise InvalidTransition("the complaint is archived; restore it first", **context)
    if complaint.status in rule.sources:
        return
    status_label = complaint.get_status_display().lower()
    if complaint.is_terminal:
        raise AlreadyTerminal(f"the complaint is already {status_label}", **context)
    raise InvalidTransition(
        f"cannot perform '{_label(event)}' on a complaint that is {status_label}",
        **context,
    )


def validate_transition(complaint, actor, payload):
    """Run the actor and status checks without touching the database."""
    rule = _rule_for(payload)
    _check_actor(complaint, actor, payload.event, rule)
    _check_status(complaint, payload.event, rule)


def available_events(complaint, actor):
    events = []
    for event, rule in TRANSITIONS.items():
        try:
            _check_actor(complaint, actor, event, rule)
            _check_status(complaint, event, rule)
        except (Unauthorized, InvalidTransition):
            continue
        events.append(event)
    return events


def _set_once(complaint, field_name, value):
    if getattr(complaint, field_name) is None:
        setattr(complaint, field_name, value)


def _assign_to_staff(complaint, actor, payload, now, directory):
    check = assignment.assign(complaint, payload.staff_id, actor, directory, now)
    return f"Assigned to field staff #{payload.staff_id}", check.warnings


def _reject_complaint(complaint, actor, payload, now, directory):
    reason = payload.reason.strip()
    complaint.rejection_reason = reason
    complaint.rejected_by_id = actor.id
    _set_once(complaint, "rejected_at", now)
    return reason, []


def _record_note(complaint, actor, payload, now, directory):
    return payload.note.strip(), []


def _complete_work(complaint, actor, payload, now, directory):
    notes = payload.completion_notes.strip()
    complaint.work_completion_notes = notes
    complaint.work_proof_image_refs = [image.as_dict() for image in payload.proof_images]
    complaint.work_completed_by_id = actor.id
    _set_once(complaint, "work_completed_at", now)
    return notes, []


def _approve_work(complaint, actor, payload, now, directory):
    notes = (payload.approval_notes or "").strip() or "Work approved by admin"
    complaint.admin_approval_notes = notes
    complaint.admin_approved_by_id = actor.id
    complaint.resolution_notes = notes
    _set_once(complaint, "admin_approved_at", now)
    _set_once(complaint, "resolved_at", now)
    return notes, []


def _reject_work(complaint, actor, payload, now, directory):
    reason = payload.reason.strip()
    complaint.work_rejection_reason = reason
    _set_once(complaint, "work_rejected_at", now)
    # A stale completion claim must not carry over into the next attempt.
    complaint.work_completion_notes = ""
    complaint.work_proof_image_refs = []
    complaint.work_completed_by = None
    return f"Work rejected: {reason}", []


def _close(complaint, actor, payload, now, directory):
    reason = (payload.reason or "").strip()
    complaint.closure_reason = reason
    _set_once(complaint, "closed_at", now)
    return reason or "Complaint closed", []


_HANDLERS = {
    Event.ASSIGN_TO_STAFF: _assign_to_staff,
    Event.REJECT_COMPLAINT: _reject_complaint,
    Event.START_WORK: _record_note,
    Event.UPDATE_PROGRESS: _record_note,
    Event.COMPLETE_WORK: _complete_work,
    Event.APPROVE_WORK: _approve_work,
    Event.REJECT_WORK: _reject_work,
    Event.ADD_NOTE: _record_note,
    Event.CLOSE: _close,
}


def _apply(complaint_id, actor, payload, rule, expected_last_updated, directory):
    event = payload.event
    with transaction.atomic():
        complaint = load_complaint(complaint_id, for_update=True)
        if expected_last_updated is not None and complaint.last_updated != expected_last_updated:
            raise ConcurrentModification(
                "the complaint was changed by someone else; reload and try again",
                complaint_id=complaint.pk,
                event=event,
                status=complaint.status,
            )
        _check_actor(complaint, actor, event, rule)
        _check_status(complaint, event, rule)
        try:
            payload.validate()
        except ValidationFailed as exc:
            exc.complaint_id, exc.event, exc.status = complaint.pk, event, complaint.status
            raise

        previous_status = complaint.status
        now = complaint.touch()
        note, warnings = _HANDLERS[event](complaint, actor, payload, now, directory)
        if rule.target is not None:
            complaint.status = rule.target
        if complaint.status not in Complaint.ASSIGNED_STATUSES:
            complaint.assigned_field_staff = None
        complaint.save()
        ComplaintNote.objects.create(
            complaint=complaint,
            event=event,
            note=note,
            added_by_id=actor.id,
            added_at=now,
        )
        emit(DomainEvent(event, complaint.pk, actor.id, now))
    return complaint, previous_status, warnings


def transition(
    complaint_id,
    actor: Actor,
    payload,
    *,
    expected_last_updated: datetime | None = None,
    directory=None,
) -> TransitionResult:
    """
    Apply one lifecycle event to a complaint.

    Args:
        complaint_id: primary key of the complaint
        actor: who is acting, with the role they act in
        payload: one of the records in ``complaints.payloads``; it determines the event
        expected_last_updated: the ``last_updated`` value the caller last saw;
            a mismatch raises ``ConcurrentModification``
        directory: staff directory used by ``assign_to_staff``

    Raises:
        Unauthorized, InvalidTransition, AlreadyTerminal, ValidationFailed,
        NotFound, ConcurrentModification
    """
    rule = _rule_for(payload)
    event = payload.event

    try:
        complaint, previous_status, warnings = _apply(
            complaint_id,
            actor,
            payload,
            rule,
            expected_last_updated,
            directory or default_directory,
        )
    except ComplaintError as exc:
        logger.debug("Refused %s on complaint %s by %s: %s", event, complaint_id, actor.id, exc.message)
        raise

    logger.info(
        "Complaint %s: %s by %s (%s -> %s)",
        complaint.reference_id,
        event,
        actor.id,
        previous_status,
        complaint.status,
    )
    return TransitionResult(
        complaint=complaint,
        event=event,
        previous_status=previous_status,
        new_status=complaint.status,
        warnings=warnings,
    )


def submit_complaint(actor: Actor, payload: SubmitComplaint) -> Complaint:
    if actor.role not in (Role.CITIZEN, Role.ADMIN):
        raise Unauthorized(
            f"{_role_label(actor.role)} accounts may not submit complaints",
            event=Event.SUBMITTED,
        )
    payload.validate()

    now = timezone.now()
    with transaction.atomic():
        complaint = Complaint.objects.create(
            citizen_id=actor.id,
            title=payload.title.strip(),
            description=payload.description.strip(),
            category=payload.category,
            priority=payload.priority,
            address=payload.address.strip(),
            city=payload.city.strip(),
            pincode=payload.pincode.strip(),
            image_refs=[image.as_dict() for image in payload.images],
            is_public=payload.is_public,
            is_anonymous=payload.is_anonymous,
            created_at=now,
            last_updated=now,
        )
        emit(DomainEvent(Event.SUBMITTED, complaint.pk, actor.id, now))

    logger.info("Complaint %s submitted by %s", complaint.reference_id, actor.id)
    return complaint
