import logging

from django.conf import settings
from django.core.mail import send_mail
from django.dispatch import receiver

from .models import Complaint, Event
from .signals import complaint_event

logger = logging.getLogger(__name__)

CITIZEN_MESSAGES = {
    Event.SUBMITTED: "Your complaint has been submitted successfully.",
    Event.ASSIGN_TO_STAFF: "Your complaint has been assigned to our field staff.",
    Event.START_WORK: "Work on your complaint has started.",
    Event.COMPLETE_WORK: "Field staff reported the work as completed. It is awaiting review.",
    Event.APPROVE_WORK: "Your complaint has been resolved.",
    Event.REJECT_COMPLAINT: "Your complaint has been rejected.",
    Event.CLOSE: "Your complaint has been closed.",
}


def send_citizen_update_email(complaint, event_type):
    citizen = complaint.citizen
    if not citizen.email:
        return
    send_mail(
        subject=f"Complaint Update: {complaint.reference_id}",
        message=(
            f"Dear {citizen.get_username()},\n\n"
            f"{CITIZEN_MESSAGES[event_type]}\n"
            f"Reference ID: {complaint.reference_id}\n"
            f"Status: {complaint.get_status_display()}\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[citizen.email],
        fail_silently=True,
    )


def send_work_rejected_email(complaint):
    staff = complaint.assigned_field_staff
    if staff is None or not staff.email:
        return
    send_mail(
        subject=f"Work Rejected: {complaint.reference_id}",
        message=(
            f"Dear {staff.get_username()},\n\n"
            "The work you submitted was not accepted.\n"
            f"Reason: {complaint.work_rejection_reason}\n"
            f"Reference ID: {complaint.reference_id}\n"
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[staff.email],
        fail_silently=True,
    )


@receiver(complaint_event, dispatch_uid="complaints.email_on_event")
def email_on_event(sender, event, **kwargs):
    if not settings.COMPLAINTS_EMAIL_NOTIFICATIONS:
        return
    if event.type not in CITIZEN_MESSAGES and event.type != Event.REJECT_WORK:
        return
    complaint = (
        Complaint.objects.select_related("citizen", "assigned_field_staff")
        .filter(pk=event.complaint_id)
        .first()
    )
    if complaint is None:
        logger.debug("Complaint %s is gone, skipping %s e-mail", event.complaint_id, event.type)
        return
    if event.type == Event.REJECT_WORK:
        send_work_rejected_email(complaint)
    else:
        send_citizen_update_email(complaint, event.type)
