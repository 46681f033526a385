from django.core import mail
from django.test import override_settings

from complaints import archive
from complaints.lifecycle import submit_complaint, transition
from complaints.models import Complaint, Event
from complaints.payloads import (
    AssignToStaff,
    CompleteWork,
    RejectWork,
    StartWork,
    SubmitComplaint,
    UpdateProgress,
)
from complaints.signals import complaint_event

from .base import ComplaintTestCase


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class NotificationTests(ComplaintTestCase):
    def submit(self):
        payload = SubmitComplaint(
            title="Garbage not collected",
            description="Bins have not been emptied for a week.",
            category=Complaint.Category.WASTE_MANAGEMENT,
            address="7 North Street",
            city="Madurai",
        )
        with self.captureOnCommitCallbacks(execute=True):
            return submit_complaint(self.citizen, payload)

    def test_submission_emails_citizen(self):
        complaint = self.submit()

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertIn(complaint.reference_id, message.subject)
        self.assertEqual(message.to, ["citizen@example.com"])
        self.assertIn("submitted successfully", message.body)

    def test_event_is_delivered_after_commit(self):
        received = []

        def listener(sender, event, **kwargs):
            received.append(event)

        complaint_event.connect(listener)
        self.addCleanup(complaint_event.disconnect, listener)

        complaint = self.create_complaint()
        with self.captureOnCommitCallbacks() as callbacks:
            transition(complaint.pk, self.admin, AssignToStaff(self.staff_user.pk))
        self.assertEqual(received, [])

        for callback in callbacks:
            callback()
        self.assertEqual(len(received), 1)
        self.assertEqual(received[0].type, Event.ASSIGN_TO_STAFF)
        self.assertEqual(received[0].complaint_id, complaint.pk)
        self.assertEqual(received[0].actor_id, self.admin_user.pk)

    def test_rejected_work_emails_assignee(self):
        complaint = self.create_complaint()
        transition(complaint.pk, self.admin, AssignToStaff(self.staff_user.pk))
        transition(complaint.pk, self.staff, StartWork("Started"))
        transition(complaint.pk, self.staff, CompleteWork("Done", ["/media/proof.jpg"]))

        with self.captureOnCommitCallbacks(execute=True):
            transition(complaint.pk, self.admin, RejectWork("Bins still full"))

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["roadcrew@example.com"])
        self.assertIn("Bins still full", mail.outbox[0].body)

    def test_progress_updates_are_quiet(self):
        complaint = self.create_complaint()
        transition(complaint.pk, self.admin, AssignToStaff(self.staff_user.pk))
        transition(complaint.pk, self.staff, StartWork("Started"))

        with self.captureOnCommitCallbacks(execute=True):
            transition(complaint.pk, self.staff, UpdateProgress("Halfway there"))

        self.assertEqual(mail.outbox, [])

    @override_settings(COMPLAINTS_EMAIL_NOTIFICATIONS=False)
    def test_notifications_can_be_disabled(self):
        self.submit()
        self.assertEqual(mail.outbox, [])

    def test_hard_delete_sends_nothing(self):
        complaint = self.create_complaint()
        with self.captureOnCommitCallbacks(execute=True):
            archive.hard_delete(complaint.pk, self.admin)
        self.assertEqual(mail.outbox, [])

    def test_failing_receiver_does_not_break_transition(self):
        def broken(sender, event, **kwargs):
            raise RuntimeError("sms gateway down")

        complaint_event.connect(broken)
        self.addCleanup(complaint_event.disconnect, broken)

        complaint = self.create_complaint()
        with self.assertLogs("complaints.signals", "ERROR") as logs:
            with self.captureOnCommitCallbacks(execute=True):
                transition(complaint.pk, self.admin, AssignToStaff(self.staff_user.pk))

        self.assertIn("sms gateway down", logs.output[0])
        self.assertEqual(self.reload(complaint).status, Complaint.Status.ASSIGNED)
        self.assertEqual(len(mail.outbox), 1)
