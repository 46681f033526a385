from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from complaints import lifecycle
from complaints.assignment import department_for_category
from complaints.models import Complaint, UserProfile
from complaints.payloads import (
    Actor,
    ApproveWork,
    AssignToStaff,
    CompleteWork,
    RejectComplaint,
    StartWork,
    SubmitComplaint,
)

User = get_user_model()

Role = UserProfile.Role
Department = UserProfile.Department

FIELD_STAFF = [
    ("staff_public_works", Department.PUBLIC_WORKS, "Road Inspector"),
    ("staff_electricity", Department.ELECTRICITY, "Lineman"),
    ("staff_water", Department.WATER_SUPPLY, "Plumber"),
    ("staff_sanitation", Department.SANITATION, "Sanitation Supervisor"),
]


class Command(BaseCommand):
    help = "Seed the database with sample users and complaints."

    def _user(self, username, password, role, department="", job_role="", **extra):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com", **extra},
        )
        if created:
            user.set_password(password)
            user.save()
        UserProfile.objects.update_or_create(
            user=user,
            defaults={
                "role": role,
                "department": department,
                "job_role": job_role,
                "max_workload": settings.COMPLAINTS_DEFAULT_MAX_WORKLOAD,
            },
        )
        return user

    def handle(self, *args, **options):
        admin_user = self._user("portal_admin", "AdminPass123!", Role.ADMIN, is_staff=True)
        citizen_user = self._user("citizen_user", "CitizenPass123!", Role.CITIZEN)
        staff = {
            department: self._user(username, "StaffPass123!", Role.FIELD_STAFF, department, job_role)
            for username, department, job_role in FIELD_STAFF
        }

        admin = Actor(admin_user.pk, Role.ADMIN)
        citizen = Actor(citizen_user.pk, Role.CITIZEN)

        sample_definitions = [
            {
                "payload": SubmitComplaint(
                    title="Overflowing Garbage Bins",
                    description="Municipal bins are not being cleared regularly in Zone 2.",
                    category=Complaint.Category.WASTE_MANAGEMENT,
                    priority=Complaint.Priority.HIGH,
                    address="Zone 2 - Main Street",
                    city="Chennai",
                ),
                "stage": Complaint.Status.PENDING,
            },
            {
                "payload": SubmitComplaint(
                    title="Potholes on City Road",
                    description="Large potholes causing traffic congestion and accidents.",
                    category=Complaint.Category.ROAD_ISSUES,
                    priority=Complaint.Priority.URGENT,
                    address="Ring Road Block A",
                    city="Chennai",
                ),
                "stage": Complaint.Status.IN_PROGRESS,
            },
            {
                "payload": SubmitComplaint(
                    title="Streetlights Not Working",
                    description="Streetlights remain off at night near public park.",
                    category=Complaint.Category.STREET_LIGHTING,
                    address="Public Park Road",
                    city="Chennai",
                ),
                "stage": Complaint.Status.RESOLVED,
            },
            {
                "payload": SubmitComplaint(
                    title="Duplicate water complaint",
                    description="Same leak already reported last week.",
                    category=Complaint.Category.WATER_SUPPLY,
                    priority=Complaint.Priority.LOW,
                    address="Lake View Colony",
                    city="Chennai",
                    is_public=False,
                ),
                "stage": Complaint.Status.REJECTED,
            },
        ]

        created_count = 0
        for item in sample_definitions:
            payload = item["payload"]
            if Complaint.objects.filter(citizen=citizen_user, title=payload.title).exists():
                continue
            complaint = lifecycle.submit_complaint(citizen, payload)
            created_count += 1
            self._advance(complaint, item["stage"], admin, staff)

        self.stdout.write(self.style.SUCCESS("Seed complete."))
        self.stdout.write(
            self.style.WARNING(
                "Credentials: citizen_user / CitizenPass123!, "
                "portal_admin / AdminPass123!, staff_* / StaffPass123!"
            )
        )
        self.stdout.write(self.style.SUCCESS(f"New complaints created: {created_count}"))

    def _advance(self, complaint, stage, admin, staff):
        Status = Complaint.Status
        if stage == Status.PENDING:
            return
        if stage == Status.REJECTED:
            lifecycle.transition(complaint.pk, admin, RejectComplaint("Duplicate of an earlier report."))
            return

        staff_user = staff[department_for_category(complaint.category)]
        worker = Actor(staff_user.pk, Role.FIELD_STAFF)
        lifecycle.transition(complaint.pk, admin, AssignToStaff(staff_user.pk))
        lifecycle.transition(complaint.pk, worker, StartWork("Crew dispatched to site."))
        if stage == Status.IN_PROGRESS:
            return
        lifecycle.transition(
            complaint.pk,
            worker,
            CompleteWork("Repairs completed.", ["/media/seed/after.jpg"]),
        )
        lifecycle.transition(complaint.pk, admin, ApproveWork("Verified on site."))
