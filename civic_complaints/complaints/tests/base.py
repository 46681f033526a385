from django.contrib.auth import get_user_model
from django.test import TestCase

from complaints.models import Complaint, UserProfile
from complaints.payloads import Actor

User = get_user_model()

Role = UserProfile.Role
Department = UserProfile.Department


class ComplaintTestCase(TestCase):
    def setUp(self):
        self.citizen_user = self.make_user("citizen", Role.CITIZEN)
        self.admin_user = self.make_user("portaladmin", Role.ADMIN)
        self.staff_user = self.make_user("roadcrew", Role.FIELD_STAFF, Department.PUBLIC_WORKS)
        self.other_staff_user = self.make_user("linecrew", Role.FIELD_STAFF, Department.ELECTRICITY)

        self.citizen = Actor(self.citizen_user.pk, Role.CITIZEN)
        self.admin = Actor(self.admin_user.pk, Role.ADMIN)
        self.staff = Actor(self.staff_user.pk, Role.FIELD_STAFF)
        self.other_staff = Actor(self.other_staff_user.pk, Role.FIELD_STAFF)

    def make_user(self, username, role, department="", **profile):
        user = User.objects.create_user(
            username=username,
            email=f"{username}@example.com",
            password="StrongPass123!",
        )
        UserProfile.objects.create(user=user, role=role, department=department, **profile)
        return user

    def create_complaint(self, citizen=None, **kwargs):
        data = {
            "title": "Pothole near bus stop",
            "description": "A deep pothole has opened up next to the bus stop.",
            "category": Complaint.Category.ROAD_ISSUES,
            "priority": Complaint.Priority.MEDIUM,
            "address": "12 Market Road",
            "city": "Madurai",
            "citizen": citizen or self.citizen_user,
        }
        data.update(kwargs)
        return Complaint.objects.create(**data)

    def reload(self, complaint):
        return Complaint.objects.get(pk=complaint.pk)
