from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone


class Event(models.TextChoices):
    SUBMITTED = "submitted", "Submitted"
    ASSIGN_TO_STAFF = "assign_to_staff", "Assigned to field staff"
    REJECT_COMPLAINT = "reject_complaint", "Complaint rejected"
    START_WORK = "start_work", "Work started"
    UPDATE_PROGRESS = "update_progress", "Progress update"
    COMPLETE_WORK = "complete_work", "Work completed"
    APPROVE_WORK = "approve_work", "Work approved"
    REJECT_WORK = "reject_work", "Work rejected"
    ADD_NOTE = "add_note", "Note"
    CLOSE = "close", "Closed"
    ARCHIVE = "archive", "Archived"
    RESTORE = "restore", "Restored"
    HARD_DELETE = "hard_delete", "Permanently deleted"


class UserProfile(models.Model):
    class Role(models.TextChoices):
        CITIZEN = "citizen", "Citizen"
        ADMIN = "admin", "Admin"
        FIELD_STAFF = "field_staff", "Field Staff"

    class Department(models.TextChoices):
        SANITATION = "sanitation", "Sanitation"
        WATER_SUPPLY = "water_supply", "Water Supply"
        ELECTRICITY = "electricity", "Electricity"
        PUBLIC_WORKS = "public_works", "Public Works"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CITIZEN)
    department = models.CharField(max_length=20, choices=Department.choices, blank=True)
    job_role = models.CharField(max_length=50, blank=True)
    max_workload = models.PositiveIntegerField(default=10)
    is_on_leave = models.BooleanField(default=False)

    class Meta:
        ordering = ["user_id"]

    def __str__(self):
        return f"{self.user.get_username()} ({self.get_role_display()})"

    @property
    def is_field_staff(self) -> bool:
        return self.role == self.Role.FIELD_STAFF


class ComplaintQuerySet(models.QuerySet):
    def active(self):
        return self.filter(archived=False)

    def archived_only(self):
        return self.filter(archived=True)

    def public(self):
        return self.filter(is_public=True, archived=False)


class Complaint(models.Model):
    class Category(models.TextChoices):
        ROAD_ISSUES = "road_issues", "Road Issues"
        ELECTRICITY = "electricity", "Electricity"
        WATER_SUPPLY = "water_supply", "Water Supply"
        WASTE_MANAGEMENT = "waste_management", "Waste Management"
        STREET_LIGHTING = "street_lighting", "Street Lighting"
        DRAINAGE = "drainage", "Drainage"
        PARKS_RECREATION = "parks_recreation", "Parks & Recreation"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        ASSIGNED = "assigned", "Assigned"
        IN_PROGRESS = "in_progress", "In Progress"
        WORK_COMPLETED = "work_completed", "Work Completed"
        RESOLVED = "resolved", "Resolved"
        REJECTED = "rejected", "Rejected"
        CLOSED = "closed", "Closed"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"
        URGENT = "urgent", "Urgent"

    ASSIGNED_STATUSES = frozenset({Status.ASSIGNED, Status.IN_PROGRESS, Status.WORK_COMPLETED})
    TERMINAL_STATUSES = frozenset({Status.RESOLVED, Status.REJECTED, Status.CLOSED})
    WORKLOAD_STATUSES = frozenset({Status.ASSIGNED, Status.IN_PROGRESS})

    reference_id = models.CharField(max_length=24, unique=True, blank=True, null=True)
    title = models.CharField(max_length=100)
    description = models.TextField(max_length=1000)
    category = models.CharField(max_length=30, choices=Category.choices)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    priority = models.CharField(
        max_length=20,
        choices=Priority.choices,
        default=Priority.MEDIUM,
    )
    address = models.CharField(max_length=200)
    city = models.CharField(max_length=50)
    pincode = models.CharField(max_length=10, blank=True)
    image_refs = models.JSONField(default=list, blank=True)
    is_public = models.BooleanField(default=True)
    is_anonymous = models.BooleanField(default=False)

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    last_updated = models.DateTimeField(default=timezone.now)

    citizen = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="complaints",
    )
    assigned_field_staff = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="field_assignments",
        null=True,
        blank=True,
    )
    field_staff_assigned_at = models.DateTimeField(null=True, blank=True)
    field_staff_assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )

    work_completion_notes = models.TextField(max_length=1000, blank=True)
    work_proof_image_refs = models.JSONField(default=list, blank=True)
    work_completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )
    work_completed_at = models.DateTimeField(null=True, blank=True)
    work_rejected_at = models.DateTimeField(null=True, blank=True)
    work_rejection_reason = models.TextField(max_length=500, blank=True)

    admin_approved_at = models.DateTimeField(null=True, blank=True)
    admin_approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )
    admin_approval_notes = models.TextField(max_length=500, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolution_notes = models.TextField(max_length=1000, blank=True)

    rejected_at = models.DateTimeField(null=True, blank=True)
    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )
    rejection_reason = models.TextField(max_length=500, blank=True)

    closed_at = models.DateTimeField(null=True, blank=True)
    closure_reason = models.TextField(max_length=500, blank=True)

    archived = models.BooleanField(default=False)
    archived_at = models.DateTimeField(null=True, blank=True)
    archived_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )
    archive_reason = models.TextField(max_length=500, blank=True)

    upvotes = models.PositiveIntegerField(default=0)
    downvotes = models.PositiveIntegerField(default=0)
    view_count = models.PositiveIntegerField(default=0)

    objects = ComplaintQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status"], name="complaint_status_idx"),
            models.Index(fields=["assigned_field_staff", "status"], name="complaint_staff_status_idx"),
            models.Index(fields=["is_public", "archived"], name="complaint_public_idx"),
        ]

    def __str__(self):
        return self.reference_id or f"Complaint #{self.pk}"

    def generate_reference_id(self) -> str:
        complaint_year = self.created_at.year if self.created_at else self.pk
        return f"CMP-{complaint_year}-{self.pk:06d}"

    @property
    def net_score(self) -> int:
        return self.upvotes - self.downvotes

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def display_name(self) -> str:
        if self.is_anonymous:
            return "Anonymous"
        return self.citizen.get_full_name() or self.citizen.get_username()

    def touch(self, now=None):
        """Advance ``last_updated``; it never moves backwards, and never stands still."""
        now = now or timezone.now()
        if self.last_updated and now <= self.last_updated:
            now = self.last_updated + timedelta(microseconds=1)
        self.last_updated = now
        return now

    def save(self, *args, **kwargs):
        creating = self._state.adding
        super().save(*args, **kwargs)
        if creating and not self.reference_id:
            reference = self.generate_reference_id()
            Complaint.objects.filter(pk=self.pk).update(reference_id=reference)
            self.reference_id = reference


class ComplaintNote(models.Model):
    """One entry of a complaint's append-only timeline."""

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="notes",
    )
    event = models.CharField(max_length=30, choices=Event.choices)
    note = models.TextField(max_length=1000)
    added_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="complaint_notes",
    )
    added_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["added_at", "id"]

    def __str__(self):
        return f"{self.complaint_id} {self.event} by {self.added_by_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Complaint notes are append-only and cannot be edited.")
        super().save(*args, **kwargs)


class Vote(models.Model):
    class Direction(models.TextChoices):
        UPVOTE = "upvote", "Upvote"
        DOWNVOTE = "downvote", "Downvote"

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="votes",
    )
    voter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="complaint_votes",
    )
    direction = models.CharField(max_length=10, choices=Direction.choices)
    cast_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["complaint", "voter"], name="one_vote_per_voter"),
        ]

    def __str__(self):
        return f"{self.voter_id} {self.direction} {self.complaint_id}"


class AuditRecord(models.Model):
    entity_type = models.CharField(max_length=20, default="complaint")
    entity_id = models.BigIntegerField()
    action = models.CharField(max_length=30, choices=Event.choices)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="audit_records",
        null=True,
    )
    reason = models.TextField(max_length=500, blank=True)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}#{self.entity_id}"
