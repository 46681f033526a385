# Generated manually for initial project scaffold.

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone

EVENT_CHOICES = [
    ("submitted", "Submitted"),
    ("assign_to_staff", "Assigned to field staff"),
    ("reject_complaint", "Complaint rejected"),
    ("start_work", "Work started"),
    ("update_progress", "Progress update"),
    ("complete_work", "Work completed"),
    ("approve_work", "Work approved"),
    ("reject_work", "Work rejected"),
    ("add_note", "Note"),
    ("close", "Closed"),
    ("archive", "Archived"),
    ("restore", "Restored"),
    ("hard_delete", "Permanently deleted"),
]


def _user_fk(related_name, on_delete=django.db.models.deletion.SET_NULL, null=True):
    return models.ForeignKey(
        blank=null,
        null=null,
        on_delete=on_delete,
        related_name=related_name,
        to=settings.AUTH_USER_MODEL,
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "role",
                    models.CharField(
                        choices=[("citizen", "Citizen"), ("admin", "Admin"), ("field_staff", "Field Staff")],
                        default="citizen",
                        max_length=20,
                    ),
                ),
                (
                    "department",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("sanitation", "Sanitation"),
                            ("water_supply", "Water Supply"),
                            ("electricity", "Electricity"),
                            ("public_works", "Public Works"),
                        ],
                        max_length=20,
                    ),
                ),
                ("job_role", models.CharField(blank=True, max_length=50)),
                ("max_workload", models.PositiveIntegerField(default=10)),
                ("is_on_leave", models.BooleanField(default=False)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["user_id"]},
        ),
        migrations.CreateModel(
            name="Complaint",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reference_id", models.CharField(blank=True, max_length=24, null=True, unique=True)),
                ("title", models.CharField(max_length=100)),
                ("description", models.TextField(max_length=1000)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("road_issues", "Road Issues"),
                            ("electricity", "Electricity"),
                            ("water_supply", "Water Supply"),
                            ("waste_management", "Waste Management"),
                            ("street_lighting", "Street Lighting"),
                            ("drainage", "Drainage"),
                            ("parks_recreation", "Parks & Recreation"),
                        ],
                        max_length=30,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("assigned", "Assigned"),
                            ("in_progress", "In Progress"),
                            ("work_completed", "Work Completed"),
                            ("resolved", "Resolved"),
                            ("rejected", "Rejected"),
                            ("closed", "Closed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[
                            ("low", "Low"),
                            ("medium", "Medium"),
                            ("high", "High"),
                            ("urgent", "Urgent"),
                        ],
                        default="medium",
                        max_length=20,
                    ),
                ),
                ("address", models.CharField(max_length=200)),
                ("city", models.CharField(max_length=50)),
                ("pincode", models.CharField(blank=True, max_length=10)),
                ("image_refs", models.JSONField(blank=True, default=list)),
                ("is_public", models.BooleanField(default=True)),
                ("is_anonymous", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("last_updated", models.DateTimeField(default=django.utils.timezone.now)),
                ("field_staff_assigned_at", models.DateTimeField(blank=True, null=True)),
                ("work_completion_notes", models.TextField(blank=True, max_length=1000)),
                ("work_proof_image_refs", models.JSONField(blank=True, default=list)),
                ("work_completed_at", models.DateTimeField(blank=True, null=True)),
                ("work_rejected_at", models.DateTimeField(blank=True, null=True)),
                ("work_rejection_reason", models.TextField(blank=True, max_length=500)),
                ("admin_approved_at", models.DateTimeField(blank=True, null=True)),
                ("admin_approval_notes", models.TextField(blank=True, max_length=500)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("resolution_notes", models.TextField(blank=True, max_length=1000)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, max_length=500)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("closure_reason", models.TextField(blank=True, max_length=500)),
                ("archived", models.BooleanField(default=False)),
                ("archived_at", models.DateTimeField(blank=True, null=True)),
                ("archive_reason", models.TextField(blank=True, max_length=500)),
                ("upvotes", models.PositiveIntegerField(default=0)),
                ("downvotes", models.PositiveIntegerField(default=0)),
                ("view_count", models.PositiveIntegerField(default=0)),
                (
                    "citizen",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="complaints",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "assigned_field_staff",
                    _user_fk("field_assignments", on_delete=django.db.models.deletion.PROTECT),
                ),
                ("field_staff_assigned_by", _user_fk("+")),
                ("work_completed_by", _user_fk("+")),
                ("admin_approved_by", _user_fk("+")),
                ("rejected_by", _user_fk("+")),
                ("archived_by", _user_fk("+")),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.AddIndex(
            model_name="complaint",
            index=models.Index(fields=["status"], name="complaint_status_idx"),
        ),
        migrations.AddIndex(
            model_name="complaint",
            index=models.Index(fields=["assigned_field_staff", "status"], name="complaint_staff_status_idx"),
        ),
        migrations.AddIndex(
            model_name="complaint",
            index=models.Index(fields=["is_public", "archived"], name="complaint_public_idx"),
        ),
        migrations.CreateModel(
            name="ComplaintNote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event", models.CharField(choices=EVENT_CHOICES, max_length=30)),
                ("note", models.TextField(max_length=1000)),
                ("added_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "complaint",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notes",
                        to="complaints.complaint",
                    ),
                ),
                (
                    "added_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="complaint_notes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["added_at", "id"]},
        ),
        migrations.CreateModel(
            name="Vote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "direction",
                    models.CharField(
                        choices=[("upvote", "Upvote"), ("downvote", "Downvote")],
                        max_length=10,
                    ),
                ),
                ("cast_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "complaint",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="votes",
                        to="complaints.complaint",
                    ),
                ),
                (
                    "voter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="complaint_votes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.AddConstraint(
            model_name="vote",
            constraint=models.UniqueConstraint(fields=("complaint", "voter"), name="one_vote_per_voter"),
        ),
        migrations.CreateModel(
            name="AuditRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entity_type", models.CharField(default="complaint", max_length=20)),
                ("entity_id", models.BigIntegerField()),
                ("action", models.CharField(choices=EVENT_CHOICES, max_length=30)),
                ("reason", models.TextField(blank=True, max_length=500)),
                ("details", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "performed_by",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_records",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.AddIndex(
            model_name="auditrecord",
            index=models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
        ),
    ]
