import logging
from dataclasses import dataclass, field

from django.db.models import Count, F, Q

from .directory import default_directory
from .exceptions import NotFound, ValidationFailed
from .models import Complaint, UserProfile

logger = logging.getLogger(__name__)

Department = UserProfile.Department
Category = Complaint.Category

CATEGORY_DEPARTMENTS = {
    Category.ROAD_ISSUES: Department.PUBLIC_WORKS,
    Category.DRAINAGE: Department.PUBLIC_WORKS,
    Category.PARKS_RECREATION: Department.PUBLIC_WORKS,
    Category.ELECTRICITY: Department.ELECTRICITY,
    Category.STREET_LIGHTING: Department.ELECTRICITY,
    Category.WATER_SUPPLY: Department.WATER_SUPPLY,
    Category.WASTE_MANAGEMENT: Department.SANITATION,
}


@dataclass
class AssignmentCheck:
    staff_id: int
    workload: int
    max_workload: int | None
    department_match: bool
    warnings: list = field(default_factory=list)

    @property
    def over_capacity(self) -> bool:
        return self.max_workload is not None and self.workload >= self.max_workload


@dataclass(frozen=True)
class StaffRecommendation:
    staff_id: int
    username: str
    department: str
    workload: int
    max_workload: int
    department_match: bool


def department_for_category(category):
    return CATEGORY_DEPARTMENTS.get(category, Department.PUBLIC_WORKS)


def _workload_filter():
    return Q(status__in=list(Complaint.WORKLOAD_STATUSES), archived=False)


def workload_of(staff_id) -> int:
    """Open assignments (assigned or in progress) currently held by ``staff_id``."""
    return Complaint.objects.filter(_workload_filter(), assigned_field_staff_id=staff_id).count()


def check_assignment(complaint, staff_id, directory) -> AssignmentCheck:
    department = directory.department_of(staff_id)
    if department is None:
        raise NotFound(f"field-staff member {staff_id} does not exist", complaint_id=complaint.pk)
    if not directory.is_active_field_staff(staff_id):
        raise ValidationFailed(
            f"user {staff_id} is not an active field-staff member",
            field="staff_id",
            complaint_id=complaint.pk,
        )

    expected = department_for_category(complaint.category)
    profile = UserProfile.objects.filter(user_id=staff_id).first()
    check = AssignmentCheck(
        staff_id=staff_id,
        workload=workload_of(staff_id),
        max_workload=profile.max_workload if profile else None,
        department_match=department == expected,
    )
    if not check.department_match:
        check.warnings.append(
            f"{complaint.get_category_display()} complaints are normally handled by "
            f"the {expected} department, not {department or 'unknown'}"
        )
    if check.over_capacity:
        check.warnings.append(
            f"staff member {staff_id} already holds {check.workload} open assignments "
            f"(limit {check.max_workload})"
        )
    return check


def assign(complaint, staff_id, actor, directory, now) -> AssignmentCheck:
    """Bind ``complaint`` to a field-staff member.

    The caller owns the row lock and the save. Capacity and department are
    reported back as warnings and never block the assignment.
    """
    check = check_assignment(complaint, staff_id, directory)
    complaint.assigned_field_staff_id = staff_id
    complaint.field_staff_assigned_at = now
    complaint.field_staff_assigned_by_id = actor.id
    if check.warnings:
        logger.warning("Assignment of complaint %s to %s: %s", complaint.pk, staff_id, "; ".join(check.warnings))
    return check


def _field_staff_profiles():
    return UserProfile.objects.select_related("user").filter(
        role=UserProfile.Role.FIELD_STAFF,
        user__is_active=True,
    )


def _workloads(user_ids):
    rows = (
        Complaint.objects.filter(_workload_filter(), assigned_field_staff_id__in=user_ids)
        .values("assigned_field_staff_id")
        .annotate(total=Count("id"))
    )
    return {row["assigned_field_staff_id"]: row["total"] for row in rows}


def recommend_staff(category, limit=None):
    """Rank available field staff for a complaint category.

    Staff from the matching department come first, then the least loaded,
    then the lowest id so the order is stable.
    """
    department = department_for_category(category)
    profiles = list(_field_staff_profiles().filter(is_on_leave=False))
    workloads = _workloads([p.user_id for p in profiles])
    recommendations = [
        StaffRecommendation(
            staff_id=profile.user_id,
            username=profile.user.get_username(),
            department=profile.department,
            workload=workloads.get(profile.user_id, 0),
            max_workload=profile.max_workload,
            department_match=profile.department == department,
        )
        for profile in profiles
    ]
    recommendations.sort(key=lambda r: (not r.department_match, r.workload, r.staff_id))
    if limit is not None:
        return recommendations[:limit]
    return recommendations


def overloaded_staff():
    profiles = list(_field_staff_profiles())
    workloads = _workloads([p.user_id for p in profiles])
    overloaded = []
    for profile in profiles:
        current = workloads.get(profile.user_id, 0)
        if current > profile.max_workload:
            overloaded.append(
                {
                    "staff_id": profile.user_id,
                    "username": profile.user.get_username(),
                    "workload": current,
                    "max_workload": profile.max_workload,
                    "overload": current - profile.max_workload,
                }
            )
    overloaded.sort(key=lambda row: (-row["overload"], row["staff_id"]))
    return overloaded


def assignment_stats():
    Status = Complaint.Status
    by_status = {
        "assigned": Count("id", filter=Q(status=Status.ASSIGNED)),
        "in_progress": Count("id", filter=Q(status=Status.IN_PROGRESS)),
        "work_completed": Count("id", filter=Q(status=Status.WORK_COMPLETED)),
    }
    open_rows = (
        Complaint.objects.active()
        .filter(assigned_field_staff__isnull=False)
        .values("assigned_field_staff_id")
        .annotate(**by_status)
    )
    resolved_rows = (
        Complaint.objects.active()
        .filter(status=Status.RESOLVED, work_completed_by__isnull=False)
        .values("work_completed_by_id")
        .annotate(total=Count("id"))
    )
    stats = {}
    for row in open_rows:
        staff_id = row.pop("assigned_field_staff_id")
        stats[staff_id] = {**row, "resolved": 0}
    for row in resolved_rows:
        entry = stats.setdefault(
            row["work_completed_by_id"],
            {"assigned": 0, "in_progress": 0, "work_completed": 0, "resolved": 0},
        )
        entry["resolved"] = row["total"]
    for entry in stats.values():
        entry["workload"] = entry["assigned"] + entry["in_progress"]
    return stats


def department_workload():
    """Open and completed-but-unapproved work per department, busiest first."""
    Status = Complaint.Status
    rows = (
        Complaint.objects.active()
        .filter(assigned_field_staff__isnull=False)
        .order_by()
        .values(department=F("assigned_field_staff__profile__department"))
        .annotate(
            total=Count("id"),
            assigned=Count("id", filter=Q(status=Status.ASSIGNED)),
            in_progress=Count("id", filter=Q(status=Status.IN_PROGRESS)),
            work_completed=Count("id", filter=Q(status=Status.WORK_COMPLETED)),
            active_staff=Count("assigned_field_staff", distinct=True),
        )
    )
    workload = []
    for row in rows:
        row["department"] = row["department"] or ""
        row["avg_per_staff"] = round(row["total"] / row["active_staff"], 2)
        workload.append(row)
    workload.sort(key=lambda row: (-row["total"], row["department"]))
    return workload


@dataclass
class StaffHistory:
    staff_id: int
    current: list
    past: list
    stats: dict


HISTORY_LIMIT = 50


def staff_history(staff_id, directory=None) -> StaffHistory:
    """Complaints a field-staff member holds now or has worked on before.

    Past work covers completions and timeline notes the member left on
    complaints that have since moved on or been reassigned.
    """
    directory = directory or default_directory
    if directory.department_of(staff_id) is None:
        raise NotFound(f"field-staff member {staff_id} does not exist")
    profile = UserProfile.objects.filter(user_id=staff_id).first()
    if profile is None or not profile.is_field_staff:
        raise ValidationFailed(f"user {staff_id} is not a field-staff member", field="staff_id")

    touched = Q(assigned_field_staff_id=staff_id) | Q(work_completed_by_id=staff_id) | Q(notes__added_by_id=staff_id)
    complaints = list(
        Complaint.objects.active()
        .filter(touched)
        .distinct()
        .order_by("-last_updated", "-id")[:HISTORY_LIMIT]
    )
    current = [c for c in complaints if c.assigned_field_staff_id == staff_id]
    past = [c for c in complaints if c.assigned_field_staff_id != staff_id]

    Status = Complaint.Status
    stats = {"total": len(complaints)}
    for status in (Status.ASSIGNED, Status.IN_PROGRESS, Status.WORK_COMPLETED, Status.RESOLVED):
        stats[status.value] = sum(1 for c in complaints if c.status == status)
    hours = [
        (c.resolved_at - c.field_staff_assigned_at).total_seconds() / 3600
        for c in complaints
        if c.status == Status.RESOLVED and c.resolved_at and c.field_staff_assigned_at
    ]
    stats["avg_resolution_hours"] = round(sum(hours) / len(hours), 1) if hours else None
    return StaffHistory(staff_id=staff_id, current=current, past=past, stats=stats)
