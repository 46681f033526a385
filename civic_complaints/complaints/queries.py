from dataclasses import dataclass, field
from datetime import datetime, timedelta

from django.conf import settings
from django.core.paginator import Paginator
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from .exceptions import InvalidTransition, NotFound
from .models import Complaint, ComplaintNote
from .ranking import RankMode, rank
from .votes import votes_for


def _param(params, key, default=""):
    return str(params.get(key) or default).strip()


def apply_complaint_filters(queryset, params):
    query = _param(params, "q")
    category = _param(params, "category")
    status = _param(params, "status")
    priority = _param(params, "priority")
    staff = _param(params, "assigned_field_staff")
    archived = _param(params, "archived", "false").lower()
    start_date = _param(params, "start_date")
    end_date = _param(params, "end_date")

    if query:
        queryset = queryset.filter(
            Q(title__icontains=query)
            | Q(description__icontains=query)
            | Q(address__icontains=query)
        )
    if category:
        queryset = queryset.filter(category=category)
    if status:
        queryset = queryset.filter(status=status)
    if priority:
        queryset = queryset.filter(priority=priority)
    if staff:
        try:
            queryset = queryset.filter(assigned_field_staff_id=int(staff))
        except ValueError:
            pass

    if archived in {"true", "1", "yes"}:
        queryset = queryset.filter(archived=True)
    elif archived != "all":
        queryset = queryset.filter(archived=False)

    if start_date:
        try:
            start_dt = datetime.strptime(start_date, "%Y-%m-%d").date()
            queryset = queryset.filter(created_at__date__gte=start_dt)
        except ValueError:
            pass
    if end_date:
        try:
            end_dt = datetime.strptime(end_date, "%Y-%m-%d").date()
            queryset = queryset.filter(created_at__date__lte=end_dt)
        except ValueError:
            pass
    return queryset


def list_complaints(params=None):
    queryset = Complaint.objects.select_related("citizen", "assigned_field_staff")
    return apply_complaint_filters(queryset, params or {}).order_by("-created_at", "-id")


def public_complaints():
    return Complaint.objects.public().select_related("citizen")


@dataclass
class FeedPage:
    mode: str
    number: int
    num_pages: int
    total: int
    complaints: list
    own_votes: dict = field(default_factory=dict)

    @property
    def has_next(self) -> bool:
        return self.number < self.num_pages


def public_feed(params=None, mode=RankMode.NEW, page=1, page_size=None, voter_id=None, now=None) -> FeedPage:
    """Rank one snapshot of the public, non-archived complaints and return a page of it."""
    params = dict(params or {})
    params["archived"] = "false"
    page_size = page_size or settings.COMPLAINTS_FEED_PAGE_SIZE

    snapshot = list(apply_complaint_filters(public_complaints(), params))
    ordered = rank(snapshot, mode, now=now)
    paginator = Paginator(ordered, page_size)
    current = paginator.get_page(page)
    complaints = list(current.object_list)

    own_votes = {}
    if voter_id is not None:
        own_votes = votes_for(voter_id, [c.pk for c in complaints])
    return FeedPage(
        mode=mode,
        number=current.number,
        num_pages=paginator.num_pages,
        total=paginator.count,
        complaints=complaints,
        own_votes=own_votes,
    )


TRENDING_WINDOW = timedelta(days=7)


def trending(limit=10, now=None):
    """Most upvoted public complaints of the past week, views breaking ties."""
    now = now or timezone.now()
    queryset = public_complaints().filter(created_at__gte=now - TRENDING_WINDOW)
    return list(queryset.order_by("-upvotes", "-view_count", "-created_at", "-id")[:limit])


def record_view(complaint_id) -> int:
    updated = Complaint.objects.public().filter(pk=complaint_id).update(view_count=F("view_count") + 1)
    if not updated:
        if not Complaint.objects.filter(pk=complaint_id).exists():
            raise NotFound(f"complaint {complaint_id} does not exist", complaint_id=complaint_id)
        raise InvalidTransition("this complaint is not available in the public feed", complaint_id=complaint_id)
    return Complaint.objects.values_list("view_count", flat=True).get(pk=complaint_id)


def status_counts(queryset=None) -> dict:
    queryset = Complaint.objects.active() if queryset is None else queryset
    counts = {status: 0 for status in Complaint.Status.values}
    for row in queryset.order_by().values("status").annotate(total=Count("id")):
        counts[row["status"]] = row["total"]
    counts["total"] = sum(counts.values())
    return counts


def _group_counts(queryset, field_name):
    rows = queryset.order_by().values(field_name).annotate(total=Count("id"))
    return {row[field_name]: row["total"] for row in rows}


def feed_statistics() -> dict:
    queryset = Complaint.objects.public()
    totals = queryset.aggregate(
        complaints=Count("id"),
        upvotes=Sum("upvotes"),
        downvotes=Sum("downvotes"),
        views=Sum("view_count"),
    )
    by_category = _group_counts(queryset, "category")
    top_categories = sorted(by_category.items(), key=lambda item: (-item[1], item[0]))[:5]
    return {
        "total_complaints": totals["complaints"] or 0,
        "total_upvotes": totals["upvotes"] or 0,
        "total_downvotes": totals["downvotes"] or 0,
        "total_views": totals["views"] or 0,
        "by_category": by_category,
        "by_status": _group_counts(queryset, "status"),
        "by_priority": _group_counts(queryset, "priority"),
        "top_categories": [{"category": c, "count": n} for c, n in top_categories],
    }


def timeline(complaint_id):
    return ComplaintNote.objects.filter(complaint_id=complaint_id).select_related("added_by")
