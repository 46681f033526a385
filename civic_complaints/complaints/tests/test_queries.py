from datetime import timedelta

from django.test import override_settings
from django.utils import timezone

from complaints import queries, votes
from complaints.exceptions import InvalidTransition, NotFound
from complaints.lifecycle import transition
from complaints.models import Complaint, Event, Vote
from complaints.payloads import AddNote, AssignToStaff
from complaints.ranking import RankMode

from .base import ComplaintTestCase

Status = Complaint.Status
Category = Complaint.Category


class ComplaintFilterTests(ComplaintTestCase):
    def setUp(self):
        super().setUp()
        self.pothole = self.create_complaint(
            title="Pothole on Ring Road",
            priority=Complaint.Priority.HIGH,
        )
        self.light = self.create_complaint(
            title="Streetlight flickering",
            description="Light near the school keeps switching off.",
            category=Category.STREET_LIGHTING,
            address="Lake Road",
            status=Status.ASSIGNED,
            assigned_field_staff=self.other_staff_user,
            created_at=timezone.now() - timedelta(days=10),
        )
        self.drain = self.create_complaint(
            title="Blocked drain",
            description="Storm water drain blocked with plastic.",
            category=Category.DRAINAGE,
            address="School Lane",
            status=Status.RESOLVED,
        )

    def test_free_text_search_covers_title_description_and_address(self):
        self.assertEqual(list(queries.list_complaints({"q": "ring road"})), [self.pothole])
        self.assertEqual(set(queries.list_complaints({"q": "school"})), {self.light, self.drain})

    def test_field_filters(self):
        self.assertEqual(list(queries.list_complaints({"category": Category.DRAINAGE})), [self.drain])
        self.assertEqual(list(queries.list_complaints({"status": Status.ASSIGNED})), [self.light])
        self.assertEqual(list(queries.list_complaints({"priority": Complaint.Priority.HIGH})), [self.pothole])
        self.assertEqual(
            list(queries.list_complaints({"assigned_field_staff": self.other_staff_user.pk})),
            [self.light],
        )

    def test_unparseable_staff_filter_is_ignored(self):
        self.assertEqual(len(queries.list_complaints({"assigned_field_staff": "abc"})), 3)

    def test_missing_values_fall_back_to_defaults(self):
        self.create_complaint(title="Archived", archived=True)
        params = {
            "q": None,
            "category": None,
            "status": None,
            "assigned_field_staff": None,
            "start_date": None,
            "archived": None,
        }
        self.assertEqual(set(queries.list_complaints(params)), {self.pothole, self.light, self.drain})

    def test_date_range(self):
        today = timezone.now().date().isoformat()
        self.assertEqual(set(queries.list_complaints({"start_date": today})), {self.pothole, self.drain})
        old = (timezone.now() - timedelta(days=5)).date().isoformat()
        self.assertEqual(list(queries.list_complaints({"end_date": old})), [self.light])
        self.assertEqual(len(queries.list_complaints({"start_date": "not-a-date"})), 3)

    def test_newest_first(self):
        self.assertEqual(queries.list_complaints()[0], self.drain)

    def test_status_counts_skip_archived(self):
        self.create_complaint(archived=True)
        counts = queries.status_counts()
        self.assertEqual(counts[Status.PENDING], 1)
        self.assertEqual(counts[Status.ASSIGNED], 1)
        self.assertEqual(counts[Status.RESOLVED], 1)
        self.assertEqual(counts[Status.CLOSED], 0)
        self.assertEqual(counts["total"], 3)


class PublicFeedTests(ComplaintTestCase):
    def setUp(self):
        super().setUp()
        now = timezone.now()
        self.first = self.create_complaint(title="First", created_at=now - timedelta(hours=3), upvotes=1)
        self.second = self.create_complaint(title="Second", created_at=now - timedelta(hours=2), upvotes=7)
        self.third = self.create_complaint(title="Third", created_at=now - timedelta(hours=1), upvotes=3)
        self.create_complaint(title="Private", is_public=False, upvotes=50)
        self.create_complaint(title="Archived", archived=True, upvotes=50)

    @override_settings(COMPLAINTS_FEED_PAGE_SIZE=2)
    def test_feed_pages_public_complaints(self):
        page = queries.public_feed(mode=RankMode.TOP)
        self.assertEqual(page.complaints, [self.second, self.third])
        self.assertEqual((page.number, page.num_pages, page.total), (1, 2, 3))
        self.assertTrue(page.has_next)

        page = queries.public_feed(mode=RankMode.TOP, page=2)
        self.assertEqual(page.complaints, [self.first])
        self.assertFalse(page.has_next)

    def test_feed_applies_filters_and_own_votes(self):
        votes.cast(self.third.pk, self.citizen_user.pk, Vote.Direction.UPVOTE)
        page = queries.public_feed({"q": "third", "archived": "true"}, voter_id=self.citizen_user.pk)
        self.assertEqual(page.complaints, [self.third])
        self.assertEqual(page.own_votes, {self.third.pk: Vote.Direction.UPVOTE})

    def test_default_mode_is_newest(self):
        page = queries.public_feed()
        self.assertEqual(page.complaints, [self.third, self.second, self.first])

    def test_record_view(self):
        self.assertEqual(queries.record_view(self.first.pk), 1)
        self.assertEqual(queries.record_view(self.first.pk), 2)
        self.assertEqual(self.reload(self.first).view_count, 2)

    def test_record_view_outside_feed(self):
        private = Complaint.objects.get(title="Private")
        with self.assertRaises(InvalidTransition):
            queries.record_view(private.pk)
        with self.assertRaises(NotFound):
            queries.record_view(987654)

    def test_feed_statistics(self):
        stats = queries.feed_statistics()
        self.assertEqual(stats["total_complaints"], 3)
        self.assertEqual(stats["total_upvotes"], 11)
        self.assertEqual(stats["by_category"], {Category.ROAD_ISSUES: 3})
        self.assertEqual(stats["top_categories"], [{"category": Category.ROAD_ISSUES, "count": 3}])


class TrendingTests(ComplaintTestCase):
    def test_recent_public_complaints_by_votes_then_views(self):
        now = timezone.now()
        quiet = self.create_complaint(title="Quiet", created_at=now - timedelta(days=1), upvotes=2)
        watched = self.create_complaint(
            title="Watched", created_at=now - timedelta(days=2), upvotes=2, view_count=40
        )
        popular = self.create_complaint(title="Popular", created_at=now - timedelta(days=6), upvotes=9)
        self.create_complaint(title="Last month", created_at=now - timedelta(days=8), upvotes=99)
        self.create_complaint(title="Private", is_public=False, upvotes=99)
        self.create_complaint(title="Archived", archived=True, upvotes=99)

        self.assertEqual(queries.trending(now=now), [popular, watched, quiet])
        self.assertEqual(queries.trending(limit=1, now=now), [popular])


class TimelineTests(ComplaintTestCase):
    def test_timeline_is_chronological(self):
        complaint = self.create_complaint()
        transition(complaint.pk, self.admin, AddNote("Checking with ward office"))
        transition(complaint.pk, self.admin, AssignToStaff(self.staff_user.pk))

        entries = list(queries.timeline(complaint.pk))

        self.assertEqual([e.event for e in entries], [Event.ADD_NOTE, Event.ASSIGN_TO_STAFF])
        self.assertEqual(entries[0].added_by, self.admin_user)
        self.assertLess(entries[0].added_at, entries[1].added_at)
