from unittest import mock

from complaints import votes
from complaints.exceptions import InvalidTransition, NotFound, ValidationFailed
from complaints.models import Complaint, Vote

from .base import ComplaintTestCase, Role

UP = Vote.Direction.UPVOTE
DOWN = Vote.Direction.DOWNVOTE


class VoteTests(ComplaintTestCase):
    def setUp(self):
        super().setUp()
        self.complaint = self.create_complaint()

    def test_first_vote_counts(self):
        tally = votes.cast(self.complaint.pk, self.citizen_user.pk, UP)
        self.assertEqual((tally.upvotes, tally.downvotes, tally.own_direction), (1, 0, UP))
        self.assertEqual(self.reload(self.complaint).upvotes, 1)

    def test_same_direction_twice_retracts(self):
        votes.cast(self.complaint.pk, self.citizen_user.pk, UP)
        tally = votes.cast(self.complaint.pk, self.citizen_user.pk, UP)

        self.assertEqual((tally.upvotes, tally.downvotes), (0, 0))
        self.assertIsNone(tally.own_direction)
        self.assertFalse(Vote.objects.exists())

    def test_opposite_direction_replaces(self):
        votes.cast(self.complaint.pk, self.citizen_user.pk, UP)
        tally = votes.cast(self.complaint.pk, self.citizen_user.pk, DOWN)

        self.assertEqual((tally.upvotes, tally.downvotes, tally.own_direction), (0, 1, DOWN))
        self.assertEqual(tally.net_score, -1)
        self.assertEqual(Vote.objects.get().direction, DOWN)

    def test_counters_track_many_voters(self):
        voters = [self.make_user(f"neighbour{i}", Role.CITIZEN) for i in range(4)]
        for voter in voters[:3]:
            votes.cast(self.complaint.pk, voter.pk, UP)
        votes.cast(self.complaint.pk, voters[3].pk, DOWN)
        votes.cast(self.complaint.pk, voters[0].pk, DOWN)

        complaint = self.reload(self.complaint)
        self.assertEqual((complaint.upvotes, complaint.downvotes), (2, 2))
        self.assertEqual(complaint.net_score, 0)
        self.assertEqual(Vote.objects.filter(direction=UP).count(), complaint.upvotes)
        self.assertEqual(Vote.objects.filter(direction=DOWN).count(), complaint.downvotes)

    def test_tally_reports_own_vote(self):
        votes.cast(self.complaint.pk, self.citizen_user.pk, DOWN)
        self.assertEqual(votes.tally(self.complaint.pk, self.citizen_user.pk).own_direction, DOWN)
        self.assertIsNone(votes.tally(self.complaint.pk, self.admin_user.pk).own_direction)
        self.assertIsNone(votes.tally(self.complaint.pk).own_direction)

    def test_votes_for(self):
        other = self.create_complaint(title="Second")
        votes.cast(self.complaint.pk, self.citizen_user.pk, UP)
        votes.cast(other.pk, self.citizen_user.pk, DOWN)

        self.assertEqual(
            votes.votes_for(self.citizen_user.pk, [self.complaint.pk, other.pk]),
            {self.complaint.pk: UP, other.pk: DOWN},
        )
        self.assertEqual(votes.votes_for(self.admin_user.pk, [self.complaint.pk]), {})

    def test_unknown_direction(self):
        with self.assertRaises(ValidationFailed) as ctx:
            votes.cast(self.complaint.pk, self.citizen_user.pk, "sideways")
        self.assertEqual(ctx.exception.field, "direction")

    def test_private_and_archived_complaints_refuse_votes(self):
        private = self.create_complaint(is_public=False)
        archived = self.create_complaint(archived=True)
        for complaint in (private, archived):
            with self.assertRaises(InvalidTransition):
                votes.cast(complaint.pk, self.citizen_user.pk, UP)
        self.assertFalse(Vote.objects.exists())

    def test_unknown_complaint(self):
        with self.assertRaises(NotFound):
            votes.cast(987654, self.citizen_user.pk, UP)
        with self.assertRaises(NotFound):
            votes.tally(987654)

    def test_up_down_down_scenario(self):
        voter = self.citizen_user.pk
        steps = [
            (UP, (1, 0, UP)),
            (DOWN, (0, 1, DOWN)),
            (DOWN, (0, 0, None)),
        ]
        for direction, expected in steps:
            tally = votes.cast(self.complaint.pk, voter, direction)
            self.assertEqual((tally.upvotes, tally.downvotes, tally.own_direction), expected)
        self.assertFalse(Vote.objects.filter(complaint=self.complaint).exists())

    def test_switching_direction_keeps_one_row(self):
        votes.cast(self.complaint.pk, self.citizen_user.pk, UP)
        votes.cast(self.complaint.pk, self.citizen_user.pk, DOWN)

        self.assertEqual(
            Vote.objects.filter(complaint=self.complaint, voter=self.citizen_user).count(), 1
        )
        complaint = self.reload(self.complaint)
        self.assertEqual((complaint.upvotes, complaint.downvotes), (0, 1))

    def test_lost_insert_race_retries_against_winning_row(self):
        # Another request already stored this voter's upvote.
        Vote.objects.create(complaint=self.complaint, voter=self.citizen_user, direction=UP)
        Complaint.objects.filter(pk=self.complaint.pk).update(upvotes=1)
        real_select = Vote.objects.select_for_update
        calls = []

        def stale_first_read():
            calls.append(1)
            if len(calls) == 1:
                return Vote.objects.none()
            return real_select()

        with mock.patch.object(Vote.objects, "select_for_update", side_effect=stale_first_read):
            tally = votes.cast(self.complaint.pk, self.citizen_user.pk, UP)

        self.assertEqual(len(calls), 2)
        self.assertEqual((tally.upvotes, tally.downvotes, tally.own_direction), (0, 0, None))
        self.assertFalse(Vote.objects.exists())

    def test_eligibility_is_read_under_the_row_lock(self):
        with mock.patch.object(
            Complaint.objects, "select_for_update", wraps=Complaint.objects.select_for_update
        ) as locked:
            votes.cast(self.complaint.pk, self.citizen_user.pk, UP)
        locked.assert_called_once_with()
