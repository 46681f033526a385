import logging
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from .exceptions import InvalidTransition, NotFound, ValidationFailed
from .models import Complaint, Vote

logger = logging.getLogger(__name__)

Direction = Vote.Direction

COUNTER_FIELDS = {
    Direction.UPVOTE: "upvotes",
    Direction.DOWNVOTE: "downvotes",
}


@dataclass(frozen=True)
class VoteTally:
    upvotes: int
    downvotes: int
    own_direction: str | None = None

    @property
    def net_score(self) -> int:
        return self.upvotes - self.downvotes


def _votable(complaint_id):
    row = (
        Complaint.objects.select_for_update()
        .filter(pk=complaint_id)
        .values("is_public", "archived")
        .first()
    )
    if row is None:
        raise NotFound(f"complaint {complaint_id} does not exist", complaint_id=complaint_id)
    if not row["is_public"] or row["archived"]:
        raise InvalidTransition("this complaint is not open for public voting", complaint_id=complaint_id)


def _apply(complaint_id, voter_id, direction):
    _votable(complaint_id)
    existing = Vote.objects.select_for_update().filter(complaint_id=complaint_id, voter_id=voter_id).first()
    counter = COUNTER_FIELDS[direction]

    if existing is None:
        Vote.objects.create(complaint_id=complaint_id, voter_id=voter_id, direction=direction)
        changes, own = {counter: 1}, direction
    elif existing.direction == direction:
        existing.delete()
        changes, own = {counter: -1}, None
    else:
        changes = {COUNTER_FIELDS[existing.direction]: -1, counter: 1}
        existing.direction = direction
        existing.cast_at = timezone.now()
        existing.save(update_fields=["direction", "cast_at"])
        own = direction

    Complaint.objects.filter(pk=complaint_id).update(
        **{name: F(name) + delta for name, delta in changes.items()}
    )
    counts = Complaint.objects.filter(pk=complaint_id).values("upvotes", "downvotes").get()
    return VoteTally(counts["upvotes"], counts["downvotes"], own)


def cast(complaint_id, voter_id, direction) -> VoteTally:
    """Record ``voter_id``'s vote on a public complaint.

    A first vote is inserted, repeating the same direction retracts it and the
    opposite direction replaces it. Both counters move in one transaction.
    """
    if direction not in Direction.values:
        raise ValidationFailed(
            f"unknown vote direction '{direction}'; use 'upvote' or 'downvote'",
            field="direction",
            complaint_id=complaint_id,
        )

    # Two first votes racing on the unique constraint: the loser retries and
    # sees the winner's row.
    for attempt in range(2):
        try:
            with transaction.atomic():
                tally = _apply(complaint_id, voter_id, direction)
        except IntegrityError:
            if attempt:
                raise
            logger.info("Vote race on complaint %s for voter %s, retrying", complaint_id, voter_id)
            continue
        logger.debug("Voter %s cast %s on complaint %s -> %s", voter_id, direction, complaint_id, tally)
        return tally


def tally(complaint_id, voter_id=None) -> VoteTally:
    counts = Complaint.objects.filter(pk=complaint_id).values("upvotes", "downvotes").first()
    if counts is None:
        raise NotFound(f"complaint {complaint_id} does not exist", complaint_id=complaint_id)
    own = None
    if voter_id is not None:
        own = (
            Vote.objects.filter(complaint_id=complaint_id, voter_id=voter_id)
            .values_list("direction", flat=True)
            .first()
        )
    return VoteTally(counts["upvotes"], counts["downvotes"], own)


def votes_for(voter_id, complaint_ids) -> dict:
    rows = Vote.objects.filter(voter_id=voter_id, complaint_id__in=list(complaint_ids))
    return dict(rows.values_list("complaint_id", "direction"))
