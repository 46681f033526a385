"""
Public feed ranking.

``rank`` orders an already evaluated collection of complaints; it never
queries or locks anything. Every mode falls back to ``created_at`` (newest
first unless noted) and finally to the primary key, so an unchanged input
always produces the same order and pagination stays stable.

Hot score::

    (upvotes - downvotes) / (age_in_hours + 2) ** gravity

with ``gravity`` taken from ``settings.COMPLAINTS_HOT_GRAVITY`` (1.8 by
default).
"""

from django.conf import settings
from django.db import models
from django.utils import timezone


class RankMode(models.TextChoices):
    NEW = "new", "Newest"
    OLD = "old", "Oldest"
    TOP = "top", "Top"
    RISING = "rising", "Most viewed"
    HOT = "hot", "Hot"


DEFAULT_GRAVITY = 1.8


def net_score(complaint) -> int:
    return complaint.upvotes - complaint.downvotes


def age_in_hours(complaint, now) -> float:
    return max((now - complaint.created_at).total_seconds(), 0.0) / 3600.0


def hot_score(complaint, now=None, gravity=None) -> float:
    now = now or timezone.now()
    if gravity is None:
        gravity = getattr(settings, "COMPLAINTS_HOT_GRAVITY", DEFAULT_GRAVITY)
    return net_score(complaint) / (age_in_hours(complaint, now) + 2) ** gravity


def _newest_first(complaint):
    return (-complaint.created_at.timestamp(), -complaint.pk)


def rank(complaints, mode=RankMode.NEW, *, now=None, gravity=None):
    if mode not in RankMode.values:
        raise ValueError(f"Unknown ranking mode: {mode}")
    items = list(complaints)

    if mode == RankMode.OLD:
        return sorted(items, key=lambda c: (c.created_at, c.pk))
    if mode == RankMode.TOP:
        return sorted(items, key=lambda c: (-net_score(c),) + _newest_first(c))
    if mode == RankMode.RISING:
        return sorted(items, key=lambda c: (-c.view_count,) + _newest_first(c))
    if mode == RankMode.HOT:
        now = now or timezone.now()
        return sorted(items, key=lambda c: (-hot_score(c, now, gravity),) + _newest_first(c))
    return sorted(items, key=_newest_first)
