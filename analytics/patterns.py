"""Descriptive usage statistics across the whole journal."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, tzinfo
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional

from analytics.effects import average_effects
from journal.terpenes import TERPENES

if TYPE_CHECKING:
    from db.repository import Repository

__all__ = [
    "TimeOfDay",
    "bucket_for_hour",
    "most_common_time_of_day",
    "favorite_terpene",
    "best_results_for",
    "BEST_RESULTS_PLACEHOLDER",
]

BEST_RESULTS_PLACEHOLDER = "Relaxation & Sleep"


class TimeOfDay(str, Enum):
    # enumeration order is the tie-break order
    late_night = "Late Night"
    morning = "Morning"
    afternoon = "Afternoon"
    evening = "Evening"
    night = "Night"

    @property
    def label(self) -> str:
        return {
            "Late Night": "Late Night (12-6 AM)",
            "Morning": "Morning (6 AM-12 PM)",
            "Afternoon": "Afternoon (12-5 PM)",
            "Evening": "Evening (5-9 PM)",
            "Night": "Night (9 PM-12 AM)",
        }[self.value]


def bucket_for_hour(hour: int) -> TimeOfDay:
    if not 0 <= hour < 24:
        raise ValueError(f"hour out of range: {hour}")
    if hour < 6:
        return TimeOfDay.late_night
    if hour < 12:
        return TimeOfDay.morning
    if hour < 17:
        return TimeOfDay.afternoon
    if hour < 21:
        return TimeOfDay.evening
    return TimeOfDay.night


def _local_hour(dt: datetime, tz: Optional[tzinfo]) -> int:
    return dt.astimezone(tz).hour


def most_common_time_of_day(repo: "Repository", tz: Optional[tzinfo] = None) -> Optional[TimeOfDay]:
    """
    Bucket each session by its local hour and return the busiest bucket.

    ``tz`` defaults to the host's local zone. Ties go to the bucket that comes
    first in :class:`TimeOfDay`. Returns ``None`` when no sessions exist.
    """
    sessions = repo.list_sessions()
    if not sessions:
        return None

    counts = Counter(bucket_for_hour(_local_hour(s.date_time, tz)) for s in sessions)
    return max(TimeOfDay, key=lambda bucket: counts.get(bucket, 0))


def favorite_terpene(repo: "Repository") -> Optional[str]:
    """
    Terpene with the largest concentration total, weighted per product.

    Each product's weight is its average positive composite, or 1.0 if it has
    no check-ins yet. Ties go to the earlier terpene in canonical order.
    Returns ``None`` when no product has any terpene value.
    """
    totals: Dict[str, float] = {}
    for product in repo.list_products():
        profile = product.terpene_profile()
        if not profile:
            continue
        effects = average_effects(repo, product.id)
        weight = effects.positive if effects is not None else 1.0
        for name, concentration in profile.items():
            totals[name] = totals.get(name, 0.0) + concentration * weight

    if not totals:
        return None
    ordered = [t.name for t in TERPENES if t.name in totals]
    return max(ordered, key=lambda name: totals[name])


def best_results_for() -> str:
    # fixed until a real effect model exists
    return BEST_RESULTS_PLACEHOLDER
