"""Facade tying the analytics functions to one injected repository."""

from __future__ import annotations

import logging
import os
from datetime import tzinfo
from typing import TYPE_CHECKING, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from analytics import confidence, effects, patterns, ranking
from journal.errors import ConfigurationError

if TYPE_CHECKING:
    from db.repository import Repository

__all__ = ["AnalyticsEngine", "InsightsReport", "resolve_tz"]

logger = logging.getLogger(__name__)


class InsightsReport(BaseModel):
    """Everything the insights screen shows, in one payload."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_sessions: int
    ready: bool
    sessions_until_ready: int
    minimum_sessions: int = ranking.MINIMUM_SESSIONS_FOR_ML
    recommendations: List[ranking.ProductRecommendation] = []
    most_common_time_of_day: Optional[str] = None
    favorite_terpene: Optional[str] = None
    best_results_for: Optional[str] = None


def resolve_tz(tz: str | tzinfo | None) -> Optional[tzinfo]:
    """
    Zone for time-of-day bucketing: ``tz``, else ``VAPELOG_TZ``, else host local (``None``).

    Raises:
        ConfigurationError: the name is not a known IANA zone.
    """
    if isinstance(tz, tzinfo):
        return tz
    name = tz or os.getenv("VAPELOG_TZ")
    if not name:
        return None  # host local time
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise ConfigurationError(f"Unknown time zone {name!r}") from exc


class AnalyticsEngine:
    """
    Scoring, ranking and usage patterns over a single repository.

    Holds no state besides the repository and the time zone used for
    time-of-day bucketing; every call reads the store afresh.
    """

    def __init__(self, repo: "Repository", tz: str | tzinfo | None = None) -> None:
        self.repo = repo
        self.tz = resolve_tz(tz)

    # readiness
    def total_sessions(self) -> int:
        return self.repo.count_sessions()

    def is_ready(self) -> bool:
        return ranking.is_ready(self.repo)

    def sessions_until_ready(self) -> int:
        return ranking.sessions_until_ready(self.repo)

    # scoring
    def average_effects(self, product_id: int) -> Optional[effects.EffectScores]:
        return effects.average_effects(self.repo, product_id)

    def estimate_confidence(self, product_id: int) -> confidence.Confidence:
        return confidence.estimate_confidence(self.repo, product_id)

    def get_top_products(self, limit: int = 3) -> List[ranking.ProductRecommendation]:
        return ranking.get_top_products(self.repo, limit=limit)

    # patterns
    def most_common_time_of_day(self) -> Optional[patterns.TimeOfDay]:
        return patterns.most_common_time_of_day(self.repo, self.tz)

    def favorite_terpene(self) -> Optional[str]:
        return patterns.favorite_terpene(self.repo)

    def best_results_for(self) -> str:
        return patterns.best_results_for()

    def insights(self, limit: int = 3) -> InsightsReport:
        """
        Build the insights payload.

        Recommendations and usage patterns are only computed once the
        readiness gate is met; below it the report carries the remaining
        session count instead.
        """
        total = self.total_sessions()
        ready = total >= ranking.MINIMUM_SESSIONS_FOR_ML
        report = InsightsReport(
            total_sessions=total,
            ready=ready,
            sessions_until_ready=ranking.remaining_sessions(total),
        )
        if not ready:
            logger.debug("Insights gated: %d of %d sessions", total, ranking.MINIMUM_SESSIONS_FOR_ML)
            return report

        time_of_day = self.most_common_time_of_day()
        report.recommendations = self.get_top_products(limit)
        report.most_common_time_of_day = time_of_day.label if time_of_day else None
        report.favorite_terpene = self.favorite_terpene()
        report.best_results_for = self.best_results_for()
        return report
