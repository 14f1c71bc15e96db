"""Effect scoring, product ranking and usage patterns."""

from .confidence import Confidence, confidence_for_count, estimate_confidence  # noqa: F401
from .effects import EffectScores, average_effects, composite  # noqa: F401
from .engine import AnalyticsEngine, InsightsReport  # noqa: F401
from .patterns import (  # noqa: F401
    TimeOfDay,
    best_results_for,
    bucket_for_hour,
    favorite_terpene,
    most_common_time_of_day,
)
from .ranking import (  # noqa: F401
    MINIMUM_SESSIONS_FOR_ML,
    ProductRecommendation,
    generate_reason,
    get_top_products,
    is_ready,
    sessions_until_ready,
)

__all__ = [
    "AnalyticsEngine",
    "Confidence",
    "EffectScores",
    "InsightsReport",
    "MINIMUM_SESSIONS_FOR_ML",
    "ProductRecommendation",
    "TimeOfDay",
    "average_effects",
    "best_results_for",
    "bucket_for_hour",
    "composite",
    "confidence_for_count",
    "estimate_confidence",
    "favorite_terpene",
    "generate_reason",
    "get_top_products",
    "is_ready",
    "most_common_time_of_day",
    "sessions_until_ready",
]
