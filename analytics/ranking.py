"""Heuristic product ranking and the session-count readiness gate."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from analytics.confidence import Confidence, estimate_confidence
from analytics.effects import average_effects
from journal.schema import Product

if TYPE_CHECKING:
    from db.repository import Repository

__all__ = [
    "MINIMUM_SESSIONS_FOR_ML",
    "ProductRecommendation",
    "generate_reason",
    "get_top_products",
    "is_ready",
    "remaining_sessions",
    "sessions_until_ready",
]

logger = logging.getLogger(__name__)

MINIMUM_SESSIONS_FOR_ML = 15


class ProductRecommendation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product: Product
    score: float
    positive: float
    negative: float
    confidence: Confidence
    reason: str


def remaining_sessions(total_sessions: int) -> int:
    return max(0, MINIMUM_SESSIONS_FOR_ML - total_sessions)


def is_ready(repo: "Repository") -> bool:
    """True once enough sessions exist for recommendations to mean anything."""
    return repo.count_sessions() >= MINIMUM_SESSIONS_FOR_ML


def sessions_until_ready(repo: "Repository") -> int:
    return remaining_sessions(repo.count_sessions())


def generate_reason(product: Product) -> str:
    terpenes = product.dominant_terpenes[:2]
    if terpenes:
        return f"Based on your positive responses to {' and '.join(terpenes)}"
    if product.thc_percent is not None:
        return f"Based on {product.thc_percent:.1f}% THC matching your preferences"
    return "Based on your past experiences with similar products"


def get_top_products(repo: "Repository", limit: int = 3) -> List[ProductRecommendation]:
    """
    Rank products by average positive minus average negative composite.

    Products without any check-in are skipped. The score is not clamped, so a
    product that mostly produced negative effects sorts last. Callers are
    expected to check :func:`is_ready` first.
    """
    if limit < 0:
        raise ValueError("limit must be >= 0")
    if limit == 0:
        return []

    recommendations: List[ProductRecommendation] = []
    for product in repo.list_products():
        effects = average_effects(repo, product.id)
        if effects is None:
            continue
        recommendations.append(
            ProductRecommendation(
                product=product,
                score=effects.net,
                positive=effects.positive,
                negative=effects.negative,
                confidence=estimate_confidence(repo, product.id),
                reason=generate_reason(product),
            )
        )

    recommendations.sort(key=lambda r: r.score, reverse=True)
    logger.debug("Scored %d products, returning top %d", len(recommendations), limit)
    return recommendations[:limit]
