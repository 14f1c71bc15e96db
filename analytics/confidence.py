from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from db.repository import Repository

__all__ = ["Confidence", "confidence_for_count", "estimate_confidence"]

HIGH_CONFIDENCE_SESSIONS = 5
MEDIUM_CONFIDENCE_SESSIONS = 2


class Confidence(str, Enum):
    """How far a product's recommendation can be trusted."""

    high = "High"
    medium = "Medium"
    low = "Low"

    @property
    def rank(self) -> int:
        return {"Low": 0, "Medium": 1, "High": 2}[self.value]


def confidence_for_count(session_count: int) -> Confidence:
    if session_count >= HIGH_CONFIDENCE_SESSIONS:
        return Confidence.high
    if session_count >= MEDIUM_CONFIDENCE_SESSIONS:
        return Confidence.medium
    return Confidence.low


def estimate_confidence(repo: "Repository", product_id: int) -> Confidence:
    """Tier from the number of sessions logged for ``product_id``."""
    return confidence_for_count(repo.count_sessions(product_id=product_id))
