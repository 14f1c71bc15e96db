"""Per-check-in composites and their per-product averages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple, Optional

from journal.schema import CheckIn

if TYPE_CHECKING:
    from db.repository import Repository

__all__ = ["EffectScores", "composite", "average_effects"]

logger = logging.getLogger(__name__)


class EffectScores(NamedTuple):
    positive: float
    negative: float

    @property
    def net(self) -> float:
        return self.positive - self.negative


def composite(check_in: CheckIn) -> EffectScores:
    return EffectScores(check_in.positive_composite, check_in.negative_composite)


def average_effects(repo: "Repository", product_id: int) -> Optional[EffectScores]:
    """
    Average positive and negative composites over every check-in of a product.

    The mean is taken over check-ins, not sessions. Returns ``None`` when the
    product has no sessions or none of its sessions has a check-in, so an
    unrated product is never mistaken for one that scored zero.
    """
    check_ins = repo.check_ins_for_product(product_id)
    if not check_ins:
        logger.debug("No check-ins for product %s", product_id)
        return None

    positive_sum = 0.0
    negative_sum = 0.0
    for check_in in check_ins:
        scores = composite(check_in)
        positive_sum += scores.positive
        negative_sum += scores.negative

    count = len(check_ins)
    return EffectScores(positive_sum / count, negative_sum / count)
