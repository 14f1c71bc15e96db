"""Static reference content for the eight tracked terpenes."""

from __future__ import annotations

from typing import NamedTuple, Optional, Tuple

__all__ = ["Terpene", "TERPENES", "TERPENE_NAMES", "find_terpene"]


class Terpene(NamedTuple):
    name: str
    aroma: str
    description: str
    effects: Tuple[str, ...]

    @property
    def field(self) -> str:
        """Attribute name of this terpene on :class:`journal.schema.Product`."""
        return self.name.lower()


# Canonical order; ranking and pattern tie-breaks depend on it.
TERPENES: Tuple[Terpene, ...] = (
    Terpene(
        name="Myrcene",
        aroma="Earthy, musky, herbal",
        description=(
            "The most common terpene in cannabis, myrcene is known for its sedating and "
            "relaxing effects. It's also found in mangoes, lemongrass, and hops."
        ),
        effects=("Relaxing", "Sedating", "Pain Relief", "Anti-inflammatory"),
    ),
    Terpene(
        name="Limonene",
        aroma="Citrus, lemon, orange",
        description=(
            "A mood-elevating terpene with a bright citrus aroma. Limonene is known for "
            "its stress-relieving and uplifting properties."
        ),
        effects=("Uplifting", "Stress Relief", "Mood Enhancement", "Anti-anxiety"),
    ),
    Terpene(
        name="Pinene",
        aroma="Pine, fresh, earthy",
        description=(
            "Found in pine needles and rosemary, pinene is associated with alertness and "
            "memory retention. It has a fresh, forest-like aroma."
        ),
        effects=("Alertness", "Memory", "Focus", "Anti-inflammatory"),
    ),
    Terpene(
        name="Caryophyllene",
        aroma="Spicy, peppery, woody",
        description=(
            "Unique among terpenes, caryophyllene can bind to CB2 receptors, providing "
            "anti-inflammatory effects without psychoactivity."
        ),
        effects=("Anti-inflammatory", "Pain Relief", "Stress Relief", "Neuroprotective"),
    ),
    Terpene(
        name="Humulene",
        aroma="Earthy, woody, hoppy",
        description=(
            "Found in hops and coriander, humulene is known for its appetite-suppressing "
            "and anti-inflammatory properties."
        ),
        effects=("Appetite Suppressant", "Anti-inflammatory", "Antibacterial"),
    ),
    Terpene(
        name="Linalool",
        aroma="Floral, lavender, sweet",
        description=(
            "With a floral lavender scent, linalool is prized for its calming and "
            "anti-anxiety effects. It's also found in lavender and mint."
        ),
        effects=("Calming", "Anti-anxiety", "Sedating", "Pain Relief"),
    ),
    Terpene(
        name="Terpinolene",
        aroma="Fresh, herbal, piney",
        description=(
            "A complex terpene with a fresh, herbaceous aroma. Despite being found in "
            "energizing strains, it has some sedating properties."
        ),
        effects=("Uplifting", "Antioxidant", "Antibacterial", "Sedating"),
    ),
    Terpene(
        name="Ocimene",
        aroma="Sweet, herbal, woody",
        description=(
            "A lesser-known terpene with a sweet, herbaceous aroma. Ocimene has "
            "anti-inflammatory and antifungal properties."
        ),
        effects=("Anti-inflammatory", "Antifungal", "Decongestant", "Antibacterial"),
    ),
)

TERPENE_NAMES: Tuple[str, ...] = tuple(t.name for t in TERPENES)


def find_terpene(name: str) -> Optional[Terpene]:
    """Case-insensitive lookup by terpene name."""
    wanted = name.strip().lower()
    for terpene in TERPENES:
        if terpene.name.lower() == wanted:
            return terpene
    return None
