from __future__ import annotations

import re
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Annotated, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from dateutil.parser import isoparse, parse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from journal.terpenes import TERPENES

__all__ = [
    "ProductType",
    "ConsumptionRoute",
    "Product",
    "Session",
    "CheckIn",
    "POSITIVE_EFFECTS",
    "NEGATIVE_EFFECTS",
    "natural_language_to_datetime",
]


class ProductType(str, Enum):
    flower = "flower"
    concentrate = "concentrate"
    edible = "edible"
    tincture = "tincture"
    topical = "topical"
    vape = "vape"
    other = "other"

    @classmethod
    def _missing_(cls, value: object) -> "ProductType":
        if isinstance(value, str):
            val = value.strip().lower()
            synonyms = {
                "bud": "flower",
                "cart": "vape",
                "cartridge": "vape",
                "pen": "vape",
                "wax": "concentrate",
                "dab": "concentrate",
                "gummy": "edible",
            }
            val = synonyms.get(val, val)
            for member in cls:
                if member.value == val:
                    return member
        return super()._missing_(value)


class ConsumptionRoute(str, Enum):
    inhalation = "inhalation"
    oral = "oral"
    sublingual = "sublingual"
    topical = "topical"

    @classmethod
    def _missing_(cls, value: object) -> "ConsumptionRoute":
        if isinstance(value, str):
            val = value.strip().lower()
            for member in cls:
                if member.value == val:
                    return member
        return super()._missing_(value)


_DEF_TZ = ZoneInfo("UTC")


def _utcnow() -> datetime:
    return datetime.now(_DEF_TZ)


def _to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware and converted to UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_DEF_TZ)
    return dt.astimezone(_DEF_TZ)


def _parse_or_reject(text: str) -> datetime:
    # dateutil raises OverflowError on long digit runs
    try:
        return parse(text)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Unrecognised date/time: {text!r}") from exc


def natural_language_to_datetime(text: str, user_tz: str | None = "UTC") -> datetime:
    """Convert an ISO timestamp or a simple natural language expression to UTC."""
    tz: ZoneInfo
    try:
        tz = ZoneInfo(user_tz or "UTC")
    except Exception:
        tz = _DEF_TZ

    raw = text.strip()
    try:
        dt = isoparse(raw)
    except (ValueError, OverflowError):
        dt = None
    if dt is not None:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=tz)
        return dt.astimezone(_DEF_TZ)

    match = re.search(r"\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}", raw)
    if match:
        dt = _parse_or_reject(match.group(0))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=tz)
    else:
        t = raw.lower()
        now = datetime.now(tz)
        today = now.date()
        if "this morning" in t:
            dt = datetime.combine(today, time(8, 0), tzinfo=tz)
        elif "this afternoon" in t:
            dt = datetime.combine(today, time(15, 0), tzinfo=tz)
        elif "tonight" in t or "this evening" in t:
            dt = datetime.combine(today, time(20, 0), tzinfo=tz)
        elif "last night" in t:
            dt = datetime.combine(today - timedelta(days=1), time(22, 0), tzinfo=tz)
        elif "yesterday" in t:
            dt = datetime.combine(today - timedelta(days=1), time(12, 0), tzinfo=tz)
        elif "now" in t or "today" in t:
            dt = now
        else:
            dt = _parse_or_reject(t)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=tz)
    return dt.astimezone(_DEF_TZ)


class _Record(BaseModel):
    """Shared config: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @field_validator("created_at", "updated_at", "timestamp", check_fields=False)
    @classmethod
    def _normalise_utc(cls, v: datetime | None) -> datetime | None:
        return _to_utc(v) if v is not None else v


Percent = Annotated[Optional[float], Field(ge=0)]
Rating = Annotated[Optional[int], Field(ge=0, le=10)]


class Product(_Record):
    """A consumable item with its cannabinoid and terpene profile."""

    id: Optional[int] = None
    name: str = Field(min_length=1)
    brand: Optional[str] = None
    type: ProductType
    route: ConsumptionRoute

    thc_percent: Percent = None
    cbd_percent: Percent = None
    cbg_percent: Percent = None
    thcv_percent: Percent = None

    myrcene: Percent = None
    limonene: Percent = None
    pinene: Percent = None
    caryophyllene: Percent = None
    humulene: Percent = None
    linalool: Percent = None
    terpinolene: Percent = None
    ocimene: Percent = None
    other_terpenes: Optional[str] = None

    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    def terpene_profile(self) -> Dict[str, float]:
        """Known terpene values keyed by display name, in canonical order."""
        profile: Dict[str, float] = {}
        for terpene in TERPENES:
            value = getattr(self, terpene.field)
            if value is not None:
                profile[terpene.name] = value
        return profile

    @property
    def dominant_terpenes(self) -> List[str]:
        ranked: List[Tuple[str, float]] = sorted(
            ((name, value) for name, value in self.terpene_profile().items() if value > 0),
            key=lambda item: item[1],
            reverse=True,
        )
        return [name for name, _ in ranked[:3]]

    @property
    def cannabinoid_summary(self) -> str:
        parts = []
        for label, value in (
            ("THC", self.thc_percent),
            ("CBD", self.cbd_percent),
            ("CBG", self.cbg_percent),
            ("THCV", self.thcv_percent),
        ):
            if value is not None:
                parts.append(f"{label}: {value:.1f}%")
        return ", ".join(parts) if parts else "No cannabinoid data"


class Session(_Record):
    """One usage event of a product."""

    id: Optional[int] = None
    product_id: int
    date_time: datetime = Field(default_factory=_utcnow)
    dose_mg: Optional[float] = Field(default=None, ge=0)
    dose_units: Optional[str] = None

    location: Optional[str] = None
    with_company: bool = False
    had_caffeine: bool = False
    had_alcohol: bool = False
    had_food: bool = False
    sleep_quality: Optional[int] = Field(default=None, ge=1, le=5)

    pre_mood: Optional[int] = Field(default=None, ge=1, le=10)
    pre_stress: Optional[int] = Field(default=None, ge=1, le=10)

    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("date_time", mode="before")
    @classmethod
    def _parse_date_time(cls, v: datetime | str) -> datetime:
        if isinstance(v, str):
            return natural_language_to_datetime(v)
        if isinstance(v, datetime):
            return _to_utc(v)
        return v


POSITIVE_EFFECTS: Tuple[str, ...] = (
    "awake",
    "active",
    "cerebral",
    "social",
    "euphoric",
    "creative",
    "focused",
)

NEGATIVE_EFFECTS: Tuple[str, ...] = (
    "tired",
    "groggy",
    "anxious",
    "antisocial",
    "paranoia",
    "dry_mouth",
    "dry_eyes",
    "racing_heart",
)


def _mean_of_present(values: List[Optional[int]]) -> float:
    present = [v for v in values if v is not None]
    if not present:
        return 0.0
    return sum(present) / len(present)


class CheckIn(_Record):
    """Follow-up effect report taken some minutes after a session."""

    id: Optional[int] = None
    session_id: int
    minutes_after: int  # nominally 30, 60 or 120
    timestamp: datetime = Field(default_factory=_utcnow)

    awake: Rating = None
    active: Rating = None
    cerebral: Rating = None
    social: Rating = None
    euphoric: Rating = None
    creative: Rating = None
    focused: Rating = None

    tired: Rating = None
    groggy: Rating = None
    anxious: Rating = None
    antisocial: Rating = None
    paranoia: Rating = None
    dry_mouth: Rating = None
    dry_eyes: Rating = None
    racing_heart: Rating = None

    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def positive_composite(self) -> float:
        """Mean of the positive ratings that were given; 0 when none were."""
        return _mean_of_present([getattr(self, name) for name in POSITIVE_EFFECTS])

    @property
    def negative_composite(self) -> float:
        """Mean of the negative ratings that were given; 0 when none were."""
        return _mean_of_present([getattr(self, name) for name in NEGATIVE_EFFECTS])
