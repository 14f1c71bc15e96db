"""
Turn recognised label text into a product profile.

Optical character recognition happens outside this package; what arrives here
is the recognised text (or an already-built :class:`ScanResult`).
"""
from __future__ import annotations

import json
import re
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from journal.schema import ConsumptionRoute, Product, ProductType
from journal.terpenes import find_terpene

__all__ = ["ScanResult", "extract_label_data", "product_from_scan"]

_NUMBER = r"[:\s]*(\d+\.?\d*)\s*%?"

CANNABINOID_PATTERNS: Dict[str, re.Pattern[str]] = {
    "THC": re.compile(r"(?:total\s+)?thc(?!v)" + _NUMBER, re.IGNORECASE),
    "CBD": re.compile(r"(?:total\s+)?cbd" + _NUMBER, re.IGNORECASE),
    "CBG": re.compile(r"cbg" + _NUMBER, re.IGNORECASE),
    "THCV": re.compile(r"thcv" + _NUMBER, re.IGNORECASE),
}

TERPENE_PATTERNS: Dict[str, re.Pattern[str]] = {
    "Myrcene": re.compile(r"(?:beta-|β-)?myrcene" + _NUMBER, re.IGNORECASE),
    "Limonene": re.compile(r"(?:d-)?limonene" + _NUMBER, re.IGNORECASE),
    "Pinene": re.compile(r"(?:alpha-|beta-|α-|β-)?pinene" + _NUMBER, re.IGNORECASE),
    "Caryophyllene": re.compile(r"(?:beta-|β-)?caryophyllene" + _NUMBER, re.IGNORECASE),
    "Humulene": re.compile(r"(?:alpha-|α-)?humulene" + _NUMBER, re.IGNORECASE),
    "Linalool": re.compile(r"linalool" + _NUMBER, re.IGNORECASE),
    "Terpinolene": re.compile(r"terpinolene" + _NUMBER, re.IGNORECASE),
    "Ocimene": re.compile(r"(?:beta-|β-)?ocimene" + _NUMBER, re.IGNORECASE),
}

_CANNABINOID_FIELDS = {
    "thc": "thc_percent",
    "cbd": "cbd_percent",
    "cbg": "cbg_percent",
    "thcv": "thcv_percent",
}


def _in_percent_range(values: Dict[str, float]) -> Dict[str, float]:
    return {k: float(v) for k, v in values.items() if v is not None and 0 <= v <= 100}


class ScanResult(BaseModel):
    """Best-effort cannabinoid and terpene percentages read from a label."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    cannabinoids: Dict[str, float] = Field(default_factory=dict)
    terpenes: Dict[str, float] = Field(default_factory=dict)
    raw_text: str = ""

    @field_validator("cannabinoids", "terpenes")
    @classmethod
    def _drop_out_of_range(cls, v: Dict[str, float]) -> Dict[str, float]:
        return _in_percent_range(v)


def extract_label_data(text: str) -> ScanResult:
    """Parse recognised label text line by line into a :class:`ScanResult`."""
    cannabinoids: Dict[str, float] = {}
    terpenes: Dict[str, float] = {}

    for line in (ln.strip() for ln in text.splitlines()):
        if not line:
            continue
        for name, pattern in CANNABINOID_PATTERNS.items():
            match = pattern.search(line)
            if match:
                cannabinoids[name] = float(match.group(1))
        for name, pattern in TERPENE_PATTERNS.items():
            match = pattern.search(line)
            if match:
                terpenes[name] = float(match.group(1))

    return ScanResult(cannabinoids=cannabinoids, terpenes=terpenes, raw_text=text)


def product_from_scan(
    scan: ScanResult,
    name: str,
    type: ProductType | str,
    route: ConsumptionRoute | str,
    brand: Optional[str] = None,
    notes: Optional[str] = None,
) -> Product:
    """
    Build an unsaved :class:`Product` from a scan.

    Known cannabinoids and the eight tracked terpenes map onto product fields
    (keys are matched case-insensitively). Any other terpene is kept as JSON in
    ``other_terpenes``.
    """
    fields: Dict[str, object] = {}
    for key, value in _in_percent_range(scan.cannabinoids).items():
        field = _CANNABINOID_FIELDS.get(key.strip().lower())
        if field:
            fields[field] = value

    other: Dict[str, float] = {}
    for key, value in _in_percent_range(scan.terpenes).items():
        terpene = find_terpene(key)
        if terpene is not None:
            fields[terpene.field] = value
        else:
            other[key] = value

    return Product(
        name=name,
        brand=brand,
        type=type,
        route=route,
        other_terpenes=json.dumps(other, sort_keys=True) if other else None,
        notes=notes,
        **fields,
    )
