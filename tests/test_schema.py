from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from journal.schema import (
    CheckIn,
    ConsumptionRoute,
    Product,
    ProductType,
    Session,
    natural_language_to_datetime,
)


def test_positive_composite_is_zero_when_nothing_rated():
    ci = CheckIn(session_id=1, minutes_after=30)
    assert ci.positive_composite == 0
    assert ci.negative_composite == 0


def test_composites_average_only_the_present_fields():
    ci = CheckIn(session_id=1, minutes_after=60, awake=4, social=8, euphoric=9, tired=3, dry_mouth=6)
    assert ci.positive_composite == pytest.approx((4 + 8 + 9) / 3)
    assert ci.negative_composite == pytest.approx(4.5)


def test_zero_rating_counts_as_present():
    ci = CheckIn(session_id=1, minutes_after=30, awake=0, focused=10)
    assert ci.positive_composite == 5.0


def test_ratings_are_bounded():
    with pytest.raises(ValidationError):
        CheckIn(session_id=1, minutes_after=30, awake=11)
    with pytest.raises(ValidationError):
        CheckIn(session_id=1, minutes_after=30, paranoia=-1)


def test_session_scales_are_bounded():
    with pytest.raises(ValidationError):
        Session(product_id=1, sleep_quality=6)
    with pytest.raises(ValidationError):
        Session(product_id=1, pre_mood=0)
    Session(product_id=1, sleep_quality=5, pre_mood=10, pre_stress=1)


def test_product_requires_name_type_and_route():
    with pytest.raises(ValidationError):
        Product(name="  ", type="flower", route="inhalation")
    with pytest.raises(ValidationError):
        Product(name="Haze", type="flower")
    with pytest.raises(ValidationError):
        Product(name="Haze", type="flower", route="inhalation", thc_percent=-2)


def test_type_synonyms():
    assert ProductType("Cart") is ProductType.vape
    assert ProductType("FLOWER") is ProductType.flower
    assert ConsumptionRoute(" Oral ") is ConsumptionRoute.oral
    with pytest.raises(ValueError):
        ProductType("spaceship")


def test_camel_case_aliases_in_and_out():
    s = Session.model_validate({"productId": 3, "doseMg": 5.0, "withCompany": True})
    assert s.product_id == 3
    assert s.with_company is True
    dumped = s.model_dump(by_alias=True)
    assert {"productId", "dateTime", "doseMg", "hadCaffeine", "preStress", "createdAt"} <= set(dumped)


def test_timestamps_are_normalised_to_utc():
    dt = natural_language_to_datetime("2024-06-30 08:00", user_tz="America/New_York")
    s = Session(product_id=1, date_time=dt)
    assert s.date_time.tzinfo == ZoneInfo("UTC")
    assert s.date_time.hour == 12

    naive = Session(product_id=1, date_time=datetime(2024, 1, 1, 9, 30))
    assert naive.date_time == datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)


def test_iso_strings_keep_seconds_and_offset():
    s = Session(product_id=1, date_time="2024-07-01T20:30:15.250000+02:00")
    assert s.date_time == datetime(2024, 7, 1, 18, 30, 15, 250000, tzinfo=timezone.utc)


def test_natural_language_last_night():
    dt = natural_language_to_datetime("last night", user_tz="UTC")
    assert dt.hour == 22


def test_unparseable_date_time_is_a_validation_error():
    with pytest.raises(ValidationError):
        Session(product_id=1, date_time="99999999999999999999999")
    with pytest.raises(ValidationError):
        Session(product_id=1, date_time="whenever I feel like it")


def test_dominant_terpenes_ordering():
    p = Product(
        name="Jack",
        type="flower",
        route="inhalation",
        myrcene=0.4,
        limonene=1.5,
        pinene=1.5,
        linalool=0.0,
        ocimene=0.9,
    )
    assert p.dominant_terpenes == ["Limonene", "Pinene", "Ocimene"]
    assert "Linalool" in p.terpene_profile()


def test_cannabinoid_summary():
    p = Product(name="Gummy", type="edible", route="oral", thc_percent=23.46, cbd_percent=0.8)
    assert p.cannabinoid_summary == "THC: 23.5%, CBD: 0.8%"
    assert Product(name="X", type="other", route="oral").cannabinoid_summary == "No cannabinoid data"
