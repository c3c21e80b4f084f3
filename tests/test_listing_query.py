from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import and_, select
from sqlalchemy.dialects import postgresql

from app.core.enums import Category, Governorate, SubCategory
from app.models.listing import Listing
from app.services.listing_query import (
    PUBLIC_ORDER,
    ListingFilters,
    build_visibility_conditions,
    parse_pagination,
    shape_admin_listing,
    shape_listing,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _compile(conds):
    return and_(*conds).compile(dialect=postgresql.dialect())


@pytest.mark.parametrize(
    "limit, skip, expected",
    [
        (None, None, (50, 0)),
        ("10", "20", (10, 20)),
        (" 5 ", "0", (5, 0)),
        ("abc", "xyz", (50, 0)),
        ("1.5", "-3", (50, 0)),
        ("0", "", (50, 0)),
        (7, 3, (7, 3)),
    ],
)
def test_parse_pagination(limit, skip, expected):
    assert parse_pagination(limit, skip) == expected


def test_filters_from_params_drop_blanks():
    f = ListingFilters.from_params(category=" men ", sub_category="", governorate=None, audience="  ")
    assert f == ListingFilters(category="men")


def test_visibility_always_checks_active_and_expiry():
    compiled = _compile(build_visibility_conditions(ListingFilters(), now=NOW))
    sql = str(compiled)

    assert "advertisements.is_active IS true" in sql
    assert "advertisements.subscription_end_date >= " in sql
    assert NOW in compiled.params.values()


def test_exact_match_filters():
    filters = ListingFilters(category="men", sub_category="spa", governorate="ahmadi")
    sql = str(_compile(build_visibility_conditions(filters, now=NOW)))

    assert "advertisements.category = " in sql
    assert "advertisements.sub_category = " in sql
    assert "advertisements.governorate = " in sql


def test_audience_filter_is_inclusive():
    compiled = _compile(build_visibility_conditions(ListingFilters(audience="women"), now=NOW))
    sql = str(compiled)

    assert "advertisements.audience @> " in sql
    assert "advertisements.audience IS NULL" in sql
    assert "jsonb_array_length(advertisements.audience) = " in sql
    assert " OR " in sql
    assert ["women"] in compiled.params.values()


def test_public_order():
    sql = str(select(Listing).order_by(*PUBLIC_ORDER).compile(dialect=postgresql.dialect()))
    assert "ORDER BY advertisements.display_order DESC, advertisements.created_at DESC, advertisements.id DESC" in sql


def _listing(**kw) -> Listing:
    data = dict(
        id="adv_1",
        name_ar="سبا",
        name_en="Spa",
        description_ar="وصف",
        description_en="Description",
        images=["/uploads/images-1-1.jpg", "", None, "https://cdn.example.com/b.jpg"],
        videos=["uploads/videos-1-1.mp4"],
        category=Category.women,
        sub_category=SubCategory.beauty_clinic,
        governorate=Governorate.hawalli,
        audience=[],
        social_media={"phone": "+96500000000", "unknown": "x"},
        subscription_end_date=NOW + timedelta(days=30),
        is_active=True,
        display_order=3,
    )
    data.update(kw)
    return Listing(**data)


def test_shape_listing_resolves_media_and_adds_category_key():
    out = shape_listing(_listing(), base_url="https://api.example.com", project_root="/srv/spalux")

    assert out.images == ["https://api.example.com/uploads/images-1-1.jpg", "https://cdn.example.com/b.jpg"]
    assert out.videos == ["https://api.example.com/uploads/videos-1-1.mp4"]
    assert out.category_key == "beauty_clinic"

    body = out.model_dump(by_alias=True)
    assert body["socialMedia"]["phone"] == "+96500000000"
    assert body["socialMedia"]["tiktok"] == ""
    assert "unknown" not in body["socialMedia"]
    assert body["subCategory"] == SubCategory.beauty_clinic
    assert body["category_key"] == "beauty_clinic"


def test_shape_admin_listing_flags_expiry():
    expired = _listing(subscription_end_date=NOW - timedelta(days=1))
    out = shape_admin_listing(expired, base_url=None, project_root=None, now=NOW)
    assert out.is_expired is True
    assert out.is_active is True


@pytest.mark.parametrize(
    "filters",
    [
        ListingFilters(category="pets"),
        ListingFilters(sub_category="barber"),
        ListingFilters(governorate="mars", category="men"),
    ],
)
def test_unknown_enum_value_matches_nothing(filters):
    assert filters.has_unknown_value
    sql = str(_compile(build_visibility_conditions(filters, now=NOW)))

    assert "false" in sql
    assert "advertisements.category = " not in sql
    assert "advertisements.sub_category = " not in sql
    assert "advertisements.governorate = " not in sql


def test_known_enum_values_are_not_flagged():
    assert not ListingFilters.from_params(category="men", sub_category="spa", governorate="jahra").has_unknown_value
    assert not ListingFilters(category=Category.women).has_unknown_value
