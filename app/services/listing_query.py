from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from sqlalchemy import ColumnElement, false, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import Category, Governorate, SubCategory, enum_values
from app.models.listing import Listing
from app.schemas.listing import AdminListingOut, ListingOut, SocialMedia
from app.services.category_key import listing_category_key
from app.services.media_paths import resolve_media_list

DEFAULT_LIMIT = 50
DEFAULT_SKIP = 0

PUBLIC_ORDER = (Listing.display_order.desc(), Listing.created_at.desc(), Listing.id.desc())

ENUM_FILTERS = {"category": Category, "sub_category": SubCategory, "governorate": Governorate}


@dataclass(frozen=True)
class ListingFilters:
    category: str | None = None
    sub_category: str | None = None
    governorate: str | None = None
    audience: str | None = None

    @classmethod
    def from_params(cls, **params: str | None) -> "ListingFilters":
        clean = {k: (v.strip() if isinstance(v, str) else None) or None for k, v in params.items()}
        return cls(**clean)

    @property
    def has_unknown_value(self) -> bool:
        """True when an exact-match filter names a value outside its vocabulary."""
        return any(
            getattr(self, name) not in (None, *enum_values(enum_cls))
            for name, enum_cls in ENUM_FILTERS.items()
        )


def _parse_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_pagination(limit: Any = None, skip: Any = None) -> tuple[int, int]:
    """(limit, skip) from raw query strings. Bad input falls back to 50 / 0."""
    lim = _parse_int(limit, DEFAULT_LIMIT)
    off = _parse_int(skip, DEFAULT_SKIP)
    if lim <= 0:
        lim = DEFAULT_LIMIT
    if off < 0:
        off = DEFAULT_SKIP
    return lim, off


def build_visibility_conditions(filters: ListingFilters, *, now: datetime | None = None) -> list[ColumnElement[bool]]:
    """
    Predicate for publicly visible listings.

    Expiry is checked against `now` on every query; the stored is_active flag only
    ever hides a listing, it never keeps an expired one visible.
    """
    now = now or datetime.now(timezone.utc)
    conds: list[ColumnElement[bool]] = [
        Listing.is_active.is_(True),
        Listing.subscription_end_date >= now,
    ]
    if filters.has_unknown_value:
        # nothing can match, and the enum column would refuse to bind the value
        return [*conds, false()]
    if filters.category:
        conds.append(Listing.category == filters.category)
    if filters.sub_category:
        conds.append(Listing.sub_category == filters.sub_category)
    if filters.governorate:
        conds.append(Listing.governorate == filters.governorate)
    if filters.audience:
        # untargeted listings are shown to every audience
        conds.append(
            or_(
                Listing.audience.contains([filters.audience]),
                Listing.audience.is_(None),
                func.jsonb_array_length(Listing.audience) == 0,
            )
        )
    return conds


def shape_listing(
    listing: Listing,
    *,
    base_url: str | None,
    project_root: str | Path | None,
) -> ListingOut:
    return ListingOut(**_shaped_fields(listing, base_url=base_url, project_root=project_root))


def shape_admin_listing(
    listing: Listing,
    *,
    base_url: str | None,
    project_root: str | Path | None,
    now: datetime | None = None,
) -> AdminListingOut:
    now = now or datetime.now(timezone.utc)
    return AdminListingOut(
        **_shaped_fields(listing, base_url=base_url, project_root=project_root),
        is_expired=listing.subscription_end_date < now,
    )


def _shaped_fields(listing: Listing, *, base_url: str | None, project_root: str | Path | None) -> dict[str, Any]:
    return dict(
        id=listing.id,
        name_ar=listing.name_ar,
        name_en=listing.name_en,
        description_ar=listing.description_ar,
        description_en=listing.description_en,
        images=resolve_media_list(listing.images, base_url=base_url, project_root=project_root),
        videos=resolve_media_list(listing.videos, base_url=base_url, project_root=project_root),
        category=listing.category,
        sub_category=listing.sub_category,
        governorate=listing.governorate,
        audience=[a for a in (listing.audience or []) if isinstance(a, str)],
        category_key=listing_category_key(listing.sub_category, listing.category),
        social_media=SocialMedia.from_stored(listing.social_media).to_public(),
        subscription_end_date=listing.subscription_end_date,
        is_active=listing.is_active,
        display_order=listing.display_order,
        created_at=listing.created_at,
        updated_at=listing.updated_at,
    )


async def list_public_listings(
    db: AsyncSession,
    filters: ListingFilters,
    *,
    limit: int | None = DEFAULT_LIMIT,
    skip: int = DEFAULT_SKIP,
    now: datetime | None = None,
) -> tuple[Sequence[Listing], int]:
    """Visible listings for one page plus the total ignoring pagination. limit=None returns all."""
    conds = build_visibility_conditions(filters, now=now)

    stmt = select(Listing).where(*conds).order_by(*PUBLIC_ORDER).offset(skip)
    if limit is not None:
        stmt = stmt.limit(limit)
    rows = (await db.execute(stmt)).scalars().all()

    total = (await db.execute(select(func.count()).select_from(Listing).where(*conds))).scalar_one()
    return rows, total


async def random_public_listing(
    db: AsyncSession,
    filters: ListingFilters,
    *,
    now: datetime | None = None,
) -> Listing | None:
    stmt = (
        select(Listing)
        .where(*build_visibility_conditions(filters, now=now))
        .order_by(func.random())
        .limit(1)
    )
    return (await db.execute(stmt)).scalars().first()


async def get_public_listing(db: AsyncSession, listing_id: str, *, now: datetime | None = None) -> Listing | None:
    stmt = select(Listing).where(Listing.id == listing_id, *build_visibility_conditions(ListingFilters(), now=now))
    return (await db.execute(stmt)).scalar_one_or_none()
